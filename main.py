"""
FastAPI application entry point with async lifespan.
"""
import logging
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from bluecarbon.core.config import get_settings
from bluecarbon.core.database import (
    AsyncSessionLocal,
    close_db,
    engine,
    get_session,
    init_db,
    make_session_factory,
)
from bluecarbon.core.errors import RegistryError
from bluecarbon.core.logging import configure_logging
from bluecarbon.handlers.identity import HttpIdentityClient, IdentityClient
from bluecarbon.handlers.ledger import HttpLedgerClient, LedgerClient
from bluecarbon.handlers.minting import MintOrchestrator
from bluecarbon.routes import credits, health, mint, projects, tokens

settings = get_settings()
logger = logging.getLogger(__name__)


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Render domain errors as {error_kind, message, ...}."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_kind, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    ledger: Optional[LedgerClient] = None,
    identity: Optional[IdentityClient] = None,
    bind: Optional[AsyncEngine] = None
) -> FastAPI:
    """
    Build the application.

    Clients default to the HTTP implementations configured from settings;
    ``bind`` replaces the configured database engine.
    """
    ledger = ledger or HttpLedgerClient.from_settings(settings)
    db_engine = bind or engine
    session_factory = make_session_factory(bind) if bind is not None else AsyncSessionLocal

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Async lifespan manager for startup and shutdown."""
        # Startup
        configure_logging(settings.log_level)
        await init_db(db_engine)
        logger.info(
            "%s %s starting (ledger cluster %s)",
            settings.app_name, settings.app_version, settings.ledger_cluster
        )
        yield
        # Shutdown
        await close_db(db_engine)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Blue carbon credit registry: credit calculation and verified token minting",
        lifespan=lifespan
    )

    app.state.identity = identity or HttpIdentityClient.from_settings(settings)
    app.state.orchestrator = MintOrchestrator(session_factory, ledger, settings)

    if bind is not None:
        async def get_bound_session() -> AsyncGenerator[AsyncSession, None]:
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_session] = get_bound_session

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RegistryError, registry_error_handler)

    # Register routes
    app.include_router(health.router)
    app.include_router(projects.router)
    app.include_router(mint.router)
    app.include_router(tokens.router)
    app.include_router(credits.router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        app,
        host='0.0.0.0',
        port=settings.port,
        log_level=settings.log_level.lower()
    )
