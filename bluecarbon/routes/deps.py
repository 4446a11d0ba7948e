"""
Shared route dependencies: authentication and service clients.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.core.database import get_session
from bluecarbon.core.errors import AdminRequired, NotAuthenticated
from bluecarbon.handlers.identity import CallerIdentity, IdentityClient, resolve_caller
from bluecarbon.handlers.minting import MintOrchestrator

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_client(request: Request) -> IdentityClient:
    return request.app.state.identity


def get_orchestrator(request: Request) -> MintOrchestrator:
    return request.app.state.orchestrator


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
    identity: IdentityClient = Depends(get_identity_client)
) -> CallerIdentity:
    """Authenticate the bearer token and load the caller's role."""
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated("Missing bearer token")
    return await resolve_caller(session, identity, credentials.credentials)


async def require_admin(
    caller: CallerIdentity = Depends(get_current_user)
) -> CallerIdentity:
    """Require the administrator role."""
    if not caller.is_admin:
        raise AdminRequired("Administrator role required")
    return caller
