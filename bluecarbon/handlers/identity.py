"""
Identity provider client.

The provider only proves who the caller is; whether that user is an
administrator comes from the local ``profiles`` table.
"""

import logging
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.core.config import Settings
from bluecarbon.core.errors import IdentityUnavailable, NotAuthenticated
from bluecarbon.models.profile import Profile, UserRole

logger = logging.getLogger(__name__)


class IdentityUser(BaseModel):
    user_id: str
    email: Optional[str] = None


class CallerIdentity(BaseModel):
    """Authenticated caller with the role from their profile."""
    user_id: str
    email: Optional[str] = None
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class IdentityClient(Protocol):
    async def get_user(self, token: str) -> IdentityUser:
        ...


class HttpIdentityClient:
    """Resolve bearer tokens against the identity provider's user endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpIdentityClient":
        return cls(
            base_url=settings.identity_base_url,
            api_key=settings.identity_api_key,
            timeout=settings.identity_timeout_seconds,
        )

    async def get_user(self, token: str) -> IdentityUser:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Identity provider unreachable: %s", e)
            raise IdentityUnavailable("Identity provider unavailable") from e

        if response.status_code in (401, 403):
            raise NotAuthenticated("Invalid or expired token")
        if response.is_error:
            logger.warning("Identity provider returned HTTP %s", response.status_code)
            raise IdentityUnavailable("Identity provider unavailable")

        body = response.json()
        if not body.get("id"):
            raise NotAuthenticated("Invalid or expired token")
        return IdentityUser(user_id=str(body["id"]), email=body.get("email"))


async def resolve_caller(
    session: AsyncSession,
    identity: IdentityClient,
    token: str
) -> CallerIdentity:
    """Authenticate ``token`` and attach the caller's role."""
    user = await identity.get_user(token)
    profile = await session.get(Profile, user.user_id)
    role = profile.role if profile else UserRole.USER
    return CallerIdentity(user_id=user.user_id, email=user.email, role=role)
