"""
Profile model - local record of an identity-provider user.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from bluecarbon.utils.time import utc_now


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Profile(SQLModel, table=True):
    """Profile database table, keyed by the identity provider's user id."""
    __tablename__ = "profiles"

    id: str = Field(primary_key=True)
    email: Optional[str] = Field(default=None)
    role: UserRole = Field(default=UserRole.USER)
    wallet_address: Optional[str] = Field(default=None)
    wallet_connected_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
