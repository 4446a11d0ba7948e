"""
Token model - the minted carbon credit token issued for a project.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from bluecarbon.utils.time import utc_now


class CarbonTokenBase(SQLModel):
    """Base token schema."""
    mint: str = Field(..., index=True, description="Token mint address")
    project_id: int = Field(..., foreign_key="projects.id", unique=True)
    recipient: str
    amount: int = Field(..., ge=1)
    decimals: int = Field(default=0)
    minted_tx: str = Field(..., description="Ledger transaction signature")
    minted_by: str
    token_standard: str = Field(default="SPL")
    token_symbol: str = Field(default="CCR")
    token_name: str = Field(default="Carbon Credit Token")
    status: str = Field(default="active")


class CarbonToken(CarbonTokenBase, table=True):
    """Token database table."""
    __tablename__ = "tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now)


class CarbonTokenRead(CarbonTokenBase):
    """Schema for reading a token."""
    id: int
    created_at: datetime
