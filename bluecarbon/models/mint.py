"""
Mint attempt model - write-once record of every ledger-reaching mint call.
"""

from sqlmodel import SQLModel, Field
from sqlalchemy import Index, text
from pydantic import field_validator
from typing import Literal, Optional, Union
from datetime import datetime
from enum import Enum

from bluecarbon.utils.time import utc_now


class MintOutcome(str, Enum):
    """Outcome of a mint attempt."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNKNOWN = "unknown"  # ledger call timed out
    UNRECORDED = "unrecorded"  # minted on-ledger, bookkeeping failed


class CreditSource(str, Enum):
    CALCULATED = "calculated"
    ESTIMATED = "estimated"


class MintAttemptBase(SQLModel):
    """Base mint attempt schema."""
    project_id: int = Field(..., foreign_key="projects.id", index=True)
    outcome: MintOutcome
    requested_amount: str = Field(..., description="Amount as requested, before truncation")
    amount_issued: Optional[int] = Field(default=None, ge=0)
    decimals: int = Field(default=0)
    credit_source: Optional[CreditSource] = Field(default=None)
    recipient_wallet: Optional[str] = Field(default=None)
    transaction_id: Optional[str] = Field(default=None, index=True)
    mint_id: Optional[str] = Field(default=None)
    error_kind: Optional[str] = Field(default=None)
    failure_reason: Optional[str] = Field(default=None)
    reason: Optional[str] = Field(default=None)
    requested_by: str


class MintAttempt(MintAttemptBase, table=True):
    """Mint attempt database table - append-only."""
    __tablename__ = "mint_attempts"
    # Enum columns persist member names
    __table_args__ = (
        Index(
            "uq_mint_attempts_one_success",
            "project_id",
            unique=True,
            sqlite_where=text("outcome = 'SUCCEEDED'"),
            postgresql_where=text("outcome = 'SUCCEEDED'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now)


class MintAttemptRead(MintAttemptBase):
    """Schema for reading a mint attempt."""
    id: int
    created_at: datetime


class MintRequest(SQLModel):
    """Mint request at the caller/orchestrator boundary."""
    project_id: int
    recipient_wallet: Optional[str] = Field(
        default=None,
        description="Defaults to the project's wallet, then the owner's profile wallet"
    )
    amount: Optional[str] = Field(
        default=None,
        description="Integer amount as a string; defaults to the project's credit figure"
    )
    decimals: Literal[0] = 0
    reason: Optional[str] = Field(default=None, max_length=2000)
    requested_by: Optional[str] = Field(default=None)
    accept_estimated: bool = Field(
        default=False,
        description="Allow minting unverified estimated credits when no calculation exists"
    )
    accept_truncation: bool = Field(
        default=False,
        description="Allow flooring a fractional amount to a whole number of tokens"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_to_str(cls, value: Union[str, int, float, None]) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class MintResult(SQLModel):
    """Successful mint response."""
    project_id: int
    mint_id: str
    transaction_id: str
    recipient_wallet: str
    amount_issued: int
    decimals: int = 0
    credit_source: CreditSource
    explorer_url: Optional[str] = None


class ReconcileRequest(SQLModel):
    """Administrator-confirmed outcome of an unknown or unrecorded mint."""
    outcome: Literal["succeeded", "failed"]
    transaction_id: Optional[str] = None
    mint_id: Optional[str] = None
    amount: Optional[int] = Field(default=None, ge=1)
    recipient_wallet: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
