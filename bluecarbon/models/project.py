"""
Project model - a submitted restoration project and its credit lifecycle.
"""

from sqlmodel import SQLModel, Field
from sqlalchemy import JSON
from typing import Any, Dict, Literal, Optional
from datetime import datetime
from enum import Enum

from bluecarbon.models.measurement import CreditComputation
from bluecarbon.utils.time import utc_now


class ProjectStatus(str, Enum):
    """Project status lifecycle."""
    PENDING = "pending"
    APPROVED = "approved"
    CREDITS_CALCULATED = "credits_calculated"
    CREDITS_MINTED = "credits_minted"
    REJECTED = "rejected"


class ProjectBase(SQLModel):
    """Base project schema."""
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    ecosystem_type: Optional[str] = Field(
        default=None,
        description="Ecosystem under restoration (mangrove, seagrass, salt_marsh, ...)"
    )
    project_area: float = Field(..., gt=0, description="Project area in hectares")
    carbon_data: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_type=JSON,
        description="Raw field measurements used for the credit calculation"
    )
    wallet_address: Optional[str] = Field(
        default=None,
        description="Recipient wallet; defaults to the submitter's profile wallet"
    )


class Project(ProjectBase, table=True):
    """Project database table."""
    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(..., index=True, description="Submitting user id")
    status: ProjectStatus = Field(default=ProjectStatus.PENDING, index=True)

    estimated_credits: Optional[float] = Field(default=None, ge=0)
    calculated_credits: Optional[float] = Field(default=None, ge=0)
    calculation_data: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)

    mint_address: Optional[str] = Field(default=None)
    credits_issued: Optional[int] = Field(default=None, ge=0)
    is_immutable: bool = Field(default=False)
    minted_at: Optional[datetime] = Field(default=None)

    review_notes: Optional[str] = Field(default=None)
    reviewed_by: Optional[str] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProjectCreate(ProjectBase):
    """Schema for submitting a project."""
    pass


class ProjectRead(ProjectBase):
    """Schema for reading a project."""
    id: int
    owner_id: str
    status: ProjectStatus
    estimated_credits: Optional[float] = None
    calculated_credits: Optional[float] = None
    calculation_data: Optional[Dict[str, Any]] = None
    mint_address: Optional[str] = None
    credits_issued: Optional[int] = None
    is_immutable: bool
    minted_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class MeasurementUpdate(SQLModel):
    """Replacement measurement set for a project."""
    carbon_data: Dict[str, Any]


class ProjectReview(SQLModel):
    """Administrator review decision."""
    decision: Literal["approve", "reject"]
    notes: Optional[str] = Field(default=None, max_length=2000)


class ProjectCalculationRead(SQLModel):
    """Persisted calculation together with its display strings."""
    project: ProjectRead
    calculation: CreditComputation
    formatted: Dict[str, str]
