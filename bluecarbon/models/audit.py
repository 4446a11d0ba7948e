"""
Audit log model - append-only tamper-evident record of administrator actions.
"""

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from bluecarbon.utils.time import utc_now


class AuditLogBase(SQLModel):
    """Base audit log schema."""
    admin_id: str = Field(..., index=True, description="Acting administrator")
    action: str = Field(..., description="Action tag (e.g., 'mint_tokens', 'project_approved')")
    target_type: str = Field(default="project", description="Entity type acted on")
    target_id: Optional[int] = Field(default=None, index=True, description="ID of the entity")
    details: str = Field(default="", description="Human-readable summary")
    extra_data: Optional[str] = Field(
        default=None,
        description="JSON string of additional metadata"
    )
    payload_hash: str = Field(..., description="SHA-256 hash of the audited payload")


class AuditLog(AuditLogBase, table=True):
    """Audit log database table - append-only."""
    __tablename__ = "admin_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now)


class AuditLogRead(AuditLogBase):
    """Schema for reading an audit log entry."""
    id: int
    created_at: datetime
