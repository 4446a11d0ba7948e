"""
Audit trail handler - append-only admin action log.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bluecarbon.models.audit import AuditLog
from bluecarbon.utils.hashing import hash_audit_entry

logger = logging.getLogger(__name__)


def build_audit_entry(
    admin_id: str,
    action: str,
    target_id: Optional[int],
    details: str,
    metadata: Optional[Dict[str, Any]] = None,
    target_type: str = "project"
) -> AuditLog:
    """Create (but do not persist) an admin log entry."""
    return AuditLog(
        admin_id=admin_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
        extra_data=json.dumps(metadata, sort_keys=True, default=str) if metadata else None,
        payload_hash=hash_audit_entry(admin_id, action, target_id, details, metadata),
    )


def record_action(
    session: AsyncSession,
    admin_id: str,
    action: str,
    target_id: Optional[int],
    details: str,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit entry to the session.

    The entry is committed together with the change it describes.
    """
    entry = build_audit_entry(admin_id, action, target_id, details, metadata)
    session.add(entry)
    logger.debug("Audit %s on project %s by %s", action, target_id, admin_id)
    return entry


async def get_project_audit_log(session: AsyncSession, project_id: int) -> List[AuditLog]:
    """Get all audit entries for a project, oldest first."""
    statement = select(AuditLog).where(
        AuditLog.target_type == "project",
        AuditLog.target_id == project_id
    ).order_by(AuditLog.created_at, AuditLog.id)

    result = await session.execute(statement)
    return list(result.scalars().all())
