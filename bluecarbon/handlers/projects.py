"""
Project handler: submission, review, credit calculation and estimates.

Read operations never write. Every status change goes through the
lifecycle transition table and is audit-logged with the change itself.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bluecarbon.core.errors import (
    AlreadyMinted,
    InvalidMeasurement,
    InvalidWallet,
    MeasurementsLocked,
    NotProjectOwner,
    ProjectNotFound,
)
from bluecarbon.handlers.audit import record_action
from bluecarbon.handlers.calculator import compute_from_raw
from bluecarbon.handlers.identity import CallerIdentity
from bluecarbon.handlers.lifecycle import ensure_no_pending_mint, transition
from bluecarbon.handlers.validation import validate_measurement, validate_wallet_address
from bluecarbon.models.measurement import CreditComputation
from bluecarbon.models.profile import Profile
from bluecarbon.models.project import Project, ProjectCreate, ProjectStatus
from bluecarbon.utils.time import utc_now

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset({ProjectStatus.PENDING, ProjectStatus.APPROVED})


async def get_project(session: AsyncSession, project_id: int) -> Optional[Project]:
    """Get project by ID."""
    return await session.get(Project, project_id)


async def require_project(session: AsyncSession, project_id: int) -> Project:
    project = await session.get(Project, project_id)
    if project is None:
        raise ProjectNotFound(project_id)
    return project


async def list_projects(
    session: AsyncSession,
    status: Optional[ProjectStatus] = None,
    owner_id: Optional[str] = None
) -> List[Project]:
    """List projects, newest first, optionally filtered."""
    statement = select(Project)
    if status is not None:
        statement = statement.where(Project.status == status)
    if owner_id is not None:
        statement = statement.where(Project.owner_id == owner_id)
    statement = statement.order_by(Project.created_at.desc(), Project.id.desc())

    result = await session.execute(statement)
    return list(result.scalars().all())


async def get_owner_wallet(session: AsyncSession, project: Project) -> Optional[str]:
    """Recipient wallet: the project's own, else the owner's profile wallet."""
    if project.wallet_address:
        return project.wallet_address
    profile = await session.get(Profile, project.owner_id)
    return profile.wallet_address if profile else None


def _try_estimate(carbon_data: Optional[Dict[str, Any]], area: float) -> Optional[float]:
    if not carbon_data or not validate_measurement(carbon_data).valid:
        return None
    return compute_from_raw(carbon_data, area).total_credits


async def submit_project(
    session: AsyncSession,
    owner_id: str,
    project_data: ProjectCreate
) -> Project:
    """
    Create a pending project.

    An initial estimate is computed when the submitted measurements are
    complete; incomplete measurements are accepted and left for later.
    """
    if project_data.wallet_address:
        check = validate_wallet_address(project_data.wallet_address)
        if not check.valid:
            raise InvalidWallet(check.reason, project_data.wallet_address)

    project = Project(**project_data.model_dump(), owner_id=owner_id)
    if project.wallet_address:
        project.wallet_address = project.wallet_address.strip()
    else:
        profile = await session.get(Profile, owner_id)
        project.wallet_address = profile.wallet_address if profile else None

    project.estimated_credits = _try_estimate(project.carbon_data, project.project_area)

    session.add(project)
    await session.commit()
    await session.refresh(project)

    logger.info("Project %s submitted by %s", project.id, owner_id)
    return project


async def update_measurements(
    session: AsyncSession,
    project_id: int,
    caller: CallerIdentity,
    carbon_data: Dict[str, Any]
) -> Project:
    """
    Replace a project's measurements.

    Only the owner or an administrator may do this, and only before credits
    have been calculated. The estimate is cleared until explicitly refreshed.
    """
    project = await require_project(session, project_id)
    if project.owner_id != caller.user_id and not caller.is_admin:
        raise NotProjectOwner("Only the project owner or an administrator can edit measurements")
    if project.is_immutable:
        raise AlreadyMinted(f"Project {project_id} has been minted and is immutable")
    await ensure_no_pending_mint(session, project)
    if project.status not in EDITABLE_STATUSES:
        raise MeasurementsLocked(
            f"Measurements cannot change once the project is '{ProjectStatus(project.status).value}'"
        )

    project.carbon_data = dict(carbon_data)
    project.estimated_credits = None
    project.updated_at = utc_now()
    await session.commit()
    await session.refresh(project)
    return project


async def review_project(
    session: AsyncSession,
    project_id: int,
    decision: str,
    admin_id: str,
    notes: Optional[str] = None
) -> Project:
    """Approve or reject a project."""
    project = await require_project(session, project_id)
    target = ProjectStatus.APPROVED if decision == "approve" else ProjectStatus.REJECTED
    await ensure_no_pending_mint(session, project)

    transition(project, target)
    project.review_notes = notes
    project.reviewed_by = admin_id
    project.reviewed_at = utc_now()

    record_action(
        session,
        admin_id=admin_id,
        action=f"project_{target.value}",
        target_id=project.id,
        details=f"Updated project status to {target.value}" + (f": {notes}" if notes else ""),
    )
    await session.commit()
    await session.refresh(project)

    logger.info("Project %s %s by %s", project_id, target.value, admin_id)
    return project


async def calculate_credits(
    session: AsyncSession,
    project_id: int,
    admin_id: str
) -> Tuple[Project, CreditComputation]:
    """
    Compute and persist the authoritative credit figure.

    Re-running before a mint overwrites ``calculated_credits``.

    Raises:
        InvalidMeasurement: measurements incomplete (lists missing fields)
        MintPendingReconciliation: the last mint attempt has an unknown outcome
    """
    project = await require_project(session, project_id)
    if project.is_immutable:
        raise AlreadyMinted(f"Project {project_id} has been minted and is immutable")
    await ensure_no_pending_mint(session, project)

    validation = validate_measurement(project.carbon_data)
    if not validation.valid:
        raise InvalidMeasurement(validation.missing)

    computation = compute_from_raw(project.carbon_data, project.project_area)

    transition(project, ProjectStatus.CREDITS_CALCULATED)
    project.calculated_credits = computation.total_credits
    project.calculation_data = computation.model_dump(mode="json")

    record_action(
        session,
        admin_id=admin_id,
        action="credits_calculated",
        target_id=project.id,
        details=f"Calculated {computation.total_credits} credits over {project.project_area} ha",
        metadata={
            "total_credits": computation.total_credits,
            "credits_per_hectare": computation.credits_per_hectare,
        },
    )
    await session.commit()
    await session.refresh(project)

    logger.info(
        "Project %s calculated at %s credits (%s/ha)",
        project_id, computation.total_credits, computation.credits_per_hectare
    )
    return project, computation


async def refresh_estimate(
    session: AsyncSession,
    project_id: int,
    admin_id: str
) -> Project:
    """
    Recompute ``estimated_credits`` from the current measurements.

    This is the only operation that writes the estimate after submission.
    """
    project = await require_project(session, project_id)
    if project.is_immutable:
        raise AlreadyMinted(f"Project {project_id} has been minted and is immutable")
    await ensure_no_pending_mint(session, project)

    validation = validate_measurement(project.carbon_data)
    if not validation.valid:
        raise InvalidMeasurement(validation.missing)

    previous = project.estimated_credits
    project.estimated_credits = compute_from_raw(project.carbon_data, project.project_area).total_credits
    project.updated_at = utc_now()

    record_action(
        session,
        admin_id=admin_id,
        action="estimate_refreshed",
        target_id=project.id,
        details=f"Estimated credits {previous} -> {project.estimated_credits}",
    )
    await session.commit()
    await session.refresh(project)
    return project
