"""
Project endpoints: submission, review, calculation and estimates.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from bluecarbon.core.database import get_session
from bluecarbon.core.errors import NotProjectOwner
from bluecarbon.handlers.audit import get_project_audit_log
from bluecarbon.handlers.calculator import format_calculation_results
from bluecarbon.handlers.identity import CallerIdentity
from bluecarbon.handlers.projects import (
    calculate_credits,
    list_projects,
    refresh_estimate,
    require_project,
    review_project,
    submit_project,
    update_measurements,
)
from bluecarbon.models.audit import AuditLogRead
from bluecarbon.models.project import (
    MeasurementUpdate,
    ProjectCalculationRead,
    ProjectCreate,
    ProjectRead,
    ProjectReview,
    ProjectStatus,
)
from bluecarbon.routes.deps import get_current_user, require_admin

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def submit_project_endpoint(
    project: ProjectCreate,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(get_current_user)
):
    """Submit a new project for review."""
    return await submit_project(session, caller.user_id, project)


@router.get("/", response_model=List[ProjectRead])
async def list_projects_endpoint(
    status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
    owner_id: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(get_current_user)
):
    """
    List projects, newest first.

    Administrators see every project; other users only their own.
    """
    if not caller.is_admin:
        owner_id = caller.user_id
    return await list_projects(session, status=status_filter, owner_id=owner_id)


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project_endpoint(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(get_current_user)
):
    """Get a project. Stored figures are returned as-is, never recomputed."""
    project = await require_project(session, project_id)
    if project.owner_id != caller.user_id and not caller.is_admin:
        raise NotProjectOwner("Only the project owner or an administrator can view this project")
    return project


@router.put("/{project_id}/measurements", response_model=ProjectRead)
async def update_measurements_endpoint(
    project_id: int,
    update: MeasurementUpdate,
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(get_current_user)
):
    """Replace a project's measurements before credits are calculated."""
    return await update_measurements(session, project_id, caller, update.carbon_data)


@router.post("/{project_id}/review", response_model=ProjectRead)
async def review_project_endpoint(
    project_id: int,
    review: ProjectReview,
    session: AsyncSession = Depends(get_session),
    admin: CallerIdentity = Depends(require_admin)
):
    """Approve or reject a pending project."""
    return await review_project(session, project_id, review.decision, admin.user_id, review.notes)


@router.post("/{project_id}/calculate", response_model=ProjectCalculationRead)
async def calculate_credits_endpoint(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    admin: CallerIdentity = Depends(require_admin)
):
    """
    Calculate and persist the authoritative credit figure.

    Moves the project to credits_calculated; may be re-run until minted.
    """
    project, computation = await calculate_credits(session, project_id, admin.user_id)
    return ProjectCalculationRead(
        project=ProjectRead.model_validate(project),
        calculation=computation,
        formatted=format_calculation_results(computation),
    )


@router.post("/{project_id}/estimate", response_model=ProjectRead)
async def refresh_estimate_endpoint(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    admin: CallerIdentity = Depends(require_admin)
):
    """Recompute the stored estimate from the current measurements."""
    return await refresh_estimate(session, project_id, admin.user_id)


@router.get("/{project_id}/audit", response_model=List[AuditLogRead])
async def project_audit_endpoint(
    project_id: int,
    session: AsyncSession = Depends(get_session),
    admin: CallerIdentity = Depends(require_admin)
):
    """Administrator actions on a project, oldest first."""
    await require_project(session, project_id)
    return await get_project_audit_log(session, project_id)
