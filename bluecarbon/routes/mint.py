"""
Mint endpoints.
"""

from fastapi import APIRouter, Depends
from typing import List

from bluecarbon.handlers.identity import CallerIdentity
from bluecarbon.handlers.minting import MintOrchestrator
from bluecarbon.models.mint import MintAttemptRead, MintRequest, MintResult, ReconcileRequest
from bluecarbon.models.project import ProjectRead
from bluecarbon.routes.deps import get_orchestrator, require_admin

router = APIRouter(tags=["mint"])


@router.post("/mint", response_model=MintResult)
async def mint_endpoint(
    request: MintRequest,
    orchestrator: MintOrchestrator = Depends(get_orchestrator),
    admin: CallerIdentity = Depends(require_admin)
):
    """
    Mint credit tokens for an approved project.

    At most one mint ever succeeds per project. A repeated request is
    rejected without contacting the ledger; after a ledger timeout or an
    unrecorded success the project stays blocked until reconciled.
    """
    request = request.model_copy(update={"requested_by": admin.user_id})
    return await orchestrator.mint(request)


@router.post("/projects/{project_id}/reconcile", response_model=ProjectRead)
async def reconcile_endpoint(
    project_id: int,
    request: ReconcileRequest,
    orchestrator: MintOrchestrator = Depends(get_orchestrator),
    admin: CallerIdentity = Depends(require_admin)
):
    """Record the ledger-confirmed outcome of an unknown or unrecorded mint."""
    return await orchestrator.reconcile(project_id, request, admin.user_id)


@router.get("/projects/{project_id}/mint-attempts", response_model=List[MintAttemptRead])
async def mint_attempts_endpoint(
    project_id: int,
    orchestrator: MintOrchestrator = Depends(get_orchestrator),
    admin: CallerIdentity = Depends(require_admin)
):
    """Mint attempt history for a project, newest first."""
    return await orchestrator.list_attempts(project_id)
