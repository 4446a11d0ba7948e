"""
Project status transition table and the pending-mint guard.

All status writes go through ``transition`` so that no code path can move a
project along an edge that is not listed here. A project whose last mint
attempt has an unknown outcome accepts no change until it is reconciled.
"""

from typing import Dict, FrozenSet, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bluecarbon.core.errors import InvalidTransition, MintPendingReconciliation
from bluecarbon.models.mint import MintAttempt, MintOutcome
from bluecarbon.models.project import Project, ProjectStatus
from bluecarbon.utils.time import utc_now

S = ProjectStatus

ALLOWED_TRANSITIONS: Dict[ProjectStatus, FrozenSet[ProjectStatus]] = {
    S.PENDING: frozenset({S.APPROVED, S.REJECTED, S.CREDITS_CALCULATED}),
    S.APPROVED: frozenset({S.REJECTED, S.CREDITS_CALCULATED, S.CREDITS_MINTED}),
    # Recalculation before mint overwrites the previous figure
    S.CREDITS_CALCULATED: frozenset({S.CREDITS_CALCULATED, S.CREDITS_MINTED}),
    S.CREDITS_MINTED: frozenset(),
    S.REJECTED: frozenset(),
}

MINTABLE_STATUSES = frozenset({S.APPROVED, S.CREDITS_CALCULATED})

# Outcomes that leave the ledger state unknown to the registry
UNRESOLVED_OUTCOMES = frozenset({MintOutcome.UNKNOWN, MintOutcome.UNRECORDED})


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(ProjectStatus(current), frozenset())


def ensure_transition(project: Project, target: ProjectStatus) -> None:
    """Raise InvalidTransition unless ``project`` may move to ``target``."""
    if not can_transition(project.status, target):
        raise InvalidTransition(ProjectStatus(project.status).value, target.value)


def transition(project: Project, target: ProjectStatus) -> Project:
    """Move ``project`` to ``target`` in memory; the caller commits."""
    ensure_transition(project, target)
    project.status = target
    project.updated_at = utc_now()
    return project


async def latest_attempt(session: AsyncSession, project_id: int) -> Optional[MintAttempt]:
    statement = select(MintAttempt).where(
        MintAttempt.project_id == project_id
    ).order_by(MintAttempt.created_at.desc(), MintAttempt.id.desc()).limit(1)

    result = await session.execute(statement)
    return result.scalars().first()


async def ensure_no_pending_mint(session: AsyncSession, project: Project) -> Optional[MintAttempt]:
    """
    Block changes while the last mint attempt has an unknown outcome.

    Tokens may already exist on the ledger, so the project must stay able to
    reach credits_minted until an administrator reconciles it.

    Returns:
        The latest attempt, if any
    """
    latest = await latest_attempt(session, project.id)
    if latest is not None and latest.outcome in UNRESOLVED_OUTCOMES:
        raise MintPendingReconciliation(
            f"Project {project.id} has a mint with an {MintOutcome(latest.outcome).value} "
            "outcome; reconcile against the ledger first"
        )
    return latest
