"""
Mint orchestration.

Takes an approved project and its credit figure and performs at most one
successful token mint per project:

1. Idempotency guard: an immutable project, or one whose previous attempt
   has an unknown/unrecorded outcome, is rejected before any ledger call
2. Status, credit source, recipient wallet and amount checks
3. A single ledger submission, bounded by a timeout but never cancelled
4. Bookkeeping in one transaction: attempt row, token row, project update,
   audit entry

A ledger success cannot be undone. If bookkeeping fails afterwards the
caller gets MintedButUnrecorded and the project stays blocked until an
administrator reconciles it.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Any, AsyncIterator, Dict, List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from bluecarbon.core.config import Settings
from bluecarbon.core.constants import TOKEN_STANDARD
from bluecarbon.core.errors import (
    AdminRequired,
    AlreadyMinted,
    EstimateNotAcknowledged,
    FractionalAmount,
    InvalidAmount,
    InvalidTransition,
    InvalidWallet,
    LedgerFailure,
    LedgerTimeout,
    MintedButUnrecorded,
    MintPendingReconciliation,
    MissingCreditAmount,
    ProjectNotFound,
    ReconciliationMismatch,
    ReconciliationNotRequired,
)
from bluecarbon.handlers.audit import record_action
from bluecarbon.handlers.ledger import LedgerClient, LedgerReceipt, explorer_url
from bluecarbon.handlers.lifecycle import (
    MINTABLE_STATUSES,
    UNRESOLVED_OUTCOMES,
    ensure_no_pending_mint,
    latest_attempt,
    transition,
)
from bluecarbon.handlers.projects import get_owner_wallet
from bluecarbon.handlers.validation import format_wallet_address, validate_wallet_address
from bluecarbon.models.mint import (
    CreditSource,
    MintAttempt,
    MintOutcome,
    MintRequest,
    MintResult,
    ReconcileRequest,
)
from bluecarbon.models.project import Project, ProjectStatus
from bluecarbon.models.token import CarbonToken
from bluecarbon.utils.time import elapsed_ms, utc_now

logger = logging.getLogger(__name__)


def coerce_amount(raw: Any, accept_truncation: bool, max_amount: int) -> int:
    """
    Turn a requested amount into a whole number of tokens.

    Fractional amounts are floored only when the caller accepted truncation.

    Raises:
        InvalidAmount: not a finite number, or outside [1, max_amount]
        FractionalAmount: fractional without ``accept_truncation``
    """
    text = str(raw).strip()
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise InvalidAmount(f"Amount must be a number, got {text!r}")
    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {text!r}")
    if value < 0:
        raise InvalidAmount(f"Amount must not be negative, got {text}")

    whole = int(value.to_integral_value(rounding=ROUND_FLOOR))
    if whole != value and not accept_truncation:
        raise FractionalAmount(text, whole)
    if whole < 1 or whole > max_amount:
        raise InvalidAmount(f"Amount must be between 1 and {max_amount:,}, got {whole}")
    return whole


def _with_outcome(draft: MintAttempt, **update: Any) -> MintAttempt:
    """New attempt row from an unsaved draft; rows are never updated in place."""
    fields = draft.model_dump(exclude={"id", "created_at"})
    fields.update(update)
    return MintAttempt(**fields)


class MintOrchestrator:
    """
    Performs verified, idempotent mints.

    One instance is shared by all requests of the process; mints for the
    same project are serialized on a per-project lock, and the partial
    unique index on successful attempts backs this up across processes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerClient,
        settings: Settings
    ):
        self._session_factory = session_factory
        self._ledger = ledger
        self._settings = settings
        # Per-project locks, dropped once no request holds or waits on them
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}
        # Projects whose last ledger outcome could not be written down
        self._unreconciled: Set[int] = set()

    @asynccontextmanager
    async def _project_lock(self, project_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._lock_users[project_id] = self._lock_users.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[project_id] -= 1
            if not self._lock_users[project_id]:
                del self._lock_users[project_id]
                del self._locks[project_id]

    async def mint(self, request: MintRequest) -> MintResult:
        if not request.requested_by:
            raise AdminRequired("Mint requests must name the requesting administrator")

        async with self._project_lock(request.project_id):
            return await self._mint_locked(request)

    async def _mint_locked(self, request: MintRequest) -> MintResult:
        project_id = request.project_id

        async with self._session_factory() as session:
            project = await session.get(Project, project_id)
            if project is None:
                raise ProjectNotFound(project_id)

            await self._ensure_not_minted(session, project)

            if project.status not in MINTABLE_STATUSES:
                raise InvalidTransition(
                    ProjectStatus(project.status).value, ProjectStatus.CREDITS_MINTED.value
                )

            credit_source, credit_amount = self._credit_source(project, request)
            recipient = await self._resolve_recipient(session, project, request)

        raw_amount = request.amount if request.amount is not None else credit_amount
        amount = coerce_amount(raw_amount, request.accept_truncation, self._settings.max_mint_amount)

        logger.info(
            "Mint request from %s: project=%s amount=%s source=%s recipient=%s",
            request.requested_by, project_id, amount, credit_source.value,
            format_wallet_address(recipient)
        )

        attempt = MintAttempt(
            project_id=project_id,
            outcome=MintOutcome.FAILED,
            requested_amount=str(raw_amount),
            amount_issued=None,
            decimals=request.decimals,
            credit_source=credit_source,
            recipient_wallet=recipient,
            reason=request.reason,
            requested_by=request.requested_by,
        )

        started = time.monotonic()
        receipt = await self._submit(attempt, amount, recipient, request.decimals)

        try:
            async with self._session_factory() as session:
                project = await session.get(Project, project_id)
                self._apply_success(session, project, attempt, receipt, amount)
                await session.commit()
        except Exception as e:
            self._unreconciled.add(project_id)
            logger.error(
                "Minted but unrecorded: project=%s mint=%s tx=%s amount=%s recipient=%s: %s",
                project_id, receipt.mint_id, receipt.transaction_id, amount, recipient, e
            )
            await self._record_unrecorded(attempt, receipt, amount)
            raise MintedButUnrecorded(project_id, receipt.mint_id, receipt.transaction_id) from e

        logger.info(
            "Minted %s tokens for project %s in %sms (mint=%s tx=%s)",
            amount, project_id, elapsed_ms(started, time.monotonic()),
            receipt.mint_id, receipt.transaction_id
        )
        return MintResult(
            project_id=project_id,
            mint_id=receipt.mint_id,
            transaction_id=receipt.transaction_id,
            recipient_wallet=recipient,
            amount_issued=amount,
            decimals=request.decimals,
            credit_source=credit_source,
            explorer_url=explorer_url(receipt.transaction_id, self._settings.ledger_cluster),
        )

    async def _ensure_not_minted(self, session: AsyncSession, project: Project) -> None:
        if project.is_immutable:
            raise AlreadyMinted(f"Project {project.id} has already been minted")
        if project.id in self._unreconciled:
            raise MintPendingReconciliation(
                f"Project {project.id} has a mint with an unrecorded outcome; reconcile before retrying"
            )

        latest = await ensure_no_pending_mint(session, project)
        if latest is not None and latest.outcome == MintOutcome.SUCCEEDED:
            raise AlreadyMinted(f"Project {project.id} has already been minted")

    @staticmethod
    def _credit_source(project: Project, request: MintRequest) -> Tuple[CreditSource, float]:
        if project.calculated_credits is not None:
            return CreditSource.CALCULATED, project.calculated_credits
        if project.estimated_credits is not None:
            if not request.accept_estimated:
                raise EstimateNotAcknowledged(
                    f"Project {project.id} has no calculated credits; minting the unverified "
                    f"estimate of {project.estimated_credits} requires explicit acknowledgment",
                    estimated_credits=project.estimated_credits
                )
            logger.warning(
                "Minting estimated credits for project %s (acknowledged by %s)",
                project.id, request.requested_by
            )
            return CreditSource.ESTIMATED, project.estimated_credits
        raise MissingCreditAmount(f"Project {project.id} has no credit amount to mint")

    @staticmethod
    async def _resolve_recipient(
        session: AsyncSession,
        project: Project,
        request: MintRequest
    ) -> str:
        recipient = request.recipient_wallet or await get_owner_wallet(session, project)
        check = validate_wallet_address(recipient)
        if not check.valid:
            raise InvalidWallet(check.reason, recipient)
        return recipient.strip()

    async def _submit(
        self,
        attempt: MintAttempt,
        amount: int,
        recipient: str,
        decimals: int
    ) -> LedgerReceipt:
        """Submit to the ledger; failures are recorded before being raised."""
        task = asyncio.ensure_future(self._ledger.mint(amount, recipient, decimals))
        try:
            # shield: a timeout stops the wait, never the submission
            return await asyncio.wait_for(
                asyncio.shield(task), timeout=self._settings.ledger_timeout_seconds
            )
        except asyncio.TimeoutError:
            self._watch_late_completion(attempt.project_id, task)
            error = LedgerTimeout(
                f"No ledger response within {self._settings.ledger_timeout_seconds}s; "
                "outcome unknown"
            )
        except LedgerTimeout as e:
            error = e
        except LedgerFailure as e:
            logger.warning("Ledger rejected mint for project %s: %s", attempt.project_id, e.message)
            await self._record_failure(attempt, e)
            raise
        except asyncio.CancelledError:
            self._unreconciled.add(attempt.project_id)
            self._watch_late_completion(attempt.project_id, task)
            await asyncio.shield(self._record_unknown(
                attempt,
                LedgerTimeout("Mint request cancelled while waiting for the ledger; outcome unknown"),
            ))
            raise
        except Exception as e:
            logger.exception("Ledger client error for project %s", attempt.project_id)
            error = LedgerTimeout(f"Ledger client error, outcome unknown: {e}")

        self._unreconciled.add(attempt.project_id)
        logger.error("Ledger outcome unknown for project %s: %s", attempt.project_id, error.message)
        await self._record_unknown(attempt, error)
        raise error

    def _watch_late_completion(self, project_id: int, task: "asyncio.Future[LedgerReceipt]") -> None:
        def _done(fut: "asyncio.Future[LedgerReceipt]") -> None:
            if fut.cancelled():
                logger.warning("Late ledger call for project %s was cancelled", project_id)
            elif fut.exception() is not None:
                logger.warning("Late ledger call for project %s failed: %s", project_id, fut.exception())
            else:
                receipt = fut.result()
                logger.error(
                    "Late ledger success for project %s (mint=%s tx=%s); reconcile to record it",
                    project_id, receipt.mint_id, receipt.transaction_id
                )

        task.add_done_callback(_done)

    def _apply_success(
        self,
        session: AsyncSession,
        project: Project,
        attempt: MintAttempt,
        receipt: LedgerReceipt,
        amount: int
    ) -> None:
        """Stage every write that accompanies a successful mint."""
        transition(project, ProjectStatus.CREDITS_MINTED)
        project.credits_issued = amount
        project.mint_address = receipt.mint_id
        project.is_immutable = True
        project.minted_at = utc_now()

        session.add(_with_outcome(
            attempt,
            outcome=MintOutcome.SUCCEEDED,
            amount_issued=amount,
            transaction_id=receipt.transaction_id,
            mint_id=receipt.mint_id,
        ))
        session.add(CarbonToken(
            mint=receipt.mint_id,
            project_id=project.id,
            recipient=attempt.recipient_wallet,
            amount=amount,
            decimals=attempt.decimals,
            minted_tx=receipt.transaction_id,
            minted_by=attempt.requested_by,
            token_standard=TOKEN_STANDARD,
            token_symbol=self._settings.token_symbol,
            token_name=self._settings.token_name,
        ))
        record_action(
            session,
            admin_id=attempt.requested_by,
            action="mint_tokens",
            target_id=project.id,
            details=f"Minted {amount} tokens to {attempt.recipient_wallet} (tx {receipt.transaction_id})",
            metadata={
                "mint": receipt.mint_id,
                "transaction": receipt.transaction_id,
                "amount": amount,
                "decimals": attempt.decimals,
                "credit_source": attempt.credit_source,
                "reason": attempt.reason,
            },
        )

    async def _record_outcome(
        self,
        attempt: MintAttempt,
        action: str,
        details: str,
        metadata: dict
    ) -> None:
        try:
            async with self._session_factory() as session:
                session.add(attempt)
                record_action(
                    session,
                    admin_id=attempt.requested_by,
                    action=action,
                    target_id=attempt.project_id,
                    details=details,
                    metadata=metadata,
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Could not record %s for project %s: %s", action, attempt.project_id, details
            )

    async def _record_failure(self, attempt: MintAttempt, error: LedgerFailure) -> None:
        failed = _with_outcome(
            attempt,
            outcome=MintOutcome.FAILED,
            error_kind=error.error_kind,
            failure_reason=error.message,
        )
        await self._record_outcome(
            failed,
            "mint_tokens_failed",
            error.message,
            {"error_kind": error.error_kind, "amount": attempt.requested_amount},
        )

    async def _record_unknown(self, attempt: MintAttempt, error: LedgerTimeout) -> None:
        unknown = _with_outcome(
            attempt,
            outcome=MintOutcome.UNKNOWN,
            error_kind=error.error_kind,
            failure_reason=error.message,
        )
        await self._record_outcome(
            unknown,
            "mint_tokens_unknown",
            error.message,
            {"error_kind": error.error_kind, "amount": attempt.requested_amount},
        )

    async def _record_unrecorded(
        self,
        attempt: MintAttempt,
        receipt: LedgerReceipt,
        amount: int
    ) -> None:
        unrecorded = _with_outcome(
            attempt,
            outcome=MintOutcome.UNRECORDED,
            amount_issued=amount,
            transaction_id=receipt.transaction_id,
            mint_id=receipt.mint_id,
            error_kind=MintedButUnrecorded.error_kind,
            failure_reason="bookkeeping failed after ledger success",
        )
        await self._record_outcome(
            unrecorded,
            "mint_tokens_unrecorded",
            f"Minted {amount} tokens on-ledger but failed to record (tx {receipt.transaction_id})",
            {"mint": receipt.mint_id, "transaction": receipt.transaction_id, "amount": amount},
        )

    async def reconcile(
        self,
        project_id: int,
        request: ReconcileRequest,
        admin_id: str
    ) -> Project:
        """
        Record the true outcome of an unknown or unrecorded mint.

        ``succeeded`` performs the bookkeeping a successful mint would have;
        ``failed`` appends a failed attempt so the project can be retried.
        """
        async with self._project_lock(project_id):
            async with self._session_factory() as session:
                project = await session.get(Project, project_id)
                if project is None:
                    raise ProjectNotFound(project_id)
                if project.is_immutable:
                    raise AlreadyMinted(f"Project {project_id} has already been minted")

                latest = await latest_attempt(session, project_id)
                unresolved = latest is not None and latest.outcome in UNRESOLVED_OUTCOMES
                if not unresolved and project_id not in self._unreconciled:
                    raise ReconciliationNotRequired(
                        f"Project {project_id} has no mint awaiting reconciliation"
                    )

                if request.outcome == "succeeded":
                    self._reconcile_success(session, project, latest, request, admin_id)
                else:
                    self._reconcile_failure(session, project, latest, request, admin_id)

                await session.commit()
                await session.refresh(project)

        self._unreconciled.discard(project_id)
        logger.info("Project %s reconciled as %s by %s", project_id, request.outcome, admin_id)
        return project

    def _reconcile_success(
        self,
        session: AsyncSession,
        project: Project,
        latest: Optional[MintAttempt],
        request: ReconcileRequest,
        admin_id: str
    ) -> None:
        transaction_id, mint_id = request.transaction_id, request.mint_id
        amount = request.amount or (latest.amount_issued if latest else None)

        if latest is not None and latest.outcome == MintOutcome.UNRECORDED:
            # The ledger receipt is already on file; confirmations must agree with it
            recorded = {
                "transaction_id": latest.transaction_id,
                "mint_id": latest.mint_id,
                "amount": latest.amount_issued,
            }
            supplied = {"transaction_id": transaction_id, "mint_id": mint_id, "amount": amount}
            conflicts = sorted(
                field for field, value in supplied.items()
                if value and recorded[field] and value != recorded[field]
            )
            if conflicts:
                raise ReconciliationMismatch(project.id, conflicts, recorded)
            transaction_id = transaction_id or latest.transaction_id
            mint_id = mint_id or latest.mint_id

        if not transaction_id or not mint_id:
            raise InvalidAmount("A confirmed mint needs its transaction id and mint id")
        if not amount:
            raise InvalidAmount("A confirmed mint needs the issued amount")

        recipient = request.recipient_wallet or (latest.recipient_wallet if latest else None)
        check = validate_wallet_address(recipient)
        if not check.valid:
            raise InvalidWallet(check.reason, recipient)

        attempt = MintAttempt(
            project_id=project.id,
            outcome=MintOutcome.SUCCEEDED,
            requested_amount=latest.requested_amount if latest else str(amount),
            decimals=latest.decimals if latest else 0,
            credit_source=latest.credit_source if latest else CreditSource.CALCULATED,
            recipient_wallet=recipient.strip(),
            reason=request.notes,
            requested_by=admin_id,
        )
        self._apply_success(
            session,
            project,
            attempt,
            LedgerReceipt(mint_id=mint_id, transaction_id=transaction_id),
            amount,
        )
        record_action(
            session,
            admin_id=admin_id,
            action="mint_reconciled",
            target_id=project.id,
            details=f"Confirmed on-ledger mint {transaction_id}",
            metadata={"outcome": "succeeded", "notes": request.notes},
        )

    @staticmethod
    def _reconcile_failure(
        session: AsyncSession,
        project: Project,
        latest: Optional[MintAttempt],
        request: ReconcileRequest,
        admin_id: str
    ) -> None:
        if latest is not None and latest.outcome == MintOutcome.UNRECORDED:
            raise InvalidTransition(MintOutcome.UNRECORDED.value, "failed")

        session.add(MintAttempt(
            project_id=project.id,
            outcome=MintOutcome.FAILED,
            requested_amount=latest.requested_amount if latest else "0",
            decimals=latest.decimals if latest else 0,
            credit_source=latest.credit_source if latest else None,
            recipient_wallet=latest.recipient_wallet if latest else None,
            error_kind="reconciled",
            failure_reason=request.notes or "Confirmed not minted on ledger",
            requested_by=admin_id,
        ))
        record_action(
            session,
            admin_id=admin_id,
            action="mint_reconciled",
            target_id=project.id,
            details="Confirmed no tokens were minted; project may be retried",
            metadata={"outcome": "failed", "notes": request.notes},
        )

    async def list_attempts(self, project_id: int) -> List[MintAttempt]:
        """Mint attempt history for a project, newest first."""
        async with self._session_factory() as session:
            statement = select(MintAttempt).where(
                MintAttempt.project_id == project_id
            ).order_by(MintAttempt.created_at.desc(), MintAttempt.id.desc())
            result = await session.execute(statement)
            return list(result.scalars().all())
