"""
Domain error taxonomy.

Every error raised by the handlers derives from RegistryError and carries a
stable ``error_kind`` tag plus the HTTP status the API layer answers with.
"""

from typing import Any, Dict, List, Optional


class RegistryError(Exception):
    """Base class for all registry errors."""

    error_kind = "registry_error"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error_kind": self.error_kind, "message": self.message}
        payload.update(self.details)
        return payload


# Validation errors

class InvalidMeasurement(RegistryError):
    error_kind = "invalid_measurement"
    status_code = 422

    def __init__(self, missing: List[str], message: Optional[str] = None):
        super().__init__(
            message or f"Measurement is incomplete or non-numeric: {', '.join(missing)}",
            missing=list(missing)
        )
        self.missing = list(missing)


class InvalidProjectArea(RegistryError):
    error_kind = "invalid_project_area"
    status_code = 422


class InvalidWallet(RegistryError):
    error_kind = "invalid_wallet"
    status_code = 422

    def __init__(self, reason: str, address: Optional[str] = None):
        super().__init__(f"Invalid recipient wallet: {reason}", reason=reason)
        self.reason = reason
        self.address = address


class FractionalAmount(RegistryError):
    error_kind = "fractional_amount"
    status_code = 422

    def __init__(self, requested: str, truncated: int):
        super().__init__(
            f"Amount {requested} is not a whole number; "
            f"confirm truncation to {truncated} to proceed",
            requested=requested,
            truncated=truncated
        )
        self.truncated = truncated


class InvalidAmount(RegistryError):
    error_kind = "invalid_amount"
    status_code = 422


class MissingCreditAmount(RegistryError):
    error_kind = "missing_credit_amount"
    status_code = 409


class EstimateNotAcknowledged(RegistryError):
    error_kind = "estimate_not_acknowledged"
    status_code = 409


class InvalidTransition(RegistryError):
    error_kind = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Project cannot move from '{current}' to '{target}'",
            current=current,
            target=target
        )


class ProjectNotFound(RegistryError):
    error_kind = "project_not_found"
    status_code = 404

    def __init__(self, project_id: int):
        super().__init__(f"Project {project_id} not found", project_id=project_id)


class MeasurementsLocked(RegistryError):
    error_kind = "measurements_locked"
    status_code = 409


class ReconciliationNotRequired(RegistryError):
    error_kind = "reconciliation_not_required"
    status_code = 409


class ReconciliationMismatch(RegistryError):
    """Confirmed mint details disagree with the receipt already on file."""

    error_kind = "reconciliation_mismatch"
    status_code = 409

    def __init__(self, project_id: int, fields: List[str], recorded: Dict[str, Any]):
        super().__init__(
            f"Project {project_id}: {', '.join(fields)} do not match the recorded ledger receipt",
            project_id=project_id,
            fields=list(fields),
            recorded=recorded
        )


# Terminal errors

class AlreadyMinted(RegistryError):
    error_kind = "already_minted"
    status_code = 409


class MintPendingReconciliation(AlreadyMinted):
    """A previous mint has an unknown or unrecorded outcome."""

    error_kind = "mint_pending_reconciliation"


# Ledger errors

class LedgerFailure(RegistryError):
    error_kind = "ledger_failure"
    status_code = 502


class LedgerTimeout(RegistryError):
    error_kind = "ledger_timeout"
    status_code = 504


class MintedButUnrecorded(RegistryError):
    error_kind = "minted_but_unrecorded"
    status_code = 500

    def __init__(self, project_id: int, mint_id: str, transaction_id: str):
        super().__init__(
            f"Tokens were minted for project {project_id} but the result could not be "
            "recorded; manual reconciliation required",
            project_id=project_id,
            mint_id=mint_id,
            transaction_id=transaction_id
        )
        self.mint_id = mint_id
        self.transaction_id = transaction_id


# Auth errors

class NotAuthenticated(RegistryError):
    error_kind = "not_authenticated"
    status_code = 401


class AdminRequired(RegistryError):
    error_kind = "admin_required"
    status_code = 403


class NotProjectOwner(RegistryError):
    error_kind = "not_project_owner"
    status_code = 403


class IdentityUnavailable(RegistryError):
    error_kind = "identity_unavailable"
    status_code = 503
