"""
Measurement and wallet address validation.

Both checks are pure: no I/O, safe to call from any number of requests.
"""

import math
from typing import Any, List, Mapping, Optional

from bluecarbon.core.constants import (
    BASE58_ALPHABET,
    DENYLISTED_ADDRESSES,
    OPTIONAL_MEASUREMENT_FIELDS,
    REQUIRED_MEASUREMENT_FIELDS,
    WALLET_MAX_LENGTH,
    WALLET_MIN_LENGTH,
)
from bluecarbon.models.measurement import MeasurementValidation, WalletValidation

_BASE58_CHARS = frozenset(BASE58_ALPHABET)


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a measurement value as a finite float.

    Returns None for absent, blank, boolean, non-numeric or non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def validate_measurement(data: Optional[Mapping[str, Any]]) -> MeasurementValidation:
    """
    Check a measurement set for completeness before any computation.

    A mandatory field is missing if absent, empty, or not a finite number.
    Optional fields may be omitted but must be numeric when supplied.
    """
    data = data or {}
    missing: List[str] = [
        field for field in REQUIRED_MEASUREMENT_FIELDS
        if parse_number(data.get(field)) is None
    ]
    for field in OPTIONAL_MEASUREMENT_FIELDS:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        if parse_number(value) is None:
            missing.append(field)

    return MeasurementValidation(valid=not missing, missing=missing)


def validate_wallet_address(address: Any) -> WalletValidation:
    """
    Check a recipient address.

    Rejects wrong length (32-44 characters), characters outside the base-58
    alphabet, and known system/program accounts.
    """
    if not isinstance(address, str) or not address.strip():
        return WalletValidation(valid=False, reason="wallet address is required")

    address = address.strip()
    if not WALLET_MIN_LENGTH <= len(address) <= WALLET_MAX_LENGTH:
        return WalletValidation(valid=False, reason="invalid length")
    if any(ch not in _BASE58_CHARS for ch in address):
        return WalletValidation(valid=False, reason="invalid characters")
    if address in DENYLISTED_ADDRESSES:
        return WalletValidation(valid=False, reason="system account")

    return WalletValidation(valid=True)


def format_wallet_address(address: Optional[str], prefix: int = 4, suffix: int = 4) -> str:
    """Shorten an address for logs and display."""
    if not address:
        return "<none>"
    address = address.strip()
    if len(address) <= prefix + suffix:
        return address
    return f"{address[:prefix]}...{address[-suffix:]}"
