"""
Hashing utilities for the tamper-evident audit trail.
"""

import hashlib
import json
from typing import Any, Dict, Optional


def hash_payload(payload: Dict[str, Any]) -> str:
    """
    Generate SHA-256 hash of a payload for audit trail.

    Args:
        payload: Dictionary to hash

    Returns:
        Hexadecimal SHA-256 hash string
    """
    # Sort keys for consistent hashing
    payload_str = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(payload_str.encode()).hexdigest()


def hash_audit_entry(
    admin_id: str,
    action: str,
    target_id: Optional[int],
    details: str,
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """Hash the fields of an admin log entry that must never change."""
    return hash_payload({
        "admin_id": admin_id,
        "action": action,
        "target_id": target_id,
        "details": details,
        "metadata": metadata or {},
    })
