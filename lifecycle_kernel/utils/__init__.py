"""Utility modules for the lifecycle kernel."""

from lifecycle_kernel.utils.hashing import (
    canonicalize_json,
    hash_audit_record,
    hash_payload,
    to_json_safe,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "hash_audit_record",
    "to_json_safe",
]
