"""Kernel services: entity storage and the transition audit trail."""

from lifecycle_kernel.services.audit_recorder import (
    AuditRecorder,
    AuditTrail,
    AuditTrailEntry,
)
from lifecycle_kernel.services.entity_store import EntityBinding, EntityStore

__all__ = [
    "AuditRecorder",
    "AuditTrail",
    "AuditTrailEntry",
    "EntityBinding",
    "EntityStore",
]
