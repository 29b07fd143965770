"""SQLAlchemy ORM models owned by the kernel."""

from lifecycle_kernel.models.audit_record import TransitionAuditRecord
from lifecycle_kernel.models.cascade_failure import CascadeFailure
from lifecycle_kernel.models.notification import InAppNotification

__all__ = [
    "TransitionAuditRecord",
    "CascadeFailure",
    "InAppNotification",
    "import_kernel_models",
]


def import_kernel_models() -> tuple[type, ...]:
    """Return kernel model classes (importing registers their tables)."""
    return (TransitionAuditRecord, CascadeFailure, InAppNotification)
