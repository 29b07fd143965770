"""Timekeeping Module (``lifecycle_modules.timekeeping``): time entry review."""

from lifecycle_modules.timekeeping.models import KIND, TimeEntryStatus
from lifecycle_modules.timekeeping.workflows import (
    TIME_ENTRY_DEFINITION,
    TIME_ENTRY_RULES,
    register,
)

__all__ = [
    "KIND",
    "TimeEntryStatus",
    "TIME_ENTRY_DEFINITION",
    "TIME_ENTRY_RULES",
    "register",
]
