"""
Timekeeping Domain Models.
"""

from enum import Enum

KIND = "time_entry"


class TimeEntryStatus(str, Enum):
    """Time entry review states."""
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
