"""
Events Domain Models.
"""

from enum import Enum

KIND = "event_registration"

DEFAULT_CANCELLATION_REASON = "Registration cancelled"


class RegistrationStatus(str, Enum):
    """Event registration states.  Both exits are idempotent."""
    ACTIVE = "active"
    CANCELLED = "cancelled"
    CHECKED_IN = "checked_in"
