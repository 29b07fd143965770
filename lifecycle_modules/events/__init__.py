"""Events Module (``lifecycle_modules.events``): registration cancel and check-in."""

from lifecycle_modules.events.models import KIND, RegistrationStatus
from lifecycle_modules.events.workflows import (
    REGISTRATION_DEFINITION,
    REGISTRATION_RULES,
    register,
)

__all__ = [
    "KIND",
    "RegistrationStatus",
    "REGISTRATION_DEFINITION",
    "REGISTRATION_RULES",
    "register",
]
