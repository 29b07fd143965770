"""
Pure domain layer.

This module contains immutable value objects and pure logic with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- Time (except through the injected Clock)
"""

from lifecycle_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from lifecycle_kernel.domain.guards import (
    GuardEvaluator,
    all_of,
    payload_value,
    require_children,
    require_field,
    require_payload_text,
)
from lifecycle_kernel.domain.lifecycle import (
    EntitySnapshot,
    Guard,
    GuardReason,
    GuardResult,
    StateDefinition,
    TransitionContext,
    TransitionOutcome,
    TransitionRequest,
    TransitionRule,
    state_value,
)
from lifecycle_kernel.domain.notification import (
    DeliveryResult,
    NotificationChannel,
    NotificationJob,
    NotificationPriority,
)
from lifecycle_kernel.domain.registry import StateRegistry

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "GuardEvaluator",
    "all_of",
    "payload_value",
    "require_children",
    "require_field",
    "require_payload_text",
    "EntitySnapshot",
    "Guard",
    "GuardReason",
    "GuardResult",
    "StateDefinition",
    "TransitionContext",
    "TransitionOutcome",
    "TransitionRequest",
    "TransitionRule",
    "state_value",
    "DeliveryResult",
    "NotificationChannel",
    "NotificationJob",
    "NotificationPriority",
    "StateRegistry",
]
