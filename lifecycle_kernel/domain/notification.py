"""
Notification value objects.

Pure data: the dispatcher and channel adapters live in lifecycle_services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID


class NotificationChannel(str, Enum):
    EMAIL = "email"
    IN_APP = "in_app"
    SMS = "sms"
    PUSH = "push"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class NotificationJob:
    """One notification to deliver to one recipient over one channel."""

    recipient_id: UUID
    channel: NotificationChannel
    source_entity: str
    source_id: UUID
    title: str
    body: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @property
    def dedupe_key(self) -> tuple[UUID, str, UUID]:
        return (self.recipient_id, self.source_entity, self.source_id)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one channel send."""

    job: NotificationJob
    success: bool
    error: str | None = None
    external_id: str | None = None

    @classmethod
    def ok(cls, job: NotificationJob, external_id: str | None = None) -> DeliveryResult:
        return cls(job=job, success=True, external_id=external_id)

    @classmethod
    def failed(cls, job: NotificationJob, error: str) -> DeliveryResult:
        return cls(job=job, success=False, error=error)
