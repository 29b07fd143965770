"""
Notification channel adapters.

An adapter delivers one NotificationJob over one channel and reports a
DeliveryResult.  Adapters may raise; the dispatcher turns exceptions into
failed deliveries.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session, sessionmaker

from lifecycle_kernel.db.engine import session_scope
from lifecycle_kernel.domain.clock import Clock, SystemClock
from lifecycle_kernel.domain.notification import (
    DeliveryResult,
    NotificationChannel,
    NotificationJob,
)
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.models.notification import InAppNotification
from lifecycle_kernel.utils.hashing import to_json_safe

logger = get_logger("services.channels")


@runtime_checkable
class ChannelAdapter(Protocol):
    channel: NotificationChannel

    def send(self, job: NotificationJob) -> DeliveryResult: ...


class InAppChannel:
    """Writes the job to the recipient's inbox table."""

    channel = NotificationChannel.IN_APP

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def send(self, job: NotificationJob) -> DeliveryResult:
        with session_scope(self._session_factory) as session:
            row = InAppNotification(
                recipient_id=job.recipient_id,
                title=job.title,
                body=job.body,
                priority=job.priority.value,
                source_entity=job.source_entity,
                source_id=job.source_id,
                data=to_json_safe(dict(job.data)) if job.data else None,
                read=False,
                created_at=self._clock.now_utc(),
            )
            session.add(row)
            session.flush()
            row_id = str(row.id)
        return DeliveryResult.ok(job, external_id=row_id)


class LoggingChannel:
    """
    Placeholder for external providers (email, SMS, push).

    Logs the delivery instead of calling a provider.
    """

    def __init__(self, channel: NotificationChannel):
        self.channel = channel

    def send(self, job: NotificationJob) -> DeliveryResult:
        logger.info(
            "notification_sent",
            extra={
                "channel": self.channel.value,
                "recipient_id": str(job.recipient_id),
                "source_entity": job.source_entity,
                "source_id": str(job.source_id),
                "title": job.title,
                "priority": job.priority.value,
            },
        )
        return DeliveryResult.ok(job)
