"""
lifecycle_services.notification_dispatcher -- Best-effort notification fan-out.

Responsibility:
    Delivers the notification jobs produced by a successful transition
    through the registered channel adapters.  Delivery never fails the
    transition: a missing adapter, an adapter exception or a timeout is
    logged and counted as a failed delivery.

Architecture position:
    Services layer.  Called by TransitionExecutor after commit.  Owns the
    only shared in-process mutable state of the engine: its thread pools.

Invariants enforced:
    - Jobs are deduplicated on (recipient_id, source_entity, source_id)
      within one call; the first job wins.
    - ``dispatch`` and ``dispatch_deferred`` never raise for delivery errors.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass

from lifecycle_kernel.domain.notification import (
    DeliveryResult,
    NotificationChannel,
    NotificationJob,
)
from lifecycle_kernel.exceptions import DispatchFailureError
from lifecycle_kernel.logging_config import get_logger
from lifecycle_services.channels import ChannelAdapter

logger = get_logger("services.notification_dispatcher")


@dataclass(frozen=True)
class DispatchReport:
    """What happened to one batch of jobs."""

    results: tuple[DeliveryResult, ...] = ()
    duplicates_skipped: int = 0
    disabled_skipped: int = 0

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def delivered(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)


def dedupe_jobs(jobs: Iterable[NotificationJob]) -> tuple[list[NotificationJob], int]:
    """Keep the first job per dedupe key.  Returns (unique, skipped)."""
    seen: set[tuple] = set()
    unique: list[NotificationJob] = []
    skipped = 0
    for job in jobs:
        if job.dedupe_key in seen:
            skipped += 1
            continue
        seen.add(job.dedupe_key)
        unique.append(job)
    return unique, skipped


class NotificationDispatcher:
    """Routes jobs to channel adapters with a per-send timeout."""

    def __init__(
        self,
        channels: Iterable[ChannelAdapter] = (),
        timeout_seconds: float = 5.0,
        max_workers: int = 4,
        enabled_channels: Iterable[NotificationChannel | str] | None = None,
    ):
        self._adapters: dict[NotificationChannel, ChannelAdapter] = {}
        for adapter in channels:
            self.register_channel(adapter)
        self._timeout = timeout_seconds
        self._max_workers = max_workers
        self._enabled = (
            None
            if enabled_channels is None
            else frozenset(NotificationChannel(c) for c in enabled_channels)
        )
        self._lock = threading.Lock()
        self._send_pool: ThreadPoolExecutor | None = None
        self._deferred_pool: ThreadPoolExecutor | None = None

    def register_channel(self, adapter: ChannelAdapter) -> None:
        self._adapters[NotificationChannel(adapter.channel)] = adapter

    def _pools(self) -> tuple[ThreadPoolExecutor, ThreadPoolExecutor]:
        with self._lock:
            if self._send_pool is None:
                self._send_pool = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="notify-send",
                )
            if self._deferred_pool is None:
                self._deferred_pool = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="notify-deferred",
                )
            return self._send_pool, self._deferred_pool

    def dispatch(self, jobs: Sequence[NotificationJob]) -> DispatchReport:
        """Deliver ``jobs`` synchronously, each send bounded by the timeout."""
        unique, duplicates = dedupe_jobs(jobs)
        send_pool, _ = self._pools()

        results: list[DeliveryResult] = []
        disabled = 0
        for job in unique:
            if self._enabled is not None and job.channel not in self._enabled:
                disabled += 1
                logger.debug(
                    "notification_channel_disabled",
                    extra={"channel": job.channel.value, "source_id": str(job.source_id)},
                )
                continue
            results.append(self._deliver(send_pool, job))

        report = DispatchReport(
            results=tuple(results),
            duplicates_skipped=duplicates,
            disabled_skipped=disabled,
        )
        logger.info(
            "notifications_dispatched",
            extra={
                "attempted": report.attempted,
                "delivered": report.delivered,
                "failed": report.failed,
                "duplicates_skipped": duplicates,
                "disabled_skipped": disabled,
            },
        )
        return report

    def _deliver(
        self, pool: ThreadPoolExecutor, job: NotificationJob
    ) -> DeliveryResult:
        adapter = self._adapters.get(job.channel)
        if adapter is None:
            return self._failed(job, "no adapter registered")

        future = pool.submit(adapter.send, job)
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError:
            future.cancel()
            return self._failed(job, f"timed out after {self._timeout}s")
        except Exception as exc:  # noqa: BLE001
            return self._failed(job, f"{type(exc).__name__}: {exc}")

    @staticmethod
    def _failed(job: NotificationJob, error: str) -> DeliveryResult:
        failure = DispatchFailureError(job.channel.value, str(job.recipient_id), error)
        logger.warning(
            "notification_dispatch_failed",
            extra={
                "channel": failure.channel,
                "recipient_id": failure.recipient_id,
                "source_entity": job.source_entity,
                "source_id": str(job.source_id),
                "error": error,
            },
        )
        return DeliveryResult.failed(job, str(failure))

    def dispatch_deferred(
        self, jobs: Sequence[NotificationJob]
    ) -> Future[DispatchReport]:
        """Queue ``jobs`` for background delivery and return immediately."""
        _, deferred_pool = self._pools()
        return deferred_pool.submit(self._dispatch_logged, list(jobs))

    def _dispatch_logged(self, jobs: list[NotificationJob]) -> DispatchReport:
        try:
            return self.dispatch(jobs)
        except Exception:  # noqa: BLE001
            logger.exception("deferred_dispatch_failed", extra={"job_count": len(jobs)})
            return DispatchReport()

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            deferred, send = self._deferred_pool, self._send_pool
            self._deferred_pool = None
            self._send_pool = None
        # Deferred batches submit sends, so drain them first.
        if deferred is not None:
            deferred.shutdown(wait=wait)
        if send is not None:
            send.shutdown(wait=wait)
