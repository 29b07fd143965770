"""
Entity kind catalog and engine wiring (``lifecycle_modules.catalog``).

Responsibility
--------------
``register_all`` loads every entity kind's definition, rules, store
binding and cascades.  ``build_engine`` assembles a ready-to-use
``LifecycleEngine`` from a session factory and an ``EngineConfig``.

Registration is explicit, never at import time, so tests can build
isolated registries.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from lifecycle_config.schema import EngineConfig
from lifecycle_kernel.domain.clock import Clock, SystemClock
from lifecycle_kernel.domain.notification import NotificationChannel
from lifecycle_kernel.domain.registry import StateRegistry
from lifecycle_kernel.logging_config import get_logger
from lifecycle_kernel.services.audit_recorder import AuditRecorder
from lifecycle_kernel.services.entity_store import EntityStore
from lifecycle_services.cascade_handler import CascadeHandler
from lifecycle_services.channels import InAppChannel, LoggingChannel
from lifecycle_services.notification_dispatcher import NotificationDispatcher
from lifecycle_services.transition_executor import TransitionExecutor

logger = get_logger("modules.catalog")

# URL collection name -> entity kind
COLLECTIONS: dict[str, str] = {
    "purchase-orders": "purchase_order",
    "payroll-runs": "payroll_run",
    "time-entries": "time_entry",
    "leave-requests": "leave_request",
    "registrations": "event_registration",
    "support-tickets": "support_ticket",
}


def register_all(
    registry: StateRegistry,
    store: EntityStore,
    cascade_handler: CascadeHandler | None = None,
) -> None:
    """Register every entity kind.  Call once per registry."""
    from lifecycle_modules.events import register as register_events
    from lifecycle_modules.leave import register as register_leave
    from lifecycle_modules.payroll import register as register_payroll
    from lifecycle_modules.procurement import register as register_procurement
    from lifecycle_modules.support import register as register_support
    from lifecycle_modules.timekeeping import register as register_timekeeping

    register_procurement(registry, store, cascade_handler)
    register_payroll(registry, store, cascade_handler)
    register_timekeeping(registry, store, cascade_handler)
    register_leave(registry, store, cascade_handler)
    register_events(registry, store, cascade_handler)
    register_support(registry, store, cascade_handler)

    logger.info("all_entity_kinds_registered", extra={"kinds": list(registry.kinds())})


@dataclass
class LifecycleEngine:
    """The wired collaborators behind one executor."""

    registry: StateRegistry
    store: EntityStore
    cascades: CascadeHandler
    dispatcher: NotificationDispatcher
    executor: TransitionExecutor

    def shutdown(self, wait: bool = True) -> None:
        self.dispatcher.shutdown(wait=wait)


def build_dispatcher(
    session_factory: sessionmaker[Session],
    config: EngineConfig | None = None,
    clock: Clock | None = None,
) -> NotificationDispatcher:
    """In-app inbox delivery plus logging adapters for external channels."""
    settings = config.notifications if config is not None else None
    dispatcher = NotificationDispatcher(
        timeout_seconds=settings.timeout_seconds if settings else 5.0,
        max_workers=settings.max_workers if settings else 4,
        enabled_channels=settings.enabled_channels if settings else None,
    )
    dispatcher.register_channel(InAppChannel(session_factory, clock))
    for channel in (
        NotificationChannel.EMAIL,
        NotificationChannel.SMS,
        NotificationChannel.PUSH,
    ):
        dispatcher.register_channel(LoggingChannel(channel))
    return dispatcher


def build_engine(
    session_factory: sessionmaker[Session],
    config: EngineConfig | None = None,
    clock: Clock | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> LifecycleEngine:
    """Wire registry, store, cascades, dispatcher and executor."""
    clock = clock or SystemClock()
    registry = StateRegistry()
    store = EntityStore()
    cascades = CascadeHandler(
        session_factory,
        registry,
        store,
        clock=clock,
        max_attempts=config.cascades.max_attempts if config else None,
    )
    register_all(registry, store, cascades)

    dispatcher = dispatcher or build_dispatcher(session_factory, config, clock)
    executor = TransitionExecutor(
        registry,
        store,
        session_factory,
        cascades=cascades,
        dispatcher=dispatcher,
        audit=AuditRecorder(),
        clock=clock,
        notification_mode=config.notifications.mode if config else "deferred",
    )
    return LifecycleEngine(
        registry=registry,
        store=store,
        cascades=cascades,
        dispatcher=dispatcher,
        executor=executor,
    )
