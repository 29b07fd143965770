"""
Lifecycle services: the imperative shell around the kernel.

- TransitionExecutor: atomic, audited status transitions
- CascadeHandler: post-commit follow-up writes and their retry
- NotificationDispatcher: best-effort fan-out through channel adapters
"""

from lifecycle_services.cascade_handler import CascadeHandler, RetryReport
from lifecycle_services.channels import ChannelAdapter, InAppChannel, LoggingChannel
from lifecycle_services.notification_dispatcher import (
    DispatchReport,
    NotificationDispatcher,
)
from lifecycle_services.templates import (
    NotificationTemplate,
    TemplateRegistry,
    default_template_registry,
    interpolate,
)
from lifecycle_services.transition_executor import TransitionExecutor

__all__ = [
    "CascadeHandler",
    "RetryReport",
    "ChannelAdapter",
    "InAppChannel",
    "LoggingChannel",
    "DispatchReport",
    "NotificationDispatcher",
    "NotificationTemplate",
    "TemplateRegistry",
    "default_template_registry",
    "interpolate",
    "TransitionExecutor",
]
