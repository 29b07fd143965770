"""
Engine configuration schema.

Frozen dataclasses produced by ``lifecycle_config.loader``.  Validation
happens in ``__post_init__`` so an invalid configuration can never be
constructed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lifecycle_kernel.domain.notification import NotificationChannel

NOTIFICATION_MODES = ("deferred", "inline")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class NotificationSettings:
    mode: str = "deferred"
    timeout_seconds: float = 5.0
    max_workers: int = 4
    enabled_channels: frozenset[NotificationChannel] = frozenset(NotificationChannel)

    def __post_init__(self) -> None:
        if self.mode not in NOTIFICATION_MODES:
            raise ValueError(
                f"notifications.mode must be one of {NOTIFICATION_MODES}, got {self.mode!r}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError("notifications.timeout_seconds must be positive")
        if self.max_workers < 1:
            raise ValueError("notifications.max_workers must be at least 1")


@dataclass(frozen=True)
class CascadeSettings:
    max_attempts: int = 5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("cascades.max_attempts must be at least 1")


@dataclass(frozen=True)
class EngineConfig:
    """Runtime configuration for one engine instance."""

    config_id: str
    version: int
    database_url: str
    echo_sql: bool = False
    log_level: str = "INFO"
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    cascades: CascadeSettings = field(default_factory=CascadeSettings)
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}"
            )
