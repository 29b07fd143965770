"""
Structured logging for the lifecycle engine.

Every record under the ``lifecycle_kernel`` logger renders as one JSON line:
the envelope (ts, level, logger, message), whatever LogContext currently
holds, the ``extra=`` fields of the call, and for exceptions their type,
message, ``code`` and public attributes.  Transition traces, cascade
failures and dispatch failures are all queried through these fields.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

LOGGER_ROOT = "lifecycle_kernel"


class LogContext:
    """
    Request-scoped fields stamped onto every record.

    Held in a single ContextVar so worker threads and async tasks each see
    their own request.  The mapping is replaced, never mutated.
    """

    FIELDS = ("correlation_id", "request_id", "actor_id", "entity_kind", "entity_id")

    _fields: ContextVar[Mapping[str, str]] = ContextVar("lifecycle_log_context", default={})

    @classmethod
    def _merged(cls, values: Mapping[str, str | None]) -> dict[str, str]:
        unknown = set(values) - set(cls.FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(cls._fields.get())
        merged.update({k: v for k, v in values.items() if v is not None})
        return merged

    @classmethod
    def set(cls, **values: str | None) -> None:
        """Overwrite the given fields for the rest of this context; None leaves a field alone."""
        cls._fields.set(cls._merged(values))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        current = cls._fields.get()
        return {name: current[name] for name in cls.FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **values: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block."""
        token = cls._fields.set(cls._merged(values))
        try:
            yield cls
        finally:
            cls._fields.reset(token)


# Attributes every LogRecord carries; anything else came in through extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    return repr(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.cascade_handler")`` → ``lifecycle_kernel.services.cascade_handler``."""
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")


_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``lifecycle_kernel`` logger.

    Only the first call takes effect until ``reset_logging``.  Handlers
    added by anyone else (test capture, an embedding app) are left alone.
    """
    global _installed
    with _lock:
        if _installed is not None:
            return
        _installed = handler or logging.StreamHandler(stream or sys.stderr)
        _installed.setFormatter(StructuredFormatter())

        logger = logging.getLogger(LOGGER_ROOT)
        logger.setLevel(level)
        logger.propagate = False
        logger.addHandler(_installed)


def reset_logging() -> None:
    """Remove the handler installed by ``configure_logging`` (tests)."""
    global _installed
    with _lock:
        logger = logging.getLogger(LOGGER_ROOT)
        if _installed is not None:
            logger.removeHandler(_installed)
            _installed = None
        logger.setLevel(logging.WARNING)
