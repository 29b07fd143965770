"""
Configuration Loader (``lifecycle_config.loader``).

Responsibility
--------------
Read YAML configuration files, merge them over the packaged defaults,
apply ``LIFECYCLE_*`` environment overrides and parse the result into a
frozen ``EngineConfig``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError`` from the schema dataclasses.
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from lifecycle_config.schema import CascadeSettings, EngineConfig, NotificationSettings
from lifecycle_kernel.domain.notification import NotificationChannel

DEFAULTS_PATH = Path(__file__).parent / "defaults" / "engine.yaml"

# Environment variable -> dotted config key
ENV_OVERRIDES: dict[str, str] = {
    "LIFECYCLE_DATABASE_URL": "database_url",
    "LIFECYCLE_ECHO_SQL": "echo_sql",
    "LIFECYCLE_LOG_LEVEL": "log_level",
    "LIFECYCLE_NOTIFICATION_MODE": "notifications.mode",
    "LIFECYCLE_NOTIFICATION_TIMEOUT": "notifications.timeout_seconds",
    "LIFECYCLE_NOTIFICATION_WORKERS": "notifications.max_workers",
    "LIFECYCLE_CASCADE_MAX_ATTEMPTS": "cascades.max_attempts",
}

_TRUE = {"1", "true", "yes", "on"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` onto a copy of ``base``."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def apply_env_overrides(
    data: Mapping[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    result = copy.deepcopy(dict(data))
    for var, dotted in ENV_OVERRIDES.items():
        if var not in environ:
            continue
        target = result
        *parents, leaf = dotted.split(".")
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = environ[var]
    channels = environ.get("LIFECYCLE_NOTIFICATION_CHANNELS")
    if channels is not None:
        result.setdefault("notifications", {})["enabled_channels"] = [
            c.strip() for c in channels.split(",") if c.strip()
        ]
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE
    return bool(value)


def parse_notifications(data: Mapping[str, Any]) -> NotificationSettings:
    channels = data.get("enabled_channels")
    return NotificationSettings(
        mode=str(data.get("mode", "deferred")),
        timeout_seconds=float(data.get("timeout_seconds", 5.0)),
        max_workers=int(data.get("max_workers", 4)),
        enabled_channels=(
            frozenset(NotificationChannel)
            if channels is None
            else frozenset(NotificationChannel(c) for c in channels)
        ),
    )


def parse_engine_config(data: Mapping[str, Any]) -> EngineConfig:
    """Parse a merged configuration mapping into an ``EngineConfig``."""
    return EngineConfig(
        config_id=str(data.get("config_id", "lifecycle-engine")),
        version=int(data.get("version", 1)),
        database_url=str(data.get("database_url", "")),
        echo_sql=_as_bool(data.get("echo_sql", False)),
        log_level=str(data.get("log_level", "INFO")).upper(),
        notifications=parse_notifications(data.get("notifications") or {}),
        cascades=CascadeSettings(
            max_attempts=int((data.get("cascades") or {}).get("max_attempts", 5))
        ),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
