"""
lifecycle_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the one way runtime code obtains its
    configuration.  Packaged defaults are overlaid by the YAML file named
    in ``LIFECYCLE_CONFIG`` (when set) and then by ``LIFECYCLE_*``
    environment variables.

Architecture position:
    Sits above ``lifecycle_kernel``.  The kernel never imports from here;
    the engine wiring in ``lifecycle_modules.catalog`` and the API read the
    returned ``EngineConfig`` and pass plain values down.

Audit relevance:
    Every call emits a ``LIFECYCLE_CONFIG_TRACE`` log entry with the
    config id, version and checksum.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from lifecycle_config.loader import (
    DEFAULTS_PATH,
    apply_env_overrides,
    compute_checksum,
    load_yaml_file,
    merge,
    parse_engine_config,
)
from lifecycle_config.schema import CascadeSettings, EngineConfig, NotificationSettings
from lifecycle_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "LIFECYCLE_CONFIG"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """
    Build the active ``EngineConfig``.

    Args:
        config_path: YAML file overlaid on the defaults.  Falls back to the
            ``LIFECYCLE_CONFIG`` environment variable, then to defaults only.
        environ: Environment mapping; ``os.environ`` when omitted.

    Raises:
        FileNotFoundError: The named file does not exist.
        ValueError: A value fails validation.
    """
    env = os.environ if environ is None else environ
    data = load_yaml_file(DEFAULTS_PATH)

    path = config_path or env.get(CONFIG_ENV_VAR)
    if path:
        data = merge(data, load_yaml_file(Path(path)))

    data = apply_env_overrides(data, env)
    config = parse_engine_config(data)

    logger.info(
        "LIFECYCLE_CONFIG_TRACE",
        extra={
            "trace_type": "LIFECYCLE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_checksum": config.checksum,
            "config_source": str(path) if path else "defaults",
        },
    )
    return config


__all__ = [
    "CascadeSettings",
    "EngineConfig",
    "NotificationSettings",
    "compute_checksum",
    "get_active_config",
]
