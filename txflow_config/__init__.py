"""
txflow_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_settings()`` is the only way to obtain settings.  It
    loads the packaged ``defaults.yaml``, overlays the file named by the
    ``TXFLOW_CONFIG`` environment variable (or an explicit path), and
    returns a frozen ``TxflowSettings``.

Architecture position:
    Configuration -- sits above ``txflow_kernel`` and ``txflow_engines``
    and below ``txflow_services``.  The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every call emits a ``TXFLOW_CONFIG_TRACE`` log entry with the source
    and checksum of the parsed settings.
"""

from __future__ import annotations

import os
from pathlib import Path

from txflow_config.loader import load_yaml_file, merge_settings, parse_settings
from txflow_config.schema import (
    LifecycleSettings,
    ReconciliationSettings,
    TxflowSettings,
    ZoneModes,
)
from txflow_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "TXFLOW_CONFIG"


def get_active_settings(config_path: Path | str | None = None) -> TxflowSettings:
    """Load defaults, apply the override file, validate, and trace."""
    data = load_yaml_file(DEFAULTS_PATH)
    source = str(DEFAULTS_PATH)

    override = config_path or os.environ.get(CONFIG_ENV_VAR)
    if override:
        override_path = Path(override)
        if not override_path.is_file():
            raise FileNotFoundError(f"Settings file not found: {override_path}")
        data = merge_settings(data, load_yaml_file(override_path))
        source = str(override_path)

    settings = parse_settings(data, source=source)
    _logger.info(
        "TXFLOW_CONFIG_TRACE",
        extra={
            "trace_type": "TXFLOW_CONFIG_TRACE",
            "source": settings.source,
            "checksum": settings.checksum,
            "match_threshold": settings.reconciliation.match_threshold,
            "revision_window_hours": settings.lifecycle.revision_window_hours,
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULTS_PATH",
    "LifecycleSettings",
    "ReconciliationSettings",
    "TxflowSettings",
    "ZoneModes",
    "get_active_settings",
]
