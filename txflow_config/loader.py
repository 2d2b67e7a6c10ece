"""
Settings loader (``txflow_config.loader``).

Responsibility
--------------
Reads YAML settings files and parses them into the frozen dataclasses of
``txflow_config.schema``.  Runtime callers go through
``txflow_config.get_active_settings()``.

Invariants enforced
-------------------
* Unknown keys and out-of-range values raise ``ValueError``; there are no
  silent fallbacks for values that are present but wrong.
* ``compute_checksum`` is deterministic for identical parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from txflow_config.schema import (
    LifecycleSettings,
    ReconciliationSettings,
    TxflowSettings,
    ZoneModes,
)

_SECTIONS = {"reconciliation", "lifecycle"}
_EDITABLE_SECTIONS = {"header", "items", "documents"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def _reject_unknown(section: str, data: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {sorted(unknown)}")


def _decimal(section: str, key: str, value: Any) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{section}.{key} must be a decimal, got {value!r}") from None
    if result < 0 or result >= 1:
        raise ValueError(f"{section}.{key} must be in [0, 1), got {value!r}")
    return result


def parse_reconciliation(data: dict[str, Any]) -> ReconciliationSettings:
    defaults = ReconciliationSettings()
    _reject_unknown("reconciliation", data, {
        "match_threshold", "warning_floor", "amount_tolerance",
        "amount_warning_band", "zone_modes", "allowed_content_types",
    })
    modes = data.get("zone_modes") or {}
    _reject_unknown("reconciliation.zone_modes", modes, {"header", "items", "total", "fallback"})
    default_modes = defaults.zone_modes

    settings = ReconciliationSettings(
        match_threshold=float(data.get("match_threshold", defaults.match_threshold)),
        warning_floor=float(data.get("warning_floor", defaults.warning_floor)),
        amount_tolerance=_decimal(
            "reconciliation", "amount_tolerance",
            data.get("amount_tolerance", defaults.amount_tolerance),
        ),
        amount_warning_band=_decimal(
            "reconciliation", "amount_warning_band",
            data.get("amount_warning_band", defaults.amount_warning_band),
        ),
        zone_modes=ZoneModes(
            header=str(modes.get("header", default_modes.header)),
            items=str(modes.get("items", default_modes.items)),
            total=str(modes.get("total", default_modes.total)),
            fallback=str(modes.get("fallback", default_modes.fallback)),
        ),
        allowed_content_types=tuple(
            str(t).lower()
            for t in data.get("allowed_content_types", defaults.allowed_content_types)
        ),
    )
    if not 0 <= settings.warning_floor <= settings.match_threshold <= 1:
        raise ValueError(
            "reconciliation thresholds must satisfy 0 <= warning_floor <= match_threshold <= 1"
        )
    if settings.amount_warning_band < settings.amount_tolerance:
        raise ValueError("reconciliation.amount_warning_band must be >= amount_tolerance")
    if not settings.allowed_content_types:
        raise ValueError("reconciliation.allowed_content_types must not be empty")
    return settings


def parse_lifecycle(data: dict[str, Any]) -> LifecycleSettings:
    defaults = LifecycleSettings()
    _reject_unknown("lifecycle", data, {
        "revision_window_hours", "default_editable_sections", "sweep_interval_seconds",
        "sweep_initial_delay_seconds", "default_currency",
    })
    sections = tuple(
        str(s) for s in data.get("default_editable_sections", defaults.default_editable_sections)
    )
    bad = sorted(set(sections) - _EDITABLE_SECTIONS)
    if bad or not sections:
        raise ValueError(f"lifecycle.default_editable_sections invalid: {bad or 'empty'}")

    settings = LifecycleSettings(
        revision_window_hours=int(data.get("revision_window_hours", defaults.revision_window_hours)),
        default_editable_sections=sections,
        sweep_interval_seconds=int(
            data.get("sweep_interval_seconds", defaults.sweep_interval_seconds)
        ),
        sweep_initial_delay_seconds=int(
            data.get("sweep_initial_delay_seconds", defaults.sweep_initial_delay_seconds)
        ),
        default_currency=str(data.get("default_currency", defaults.default_currency)).upper(),
    )
    if settings.revision_window_hours <= 0:
        raise ValueError("lifecycle.revision_window_hours must be positive")
    if settings.sweep_interval_seconds <= 0 or settings.sweep_initial_delay_seconds < 0:
        raise ValueError("lifecycle sweep timings must be positive")
    if len(settings.default_currency) != 3:
        raise ValueError("lifecycle.default_currency must be a 3-letter code")
    return settings


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def merge_settings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-wise shallow merge; override keys win."""
    merged = {section: dict(base.get(section) or {}) for section in _SECTIONS}
    for section, values in override.items():
        if section not in _SECTIONS:
            raise ValueError(f"Unknown settings section: {section!r}")
        merged[section].update(values or {})
    return merged


def parse_settings(data: dict[str, Any], source: str = "<memory>") -> TxflowSettings:
    _reject_unknown("<root>", data, _SECTIONS)
    reconciliation = parse_reconciliation(data.get("reconciliation") or {})
    lifecycle = parse_lifecycle(data.get("lifecycle") or {})
    return TxflowSettings(
        reconciliation=reconciliation,
        lifecycle=lifecycle,
        checksum=compute_checksum(data),
        source=source,
    )
