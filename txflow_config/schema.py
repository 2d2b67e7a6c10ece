"""
Settings schema.

Frozen dataclasses parsed from YAML by the loader.  Services receive
these values through their constructors; nothing below the service
layer reads configuration directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ZoneModes:
    """Extraction mode used for each semantic zone."""

    header: str = "4"
    items: str = "6"
    total: str = "12"
    fallback: str = "11"

    def as_dict(self) -> dict[str, str]:
        return {
            "header": self.header,
            "items": self.items,
            "total": self.total,
            "fallback": self.fallback,
        }


@dataclass(frozen=True)
class ReconciliationSettings:
    match_threshold: float = 0.75
    warning_floor: float = 0.5
    amount_tolerance: Decimal = Decimal("0.01")
    amount_warning_band: Decimal = Decimal("0.05")
    zone_modes: ZoneModes = field(default_factory=ZoneModes)
    allowed_content_types: tuple[str, ...] = ("image/png", "image/jpeg", "image/jpg")


@dataclass(frozen=True)
class LifecycleSettings:
    revision_window_hours: int = 48
    default_editable_sections: tuple[str, ...] = ("header", "items", "documents")
    sweep_interval_seconds: int = 300
    sweep_initial_delay_seconds: int = 10
    default_currency: str = "IDR"


@dataclass(frozen=True)
class TxflowSettings:
    """Root settings object returned by ``get_active_settings()``."""

    reconciliation: ReconciliationSettings = field(default_factory=ReconciliationSettings)
    lifecycle: LifecycleSettings = field(default_factory=LifecycleSettings)
    checksum: str = ""
    source: str = "<defaults>"
