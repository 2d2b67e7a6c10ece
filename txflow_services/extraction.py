"""
Text extraction port and in-process providers.

A provider turns an uploaded image into raw text for one extraction mode.
The kernel never calls a provider; DocumentReconciliationService runs one
extraction per configured zone mode and hands the passes to the
reconciliation engine.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from txflow_engines.reconciliation.types import ExtractionPass, SemanticZone


class TextExtractionProvider(Protocol):
    """Runs one extraction mode over document bytes."""

    def extract(self, content: bytes, mode: str) -> ExtractionPass: ...


class StaticTextProvider:
    """Returns fixed text per mode; used in tests and local development.

    Modes absent from ``texts`` raise ``RuntimeError`` so callers exercise
    the failed-mode path.
    """

    def __init__(self, texts: Mapping[str, str], confidence: float | Mapping[str, float] = 0.9):
        self._texts = dict(texts)
        self._confidence = confidence
        self.calls: list[str] = []

    def extract(self, content: bytes, mode: str) -> ExtractionPass:
        self.calls.append(mode)
        if mode not in self._texts:
            raise RuntimeError(f"extraction mode {mode} unavailable")
        confidence = (
            self._confidence.get(mode, 0.0)
            if isinstance(self._confidence, Mapping)
            else self._confidence
        )
        return ExtractionPass(
            zone=SemanticZone.FALLBACK,
            text=self._texts[mode],
            confidence=float(confidence),
            mode=mode,
        )


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


def sniff_image_type(content: bytes) -> str | None:
    """Content type from magic bytes, or None for anything else."""
    if content.startswith(PNG_SIGNATURE):
        return "image/png"
    if content.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    return None
