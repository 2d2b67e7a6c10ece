"""
txflow_engines.tracer -- invocation tracer emitting TXFLOW_ENGINE_TRACE.

Responsibility:
    ``@traced_engine`` wraps pure engine calls with one structured log
    record: engine name and version, a deterministic fingerprint of the
    selected keyword inputs, the duration, and an optional summary of the
    result (e.g. the reconciliation verdict).

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.  It
    only reads kwargs and emits a log record; engine purity is unaffected.

Failure modes:
    - Missing fingerprint fields are recorded as "null".
    - Unknown value types fall back to ``str(value)``; frozen dataclasses
      have a stable repr, so fingerprints stay deterministic for engine
      inputs.
"""

from __future__ import annotations

import functools
import hashlib
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from typing import Any

from txflow_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, (int, float, str)):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return _canonicalize(asdict(value))
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the canonical form of selected kwargs."""
    parts = [f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    summarize: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable:
    """Decorator that emits TXFLOW_ENGINE_TRACE for a pure engine call.

    Args:
        engine_name: Engine identifier (e.g. "reconciliation").
        engine_version: Engine version (e.g. "1.0").
        fingerprint_fields: Keyword argument names hashed into the
            input fingerprint.
        summarize: Optional callable turning the result into extra
            log fields.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = compute_input_fingerprint(fingerprint_fields, kwargs) if fingerprint_fields else ""

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            extra: dict[str, Any] = {
                "trace_type": "TXFLOW_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fp,
                "duration_ms": duration_ms,
                "function": func.__qualname__,
            }
            if summarize is not None:
                extra.update(summarize(result))
            _logger.info("TXFLOW_ENGINE_TRACE", extra=extra)
            return result

        return wrapper

    return decorator
