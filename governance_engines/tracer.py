"""
governance_engines.tracer -- Engine invocation tracer emitting GOVERNANCE_ENGINE_TRACE.

Responsibility:
    ``@traced_engine`` wraps pure engine functions with a structured
    trace record carrying engine_name, engine_version, a deterministic
    input fingerprint and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure rule layer.  Emits a
    log record only; never mutates inputs.

Usage:
    from governance_engines.tracer import traced_engine

    @traced_engine("progress", "1.0", fingerprint_fields=("instance",))
    def compute_progress(*, instance, definition, now):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import time
from collections.abc import Callable
from typing import Any

from governance_kernel.logging_config import get_logger
from governance_kernel.utils.hashing import canonicalize_json

_logger = get_logger("engines.tracer")


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """SHA-256 prefix (16 hex chars) over the selected keyword arguments.

    Missing fields are recorded as null.  Values that cannot be
    canonicalized fall back to ``repr``.
    """
    selected = {field: kwargs.get(field) for field in fingerprint_fields}
    try:
        canonical = canonicalize_json(selected)
    except TypeError:
        canonical = repr(sorted(selected.items()))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits GOVERNANCE_ENGINE_TRACE at DEBUG level."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                fp = compute_input_fingerprint(fingerprint_fields, kwargs)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.debug(
                "GOVERNANCE_ENGINE_TRACE",
                extra={
                    "trace_type": "GOVERNANCE_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
