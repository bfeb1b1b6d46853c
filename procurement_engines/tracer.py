"""
procurement_engines.tracer -- One PROCUREMENT_ENGINE_TRACE record per engine call.

``@traced_engine`` wraps a pure engine method. After the call returns it
logs the engine name and version, a fingerprint of the keyword inputs that
determine the result, the elapsed time, and whatever the optional
``summarize`` callable extracts from the result (line count, shortfall, ...).

Fingerprints hash a sorted-key JSON rendering of the chosen inputs, with
Decimals and dates in their ``str()`` form, so equal inputs give equal
fingerprints across processes.
"""

from __future__ import annotations

import functools
import hashlib
import json
import time
from collections.abc import Callable, Mapping
from typing import Any

from procurement_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_MESSAGE = "PROCUREMENT_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """Hash the named keyword inputs; absent ones hash as null."""
    selected = {name: kwargs.get(name) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    summarize: Callable[[Any], Mapping[str, Any]] | None = None,
) -> Callable:
    """Decorate an engine method so each call emits a trace record.

    Failed calls are not traced; the exception propagates untouched.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

            trace: dict[str, Any] = {
                "trace_type": TRACE_MESSAGE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "function": func.__qualname__,
                "input_fingerprint": (
                    compute_input_fingerprint(fingerprint_fields, kwargs)
                    if fingerprint_fields else ""
                ),
                "duration_ms": elapsed_ms,
            }
            if summarize is not None:
                trace.update(summarize(result))
            logger.info(TRACE_MESSAGE, extra=trace)
            return result

        return wrapper

    return decorator
