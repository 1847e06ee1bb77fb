"""
Timing instrumentation for extraction and key searches.

Provides a decorator that logs how long an operation took, warning when it
exceeds the configured threshold. Controlled by the ``perf_tracking`` and
``perf_threshold_ms`` settings.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import ParamSpec, TypeVar

from keyfinder.logging_abstraction import KeyfinderLogger, get_logger
from keyfinder.structs import GlobalObject

__all__ = [
    "measure_time",
    "timed",
]

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)


def measure_time(start_time: float) -> float:
    """
    Calculate elapsed time in milliseconds.

    Args:
        start_time: Start time from time.perf_counter()

    Returns:
        Elapsed time in milliseconds
    """
    return (time.perf_counter() - start_time) * 1000


def timed(operation_name: str | None = None) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator timing a synchronous function.

    Args:
        operation_name: Name for the operation (defaults to function name)

    Example:
        @timed("extract_candidates")
        def extract_candidates(image):
            ...
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            env = GlobalObject().env
            if not env.perf_tracking:
                return func(*args, **kwargs)

            op_name = operation_name or func.__name__
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                _log_timing(logger, op_name, measure_time(start_time), env.perf_threshold_ms)

        return wrapper

    return decorator


def _log_timing(log: KeyfinderLogger, operation_name: str, elapsed_ms: float, threshold_ms: int) -> None:
    extra = {"operation": operation_name, "elapsed_ms": round(elapsed_ms, 3)}
    if elapsed_ms > threshold_ms:
        log.warning("%s took %.2fms (threshold: %dms)", operation_name, elapsed_ms, threshold_ms, extra=extra)
    else:
        log.debug("%s took %.2fms", operation_name, elapsed_ms, extra=extra)
