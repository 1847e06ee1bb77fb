"""
Run ID tracking for log correlation.

Every CLI invocation (and any caller that opts in) runs inside a correlation
context, so all log lines produced while extracting candidates and searching
for a key can be grouped by one ID.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "keyfinder_correlation_id",
    default=None,
)


def generate_correlation_id() -> str:
    """Return a new run ID (UUID4 hex, 32 characters)."""
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str]:
    """
    Scope a run ID to a block, restoring the previous one on exit.

    Args:
        correlation_id: ID to use; a new one is generated when omitted

    Yields:
        The run ID in effect inside the block

    Example:
        with correlation_context() as run_id:
            logger.info("Parsing title image")  # tagged with run_id
    """
    previous_id = get_correlation_id()
    current_id = correlation_id or generate_correlation_id()
    set_correlation_id(current_id)
    try:
        yield current_id
    finally:
        set_correlation_id(previous_id)


def ensure_correlation_id() -> str:
    """Return the current run ID, creating one if none is set."""
    current_id = get_correlation_id()
    if current_id is None:
        current_id = generate_correlation_id()
        set_correlation_id(current_id)
    return current_id
