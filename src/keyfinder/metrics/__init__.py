"""Metrics module."""

from . import registry
from .registry import (
    record_candidates,
    record_key_attempt,
    record_malformed_packet,
    record_search,
    record_search_duration,
    start_metrics_server,
)

__all__ = [
    "record_candidates",
    "record_key_attempt",
    "record_malformed_packet",
    "record_search",
    "record_search_duration",
    "registry",
    "start_metrics_server",
]
