"""Prometheus metrics registry for key searches."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

# Metric definitions
keyfinder_key_attempts_total: Final = Counter(  # type: ignore[assignment]
    "keyfinder_key_attempts_total",
    "Total candidate keys verified against a packet",
    ["version"],
)

keyfinder_searches_total: Final = Counter(  # type: ignore[assignment]
    "keyfinder_searches_total",
    "Total key searches",
    ["version", "outcome"],
)

keyfinder_malformed_packets_total: Final = Counter(  # type: ignore[assignment]
    "keyfinder_malformed_packets_total",
    "Total packets rejected as malformed",
    ["version", "reason"],
)

keyfinder_candidates: Final = Gauge(  # type: ignore[assignment]
    "keyfinder_candidates",
    "Candidate keys found in the last scanned image",
    ["encoding"],
)

keyfinder_search_duration_seconds: Final = Histogram(  # type: ignore[assignment]
    "keyfinder_search_duration_seconds",
    "Key search duration in seconds",
    ["version"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_key_attempt(version: str) -> None:
    """Record one candidate key verification."""
    keyfinder_key_attempts_total.labels(version=version).inc()  # type: ignore[no-untyped-call]


def record_search(version: str, outcome: str) -> None:
    """Record a finished search ("found" or "not_found")."""
    keyfinder_searches_total.labels(version=version, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_malformed_packet(version: str, reason: str) -> None:
    """Record a packet rejected before the search started."""
    keyfinder_malformed_packets_total.labels(version=version, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_candidates(encoding: str, count: int) -> None:
    """Record how many candidates an extraction pass produced."""
    keyfinder_candidates.labels(encoding=encoding).set(count)  # type: ignore[no-untyped-call]


def record_search_duration(version: str, duration_seconds: float) -> None:
    """Record search duration."""
    keyfinder_search_duration_seconds.labels(version=version).observe(duration_seconds)  # type: ignore[no-untyped-call]
