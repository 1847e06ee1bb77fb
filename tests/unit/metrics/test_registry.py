"""Unit tests for metrics registry."""

from __future__ import annotations

from unittest.mock import patch

from prometheus_client import REGISTRY

from keyfinder.metrics import registry


class TestSearchMetrics:
    """Tests for key search metrics."""

    def test_record_key_attempt(self) -> None:
        """Test record_key_attempt helper."""
        before = REGISTRY.get_sample_value("keyfinder_key_attempts_total", {"version": "V0"}) or 0.0

        registry.record_key_attempt("V0")
        registry.record_key_attempt("V0")

        after = REGISTRY.get_sample_value("keyfinder_key_attempts_total", {"version": "V0"})
        assert after - before == 2

    def test_record_search(self) -> None:
        """Test record_search helper."""
        registry.record_search("V1", "not_found")
        samples = list(registry.keyfinder_searches_total.collect()[0].samples)
        assert any(s.labels == {"version": "V1", "outcome": "not_found"} for s in samples)

    def test_record_malformed_packet(self) -> None:
        """Test record_malformed_packet helper."""
        registry.record_malformed_packet("V1", "options_overrun")
        samples = list(registry.keyfinder_malformed_packets_total.collect()[0].samples)
        assert any(s.labels == {"version": "V1", "reason": "options_overrun"} for s in samples)

    def test_record_search_duration(self) -> None:
        """Test record_search_duration helper."""
        registry.record_search_duration("V0", 0.002)
        samples = list(registry.keyfinder_search_duration_seconds.collect()[0].samples)
        assert any(s.name.endswith("_count") and s.labels == {"version": "V0"} for s in samples)


class TestExtractionMetrics:
    """Tests for extraction metrics."""

    def test_record_candidates_sets_latest_value(self) -> None:
        """Gauge holds the count of the most recent scan."""
        registry.record_candidates("utf16", 5)
        registry.record_candidates("utf16", 2)

        samples = list(registry.keyfinder_candidates.collect()[0].samples)
        sample = next(s for s in samples if s.labels == {"encoding": "utf16"})
        assert sample.value == 2.0


class TestMetricsServer:
    """Tests for start_metrics_server."""

    def test_starts_once(self) -> None:
        """Repeated calls start a single HTTP server."""
        with (
            patch.dict(registry._server_state, {"started": False}),
            patch.object(registry, "start_http_server") as start_http_server,
        ):
            registry.start_metrics_server(9401)
            registry.start_metrics_server(9401)

        start_http_server.assert_called_once_with(9401)
