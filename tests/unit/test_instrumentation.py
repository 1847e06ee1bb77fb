"""
Unit tests for instrumentation module.
"""

import logging
import time

import pytest

from keyfinder.const import KEYFINDER_LOG_NAME
from keyfinder.instrumentation import measure_time, timed
from keyfinder.structs import GlobalObject, KeyfinderEnv


class TestMeasureTime:
    """Tests for measure_time"""

    def test_returns_milliseconds(self):
        start = time.perf_counter() - 0.25

        elapsed = measure_time(start)

        assert 250 <= elapsed < 10_000


class TestTimed:
    """Tests for the timed decorator"""

    def test_preserves_name_and_result(self):
        @timed("lookup")
        def lookup(value):
            """Return the value doubled."""
            return value * 2

        assert lookup(21) == 42
        assert lookup.__name__ == "lookup"
        assert lookup.__doc__ == "Return the value doubled."

    def test_propagates_exceptions(self):
        @timed()
        def failing():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            failing()

    def test_warns_over_threshold(self, caplog):
        caplog.set_level(logging.DEBUG, logger=KEYFINDER_LOG_NAME)
        GlobalObject().env = KeyfinderEnv(perf_threshold_ms=0)

        @timed("slow_scan")
        def slow_scan():
            time.sleep(0.002)

        slow_scan()

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage().startswith("slow_scan took")
        assert "threshold: 0ms" in record.getMessage()
        assert record.extra_data["operation"] == "slow_scan"

    def test_debug_under_threshold(self, caplog):
        caplog.set_level(logging.DEBUG, logger=KEYFINDER_LOG_NAME)
        GlobalObject().env = KeyfinderEnv(perf_threshold_ms=60_000)

        @timed()
        def quick():
            return None

        quick()

        record = caplog.records[-1]
        assert record.levelno == logging.DEBUG
        assert record.extra_data["operation"] == "quick"

    def test_logs_on_exception(self, caplog):
        caplog.set_level(logging.DEBUG, logger=KEYFINDER_LOG_NAME)

        @timed("broken")
        def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            broken()

        assert any(getattr(r, "extra_data", {}).get("operation") == "broken" for r in caplog.records)

    def test_disabled(self, caplog):
        caplog.set_level(logging.DEBUG, logger=KEYFINDER_LOG_NAME)
        GlobalObject().env = KeyfinderEnv(perf_tracking=False, perf_threshold_ms=0)

        @timed("untracked")
        def untracked():
            return "ok"

        assert untracked() == "ok"
        assert caplog.records == []
