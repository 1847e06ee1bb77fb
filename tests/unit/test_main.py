"""Unit tests for main.py module.

Tests the CLI flow end to end: argument parsing, settings, output and exit codes.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from keyfinder.main import (
    EXIT_INPUT_ERROR,
    EXIT_NO_KEY,
    EXIT_OK,
    NOT_FOUND_MSG,
    RANKING_HINT,
    format_report,
    main,
    parse_cli,
)
from keyfinder.structs import GlobalObject, SearchReport
from tests.fixtures.packets import build_v1_packet

# "0a1b2c3d" sums to 0x250, so over four zero bytes its checksum is 0x50
V0_PACKET_HEX = "0000000050"


@pytest.fixture
def image_path(tmp_path: Path, title_image: bytes) -> Path:
    path = tmp_path / "title.xbe"
    path.write_bytes(title_image)
    return path


class TestParseCli:
    """Tests for parse_cli"""

    def test_positional_arguments(self):
        args = parse_cli(["title.xbe", "ead0"])

        assert args.image == Path("title.xbe")
        assert args.packet == "ead0"
        assert args.debug is False
        assert args.json_output is False
        assert GlobalObject().cli_args is args

    def test_packet_is_optional(self):
        args = parse_cli(["title.xbe", "-D", "--json"])

        assert args.packet is None
        assert args.debug is True
        assert args.json_output is True

    def test_image_is_required(self):
        with pytest.raises(SystemExit):
            parse_cli([])


class TestMainOutcomes:
    """Tests for each CLI outcome"""

    def test_lists_candidates_without_packet(self, image_path, capsys):
        exit_code = main([str(image_path)])

        out = capsys.readouterr().out
        assert exit_code == EXIT_OK
        assert RANKING_HINT in out
        assert out.index("c0ffee00") < out.index("ffffffff") < out.index("0a1b2c3d")
        assert "Parsing took:" in out

    def test_finds_v0_key(self, image_path, capsys):
        exit_code = main([str(image_path), V0_PACKET_HEX])

        out = capsys.readouterr().out
        assert exit_code == EXIT_OK
        assert "Found working access key: 0a1b2c3d" in out

    def test_finds_v1_key(self, image_path, capsys):
        packet_hex = build_v1_packet("ffffffff").hex()

        exit_code = main([str(image_path), packet_hex])

        assert exit_code == EXIT_OK
        assert "Found working access key: ffffffff" in capsys.readouterr().out

    def test_no_key_matches(self, image_path, capsys):
        exit_code = main([str(image_path), build_v1_packet("deadbeef").hex()])

        out = capsys.readouterr().out
        assert exit_code == EXIT_NO_KEY
        assert NOT_FOUND_MSG in out

    def test_no_candidates_in_image(self, tmp_path, capsys):
        empty_image = tmp_path / "empty.bin"
        empty_image.write_bytes(b"\x00\x01\x02\x03")

        exit_code = main([str(empty_image), V0_PACKET_HEX])

        assert exit_code == EXIT_NO_KEY
        assert "No possible access keys found" in capsys.readouterr().out

    def test_json_output(self, image_path, capsys):
        exit_code = main([str(image_path), V0_PACKET_HEX, "--json"])

        report = json.loads(capsys.readouterr().out)
        assert exit_code == EXIT_OK
        assert report["status"] == "found"
        assert report["key"] == "0a1b2c3d"
        assert report["packet_version"] == "V0"
        assert report["attempts"] == 3
        assert report["candidates"] == ["c0ffee00", "ffffffff", "0a1b2c3d"]


class TestMainInputErrors:
    """Tests for input validation failures"""

    def test_missing_image(self, tmp_path, capsys):
        exit_code = main([str(tmp_path / "missing.xbe")])

        captured = capsys.readouterr()
        assert exit_code == EXIT_INPUT_ERROR
        assert captured.out == ""
        assert "missing.xbe" in captured.err

    def test_invalid_packet_hex(self, image_path, capsys):
        exit_code = main([str(image_path), "not-hex"])

        assert exit_code == EXIT_INPUT_ERROR
        assert "invalid_hex" in capsys.readouterr().err

    def test_malformed_v1_packet(self, image_path, capsys):
        exit_code = main([str(image_path), "ead000ff" + "00" * 26])

        assert exit_code == EXIT_INPUT_ERROR
        assert "options_overrun" in capsys.readouterr().err

    def test_missing_env_file(self, image_path, tmp_path, capsys):
        exit_code = main([str(image_path), "--env", str(tmp_path / "missing.env")])

        assert exit_code == EXIT_INPUT_ERROR
        assert "environment file not found" in capsys.readouterr().err

    def test_invalid_config_file(self, image_path, tmp_path, capsys):
        config = tmp_path / "keyfinder.yaml"
        config.write_text("log_format: xml\n")

        exit_code = main([str(image_path), "--config", str(config)])

        assert exit_code == EXIT_INPUT_ERROR
        assert "Failed to load settings" in capsys.readouterr().err


class TestMainSettings:
    """Tests for settings applied by the CLI"""

    def test_debug_flag(self, image_path, capsys):
        main([str(image_path), V0_PACKET_HEX, "-D"])

        assert GlobalObject().env.debug is True
        assert "Trying key: c0ffee00" in capsys.readouterr().err

    def test_env_file_loaded(self, image_path, tmp_path, capsys):
        env_file = tmp_path / ".env"
        env_file.write_text("KEYFINDER_PERF_THRESHOLD_MS=12345\n")

        with patch.dict(os.environ):
            exit_code = main([str(image_path), "--env", str(env_file)])

        assert exit_code == EXIT_OK
        assert GlobalObject().env.perf_threshold_ms == 12345

    def test_config_file_json_logging(self, image_path, tmp_path, capsys):
        log_file = tmp_path / "logs" / "keyfinder.jsonl"
        config = tmp_path / "keyfinder.yaml"
        config.write_text(f"log_format: json\nlog_json_file: {log_file}\n")

        exit_code = main([str(image_path), V0_PACKET_HEX, "--config", str(config)])

        assert exit_code == EXIT_OK
        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        messages = [r["message"] for r in records]
        assert "Found working access key: 0a1b2c3d" in messages
        # One run, one correlation id
        assert len({r["correlation_id"] for r in records}) == 1
        assert capsys.readouterr().err == ""


class TestFormatReport:
    """Tests for format_report"""

    def test_listed(self):
        text = format_report(SearchReport(image="x", status="listed", candidates=["aa", "bb"], elapsed_ms=1.5))

        assert text.splitlines() == [
            "No test packet provided",
            RANKING_HINT,
            "    1  aa",
            "    2  bb",
            "Parsing took: 1.500ms",
        ]

    def test_not_found(self):
        text = format_report(SearchReport(image="x", status="not_found"))

        assert text.splitlines()[0] == NOT_FOUND_MSG
