"""Logging abstraction layer for keyfinder.

Provides dual-format logging (JSON + human-readable) with run correlation and
structured context. Module loggers never get handlers of their own: output is
configured once on the package logger by ``configure_logging`` and every
``keyfinder.*`` logger propagates to it.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, cast, override

from keyfinder.const import DEFAULT_LOG_FORMAT, DEFAULT_LOG_HUMAN_OUTPUT, KEYFINDER_LOG_NAME
from keyfinder.correlation import get_correlation_id

if TYPE_CHECKING:
    from keyfinder.structs import KeyfinderEnv

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "KeyfinderLogger",
    "configure_logging",
    "get_logger",
]

# Handlers installed by configure_logging, replaced on reconfiguration
_installed_handlers: list[logging.Handler] = []


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            log_data["context"] = dict(context_map)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with run IDs."""

    def __init__(self) -> None:
        # Format: timestamp level [module:line] run_id > message
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"

        formatted = super().format(record)

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            context_str = " | ".join(f"{k}={v}" for k, v in context_map.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


class KeyfinderLogger:
    """Logger wrapper accepting a structured ``extra`` mapping on every call."""

    def __init__(self, name: str) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload: Mapping[str, object] | None = None
        if extra:
            extra_payload = {"extra_data": dict(extra)}

        # stacklevel points module:line at the caller, not at this wrapper
        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def critical(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.CRITICAL, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log exception with traceback and optional structured context."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def _human_handler(human_output: str) -> logging.Handler:
    if human_output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if human_output == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        human_path = Path(human_output)
        human_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(human_path, mode="a")
    except OSError as e:
        print(f"Warning: Failed to create human log file {human_output}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stderr)


def configure_logging(
    env: KeyfinderEnv | None = None,
    *,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    level: int | None = None,
) -> KeyfinderLogger:
    """Install handlers on the package logger.

    Explicit keyword arguments override the values from ``env``. Calling this
    again replaces the handlers from the previous call.

    Args:
        env: Resolved settings
        log_format: "json", "human", or "both"
        json_file: Path for JSON output (JSON output is file-only)
        human_output: "stdout", "stderr", or a file path
        level: Logging level; defaults to DEBUG when env.debug is set, else INFO

    Returns:
        Logger for the package root

    """
    log_format = log_format or (env.log_format if env else DEFAULT_LOG_FORMAT)
    json_file = json_file or (env.log_json_file if env else None)
    human_output = human_output or (env.log_human_output if env else DEFAULT_LOG_HUMAN_OUTPUT)
    if level is None:
        level = logging.DEBUG if env and env.debug else logging.INFO

    root = logging.getLogger(KEYFINDER_LOG_NAME)
    while _installed_handlers:
        old_handler = _installed_handlers.pop()
        root.removeHandler(old_handler)
        old_handler.close()

    handlers: list[logging.Handler] = []
    if log_format in ("json", "both") and json_file:
        try:
            json_path = Path(json_file)
            json_path.parent.mkdir(parents=True, exist_ok=True)
            json_handler = logging.FileHandler(json_path, mode="a")
            json_handler.setFormatter(JSONFormatter())
            handlers.append(json_handler)
        except OSError as e:
            print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

    if log_format in ("human", "both"):
        human_handler = _human_handler(human_output)
        human_handler.setFormatter(HumanReadableFormatter())
        handlers.append(human_handler)

    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)
        _installed_handlers.append(handler)

    root.setLevel(level)
    return KeyfinderLogger(KEYFINDER_LOG_NAME)


def get_logger(name: str) -> KeyfinderLogger:
    """Get a KeyfinderLogger for ``name`` (typically ``__name__``)."""
    return KeyfinderLogger(name)
