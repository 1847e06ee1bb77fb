from __future__ import annotations

import os
from argparse import Namespace
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from keyfinder.const import (
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_HUMAN_OUTPUT,
    DEFAULT_METRICS_PORT,
    DEFAULT_PERF_THRESHOLD_MS,
    ENV_PREFIX,
    KEYFINDER_DEBUG,
)
from keyfinder.protocol.exceptions import ConfigError

__all__ = [
    "GlobalObject",
    "KeyfinderEnv",
    "SearchReport",
    "load_env",
]


class KeyfinderEnv(BaseModel):
    """Runtime settings.

    Each field can be set in the YAML config file under its own name, or via
    the environment as ``KEYFINDER_<FIELD NAME IN CAPS>``; the environment wins.
    """

    model_config = ConfigDict(extra="forbid")

    debug: bool = KEYFINDER_DEBUG
    log_format: Literal["json", "human", "both"] = DEFAULT_LOG_FORMAT  # type: ignore[assignment]
    log_json_file: str | None = None
    log_human_output: str = DEFAULT_LOG_HUMAN_OUTPUT
    perf_tracking: bool = True
    perf_threshold_ms: int = Field(default=DEFAULT_PERF_THRESHOLD_MS, ge=0)
    metrics_enabled: bool = False
    metrics_port: int = Field(default=DEFAULT_METRICS_PORT, ge=1, le=65535)


def _read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        with config_path.open(encoding="utf-8") as config_file:
            loaded: object = yaml.safe_load(config_file)
    except OSError as e:
        raise ConfigError(str(e), str(config_path)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", str(config_path)) from e

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError("top level must be a mapping", str(config_path))
    return {str(k): v for k, v in loaded.items()}


def load_env(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> KeyfinderEnv:
    """Resolve settings from defaults, an optional YAML file and the environment.

    Args:
        config_path: YAML file with setting names as keys
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated settings

    Raises:
        ConfigError: Unreadable file, non-mapping YAML, unknown keys or invalid values

    """
    values: dict[str, Any] = {}
    source = "environment"
    if config_path is not None:
        source = str(config_path)
        values.update(_read_config_file(Path(config_path)))

    environ = os.environ if environ is None else environ
    for field_name in KeyfinderEnv.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if raw:
            values[field_name] = raw

    try:
        return KeyfinderEnv.model_validate(values)
    except ValidationError as e:
        raise ConfigError(str(e), source) from e


class SearchReport(BaseModel):
    """Outcome of one CLI run, as printed with ``--json``."""

    image: str
    status: Literal["found", "not_found", "no_candidates", "listed"]
    candidates: list[str] = Field(default_factory=list)
    packet_version: str | None = None
    key: str | None = None
    attempts: int = 0
    elapsed_ms: float = 0.0


class GlobalObject:
    """Singleton holding the resolved settings and CLI arguments."""

    env: KeyfinderEnv = KeyfinderEnv()
    cli_args: Namespace | None = None

    _instance: GlobalObject | None = None

    def __new__(cls, *_args: Any, **_kwargs: Any) -> GlobalObject:
        """Ensure only one GlobalObject instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reload_env(self, config_path: str | Path | None = None) -> KeyfinderEnv:
        """Re-read settings, e.g. after a .env file has been loaded."""
        self.env = load_env(config_path)
        return self.env
