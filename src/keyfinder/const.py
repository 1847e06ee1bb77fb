from __future__ import annotations

import os
from typing import Final

from keyfinder import __version__

__all__ = [
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_HUMAN_OUTPUT",
    "DEFAULT_METRICS_PORT",
    "DEFAULT_PERF_THRESHOLD_MS",
    "ENV_PREFIX",
    "KEYFINDER_DEBUG",
    "KEYFINDER_LOG_NAME",
    "KEYFINDER_VERSION",
    "MAGIC_V1",
    "SIGNATURE_LENGTH",
    "V1_HEADER_END",
    "V1_HEADER_SECTION_OFFSET",
    "V1_HEADER_START",
    "V1_MIN_LENGTH",
    "V1_OPTIONS_OFFSET",
    "V1_OPTIONS_SIZE_INDEX",
    "V1_SIGNATURE_END",
    "V1_SIGNATURE_START",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")

KEYFINDER_VERSION: str = __version__
KEYFINDER_LOG_NAME: str = "keyfinder"
ENV_PREFIX: str = "KEYFINDER_"

# V1 (SYN) packet layout
MAGIC_V1: Final[bytes] = b"\xea\xd0"
V1_HEADER_START: Final[int] = 2
V1_HEADER_END: Final[int] = 14
V1_SIGNATURE_START: Final[int] = 14
V1_SIGNATURE_END: Final[int] = 30
V1_OPTIONS_OFFSET: Final[int] = 30
V1_MIN_LENGTH: Final[int] = 30
V1_OPTIONS_SIZE_INDEX: Final[int] = 1  # index within the 12-byte header
V1_HEADER_SECTION_OFFSET: Final[int] = 4  # header[4:] is signed
SIGNATURE_LENGTH: Final[int] = 16

DEFAULT_LOG_FORMAT: str = "human"
# stdout is reserved for results
DEFAULT_LOG_HUMAN_OUTPUT: str = "stderr"
DEFAULT_PERF_THRESHOLD_MS: int = 1000
DEFAULT_METRICS_PORT: int = 9400

KEYFINDER_DEBUG: bool = os.environ.get("KEYFINDER_DEBUG", "0").casefold() in YES_ANSWER
