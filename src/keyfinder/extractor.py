"""
Candidate access key extraction from title images.

Access keys are eight lowercase hex characters stored right after a NUL
byte, either as UTF-16LE or as plain ASCII. Every such string in the image
is a candidate. UTF-16 matches are ranked first, then ASCII matches, each in
file order; in practice the real key is usually among the first few.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from typing import Final

from keyfinder import metrics
from keyfinder.instrumentation import timed
from keyfinder.logging_abstraction import get_logger
from keyfinder.protocol.exceptions import ImageReadError

__all__ = [
    "UTF8_KEY_PATTERN",
    "UTF16_KEY_PATTERN",
    "extract_candidates",
    "find_utf8_candidates",
    "find_utf16_candidates",
    "read_image",
    "unique_strings",
]

logger = get_logger(__name__)

UTF16_KEY_PATTERN: Final = re.compile(rb"\x00([a-f0-9]\x00){8}")
UTF8_KEY_PATTERN: Final = re.compile(rb"\x00([a-f0-9]){8}")


def read_image(path: str | Path) -> bytes:
    """Read a title image into memory.

    Raises:
        ImageReadError: If the file cannot be read

    """
    image_path = Path(path)
    try:
        image = image_path.read_bytes()
    except OSError as e:
        raise ImageReadError(image_path, e.strerror or str(e)) from e
    logger.debug("Read title image", extra={"path": str(image_path), "bytes": len(image)})
    return image


def _find_candidates(pattern: re.Pattern[bytes], image: bytes) -> list[str]:
    return [m.group(0).replace(b"\x00", b"").decode("ascii") for m in pattern.finditer(image)]


def find_utf16_candidates(image: bytes) -> list[str]:
    """NUL-prefixed UTF-16LE hex strings, NULs stripped, in file order."""
    return _find_candidates(UTF16_KEY_PATTERN, image)


def find_utf8_candidates(image: bytes) -> list[str]:
    """NUL-prefixed ASCII hex strings, NUL stripped, in file order."""
    return _find_candidates(UTF8_KEY_PATTERN, image)


def unique_strings(values: Iterable[str]) -> list[str]:
    """Drop repeated strings, keeping the first occurrence of each."""
    return list(dict.fromkeys(values))


@timed("extract_candidates")
def extract_candidates(image: bytes) -> list[str]:
    """Return the ranked, deduplicated candidate keys found in ``image``."""
    utf16_matches = find_utf16_candidates(image)
    utf8_matches = find_utf8_candidates(image)
    metrics.record_candidates("utf16", len(utf16_matches))
    metrics.record_candidates("utf8", len(utf8_matches))

    candidates = unique_strings([*utf16_matches, *utf8_matches])
    logger.info(
        "Found %d possible access keys",
        len(candidates),
        extra={"utf16": len(utf16_matches), "utf8": len(utf8_matches)},
    )
    return candidates
