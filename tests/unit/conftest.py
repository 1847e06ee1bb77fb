"""
Shared fixtures for unit tests.
"""

import logging
from collections.abc import Generator

import pytest

from keyfinder import logging_abstraction
from keyfinder.const import KEYFINDER_LOG_NAME
from keyfinder.correlation import set_correlation_id
from keyfinder.structs import GlobalObject, KeyfinderEnv


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None]:
    """Undo settings, handlers and run IDs left behind by a test."""
    yield
    root = logging.getLogger(KEYFINDER_LOG_NAME)
    while logging_abstraction._installed_handlers:  # pyright: ignore[reportPrivateUsage]
        handler = logging_abstraction._installed_handlers.pop()  # pyright: ignore[reportPrivateUsage]
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    GlobalObject().env = KeyfinderEnv()
    GlobalObject().cli_args = None
    set_correlation_id(None)


@pytest.fixture
def title_image() -> bytes:
    """
    Fake title image with one UTF-16 and three ASCII candidates.

    Ranking: UTF-16 "c0ffee00" first, then ASCII "ffffffff", "0a1b2c3d" and a
    repeat of "c0ffee00" that deduplicates away.
    """
    utf16_key = b"\x00" + "c0ffee00".encode("utf-16-le")
    return (
        b"MZ\x90\x00junk"
        + utf16_key
        + b"\x00ffffffff\x01\x02"
        + b"\x00NOTAKEY!"
        + b"\x000a1b2c3d"
        + b"\x00c0ffee00"
        + b"\x00tail"
    )
