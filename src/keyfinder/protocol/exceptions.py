"""Custom exception types for keyfinder errors.

This module defines the exception hierarchy for everything the package
raises. Errors raise exceptions instead of returning None; an exhausted
key search is not an error and is reported as ``NoMatch`` instead.
"""

from __future__ import annotations

from pathlib import Path

# Only this many bytes/characters of caller input are kept on an exception
PREVIEW_LENGTH = 16


class KeyfinderError(Exception):
    """Base exception for all keyfinder errors.

    Catch this to handle every input-validation failure at once (the CLI
    does), while the subclasses allow specific handling.
    """


class MalformedPacketError(KeyfinderError):
    """Packet does not fit the layout of its detected version.

    Raised when a V0 packet is empty, or a V1 packet is shorter than its
    fixed 30-byte prefix or declares an options region running past the end
    of the buffer. Fatal to the current search; never retried.

    Attributes:
        reason: Specific failure reason ("too_short", "options_overrun", "bad_magic")
        version: Packet version name the packet was parsed as ("V0" or "V1")
        data_preview: First 16 bytes of the packet

    """

    def __init__(self, reason: str, data: bytes = b"", version: str = "unknown"):
        self.reason = reason
        self.version = version
        self.data_preview = data[:PREVIEW_LENGTH] if data else b""
        super().__init__(f"Malformed {version} packet: {reason} ({len(data)} bytes)")


class PacketHexDecodeError(KeyfinderError):
    """Test packet text is not valid hexadecimal.

    Attributes:
        reason: Specific failure reason ("empty", "odd_length", "invalid_hex")
        text_preview: First 16 characters of the offending text

    """

    def __init__(self, reason: str, text: str = ""):
        self.reason = reason
        self.text_preview = text[:PREVIEW_LENGTH] if text else ""
        super().__init__(f"Packet hex decode failed: {reason}")


class ImageReadError(KeyfinderError):
    """Title image could not be read from storage.

    Attributes:
        path: Path that was being read
        reason: Underlying OS error message

    """

    def __init__(self, path: str | Path, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Error reading title image {self.path}: {reason}")


class ConfigError(KeyfinderError):
    """Configuration file or environment could not be loaded.

    Attributes:
        reason: What went wrong
        source: File path or "environment"

    """

    def __init__(self, reason: str, source: str = "environment"):
        self.reason = reason
        self.source = source
        super().__init__(f"Invalid configuration ({source}): {reason}")
