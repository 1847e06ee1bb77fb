"""Packet versions, version detection and the V1 packet layout.

Two mutually exclusive packet formats are understood:

- V0: opaque payload whose last byte is an additive checksum.
- V1: SYN packet starting with the magic ``EA D0``, carrying a 16-byte
  HMAC-MD5 signature over its header and options.

The version is not encoded anywhere else, so a V0 packet that happens to
start with the V1 magic is classified as V1.
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from enum import IntEnum

from keyfinder.const import (
    MAGIC_V1,
    V1_HEADER_END,
    V1_HEADER_SECTION_OFFSET,
    V1_HEADER_START,
    V1_MIN_LENGTH,
    V1_OPTIONS_OFFSET,
    V1_OPTIONS_SIZE_INDEX,
    V1_SIGNATURE_END,
    V1_SIGNATURE_START,
)
from keyfinder.protocol.exceptions import MalformedPacketError, PacketHexDecodeError

__all__ = [
    "PacketVersion",
    "V1Packet",
    "decode_packet_hex",
    "detect_packet_version",
]

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset(string.hexdigits)


class PacketVersion(IntEnum):
    """Packet format version."""

    V0 = 0
    V1 = 1


def detect_packet_version(packet: bytes) -> PacketVersion:
    """Select the packet version from the leading two bytes.

    Example:
        >>> detect_packet_version(bytes([0xEA, 0xD0, 0x00]))
        <PacketVersion.V1: 1>
        >>> detect_packet_version(b"\\x01\\x02")
        <PacketVersion.V0: 0>

    """
    if len(packet) >= len(MAGIC_V1) and packet[: len(MAGIC_V1)] == MAGIC_V1:
        return PacketVersion.V1
    return PacketVersion.V0


def decode_packet_hex(text: str) -> bytes:
    """Decode a captured packet from hexadecimal text.

    Surrounding whitespace, whitespace between bytes and a leading ``0x`` are
    accepted. Anything else that is not a hex digit is rejected.

    Args:
        text: Hex string, e.g. "ead0 0004 ..." or "0x01020304"

    Returns:
        Decoded packet bytes

    Raises:
        PacketHexDecodeError: Empty text, odd digit count or non-hex characters

    """
    cleaned = "".join(text.split())
    if cleaned[:2].casefold() == "0x":
        cleaned = cleaned[2:]

    if not cleaned:
        error_reason = "empty"
        raise PacketHexDecodeError(error_reason, text)
    if not _HEX_DIGITS.issuperset(cleaned):
        error_reason = "invalid_hex"
        raise PacketHexDecodeError(error_reason, text)
    if len(cleaned) % 2:
        error_reason = "odd_length"
        raise PacketHexDecodeError(error_reason, text)

    packet = bytes.fromhex(cleaned)
    logger.debug("Decoded test packet: %d bytes", len(packet))
    return packet


@dataclass(frozen=True)
class V1Packet:
    """Parsed V1 (SYN) packet.

    Layout:
        [0:2]    magic EA D0
        [2:14]   header (header[1] = options size)
        [14:30]  expected HMAC-MD5 signature
        [30:30+S] options
    Bytes past the options region are ignored.
    """

    header: bytes
    signature: bytes
    options: bytes

    @property
    def options_size(self) -> int:
        return self.header[V1_OPTIONS_SIZE_INDEX]

    @property
    def header_section(self) -> bytes:
        """Last 8 bytes of the header, the part covered by the signature."""
        return self.header[V1_HEADER_SECTION_OFFSET:]

    @classmethod
    def parse(cls, packet: bytes) -> V1Packet:
        """Slice a raw packet into header, signature and options.

        Raises:
            MalformedPacketError: Missing magic, shorter than 30 bytes, or the
                options region runs past the end of the buffer

        """
        if len(packet) < V1_MIN_LENGTH:
            error_reason = "too_short"
            raise MalformedPacketError(error_reason, packet, PacketVersion.V1.name)
        if packet[: len(MAGIC_V1)] != MAGIC_V1:
            error_reason = "bad_magic"
            raise MalformedPacketError(error_reason, packet, PacketVersion.V1.name)

        header = packet[V1_HEADER_START:V1_HEADER_END]
        options_size = header[V1_OPTIONS_SIZE_INDEX]
        options_end = V1_OPTIONS_OFFSET + options_size
        if options_end > len(packet):
            error_reason = "options_overrun"
            raise MalformedPacketError(error_reason, packet, PacketVersion.V1.name)

        logger.debug(
            "Parsed V1 packet: header=%s, options_size=%d, trailing=%d",
            header.hex(" "),
            options_size,
            len(packet) - options_end,
        )

        return cls(
            header=header,
            signature=packet[V1_SIGNATURE_START:V1_SIGNATURE_END],
            options=packet[V1_OPTIONS_OFFSET:options_end],
        )
