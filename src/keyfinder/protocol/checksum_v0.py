"""Legacy (V0) packet checksum.

The V0 checksum is a single byte appended to the packet. It mixes an 8-bit
sum of the access key with a 32-bit little-endian word sum of the payload:

    key_sum  = sum(key bytes)                      mod 2**8
    word_sum = sum(LE u32 words of data)           mod 2**32
               (trailing 1-3 bytes form a partial word, each byte placed in
               the lane given by its absolute index % 4)
    key_sum += each trailing byte                  mod 2**8
    key_sum += each byte lane of word_sum          mod 2**8

Trailing bytes are counted twice: once through the partial word and once
directly into key_sum. Titles compute it this way, so it is kept.
"""

from __future__ import annotations

import logging
from typing import Final

from keyfinder.protocol.exceptions import MalformedPacketError
from keyfinder.protocol.packet_types import PacketVersion

__all__ = ["ChecksumV0Engine"]

BYTE_MASK: Final[int] = 0xFF
WORD_MASK: Final[int] = 0xFFFFFFFF
WORD_SIZE: Final[int] = 4

logger = logging.getLogger(__name__)


class ChecksumV0Engine:
    """V0 checksum calculator and verifier.

    All methods are stateless; an instance exists only so the engine can be
    injected into KeySearch.
    """

    version: Final = PacketVersion.V0

    @staticmethod
    def key_sum(key: str) -> int:
        """8-bit wraparound sum of the key's UTF-8 bytes."""
        return sum(key.encode()) & BYTE_MASK

    @staticmethod
    def word_sum(data: bytes) -> int:
        """32-bit wraparound sum of ``data`` read as little-endian words.

        A trailing partial word keeps each byte in the lane of its absolute
        offset, so ``b"\\x00\\x00\\x00\\x00\\x05"`` contributes 0x05 and
        ``b"\\x00\\x00\\x00\\x00\\x05\\x06"`` contributes 0x0605.
        """
        total = 0
        full_words_end = (len(data) // WORD_SIZE) * WORD_SIZE
        for i in range(0, full_words_end, WORD_SIZE):
            total = (total + int.from_bytes(data[i : i + WORD_SIZE], "little")) & WORD_MASK

        if full_words_end < len(data):
            partial = 0
            for i in range(full_words_end, len(data)):
                partial |= data[i] << ((i % WORD_SIZE) * 8)
            total = (total + partial) & WORD_MASK

        return total

    @staticmethod
    def compute(key: str, data: bytes) -> int:
        """Compute the V0 checksum byte for ``data`` under ``key``.

        Args:
            key: Candidate access key
            data: Checksum input (the packet without its trailing checksum byte)

        Returns:
            Checksum in the range 0-255. For empty ``data`` this is the key sum.

        Example:
            >>> ChecksumV0Engine.compute("AB", bytes(4))
            131

        """
        number = ChecksumV0Engine.key_sum(key)
        total = ChecksumV0Engine.word_sum(data)

        # Trailing bytes go into the key sum as well as the partial word
        for b in data[(len(data) // WORD_SIZE) * WORD_SIZE :]:
            number = (number + b) & BYTE_MASK

        for lane in total.to_bytes(WORD_SIZE, "little"):
            number = (number + lane) & BYTE_MASK

        return number

    @staticmethod
    def split_packet(packet: bytes) -> tuple[bytes, int]:
        """Split a V0 packet into (checksum input, expected checksum).

        Raises:
            MalformedPacketError: If the packet is empty

        """
        if not packet:
            error_reason = "too_short"
            raise MalformedPacketError(error_reason, packet, PacketVersion.V0.name)
        return packet[:-1], packet[-1]

    @staticmethod
    def validate(packet: bytes) -> None:
        """Raise MalformedPacketError unless ``packet`` is a usable V0 packet."""
        ChecksumV0Engine.split_packet(packet)

    @staticmethod
    def verify(key: str, packet: bytes) -> bool:
        """Check whether ``key`` reproduces the checksum at the end of ``packet``."""
        data, expected = ChecksumV0Engine.split_packet(packet)
        calculated = ChecksumV0Engine.compute(key, data)
        logger.debug("V0 checksum: expected=0x%02x, calculated=0x%02x", expected, calculated)
        return calculated == expected
