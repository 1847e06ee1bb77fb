"""V1 packet signature (HMAC-MD5).

A V1 SYN packet is signed with HMAC-MD5. The HMAC key is the MD5 digest of
the access key; the message is the concatenation of:

    header[4:12] | session key | signature base | connection signature | options | payload

where the signature base is the 32-bit wraparound sum of the access key bytes
in little-endian order. For SYN packets the session key, connection signature
and payload segments are empty.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Final

from keyfinder.const import V1_SIGNATURE_END, V1_SIGNATURE_START
from keyfinder.protocol.packet_types import PacketVersion, V1Packet

__all__ = ["SignatureSegments", "SignatureV1Engine"]

SIGNATURE_BASE_MASK: Final[int] = 0xFFFFFFFF

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureSegments:
    """Message segments that are empty for SYN packets.

    Later packet types in a session carry a session key, the connection
    signature and a payload; passing them here signs those packets without
    touching the engine.
    """

    session_key: bytes = b""
    connection_signature: bytes = b""
    payload: bytes = b""

    def ordered(self, header_section: bytes, signature_base: bytes, options: bytes) -> list[bytes]:
        """Return the HMAC message segments in protocol order."""
        return [
            header_section,
            self.session_key,
            signature_base,
            self.connection_signature,
            options,
            self.payload,
        ]


SYN_SEGMENTS: Final = SignatureSegments()


class SignatureV1Engine:
    """V1 signature calculator and verifier.

    Stateless; see ChecksumV0Engine for why this is a class.
    """

    version: Final = PacketVersion.V1

    @staticmethod
    def signature_key(key: str) -> bytes:
        """MD5 digest of the access key, used as the HMAC key."""
        return hashlib.md5(key.encode()).digest()  # noqa: S324

    @staticmethod
    def signature_base(key: str) -> bytes:
        """32-bit wraparound sum of the key bytes, little-endian."""
        return (sum(key.encode()) & SIGNATURE_BASE_MASK).to_bytes(4, "little")

    @staticmethod
    def compute(key: str, packet: bytes, segments: SignatureSegments | None = None) -> bytes:
        """Compute the 16-byte signature ``packet`` would carry if signed with ``key``.

        The signature bytes already present in the packet are not part of
        the input.

        Args:
            key: Candidate access key
            packet: Raw V1 packet
            segments: Non-SYN message segments; empty for SYN packets

        Returns:
            HMAC-MD5 digest (16 bytes)

        Raises:
            MalformedPacketError: If the packet does not fit the V1 layout

        """
        parsed = V1Packet.parse(packet)
        return SignatureV1Engine.sign(key, parsed, segments)

    @staticmethod
    def sign(key: str, parsed: V1Packet, segments: SignatureSegments | None = None) -> bytes:
        """Compute the signature of an already parsed packet."""
        segments = segments or SYN_SEGMENTS
        mac = hmac.new(SignatureV1Engine.signature_key(key), digestmod=hashlib.md5)
        for segment in segments.ordered(
            parsed.header_section,
            SignatureV1Engine.signature_base(key),
            parsed.options,
        ):
            mac.update(segment)
        return mac.digest()

    @staticmethod
    def expected_signature(packet: bytes) -> bytes:
        """Signature carried by the packet (bytes 14-30)."""
        return packet[V1_SIGNATURE_START:V1_SIGNATURE_END]

    @staticmethod
    def validate(packet: bytes) -> None:
        """Raise MalformedPacketError unless ``packet`` fits the V1 layout."""
        V1Packet.parse(packet)

    @staticmethod
    def verify(key: str, packet: bytes) -> bool:
        """Check whether ``key`` reproduces the signature carried by ``packet``."""
        parsed = V1Packet.parse(packet)
        calculated = SignatureV1Engine.sign(key, parsed)
        logger.debug(
            "V1 signature: expected=%s, calculated=%s",
            parsed.signature.hex(),
            calculated.hex(),
        )
        return hmac.compare_digest(parsed.signature, calculated)
