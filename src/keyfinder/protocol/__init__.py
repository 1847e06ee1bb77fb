"""Packet verification engines for title access keys.

Public API:
- Packet version detection and hex decoding
- V0 checksum engine (ChecksumV0Engine)
- V1 HMAC-MD5 signature engine (SignatureV1Engine)
- Exception hierarchy (KeyfinderError and subclasses)
"""

from keyfinder.protocol.checksum_v0 import ChecksumV0Engine
from keyfinder.protocol.exceptions import (
    ConfigError,
    ImageReadError,
    KeyfinderError,
    MalformedPacketError,
    PacketHexDecodeError,
)
from keyfinder.protocol.packet_types import (
    PacketVersion,
    V1Packet,
    decode_packet_hex,
    detect_packet_version,
)
from keyfinder.protocol.signature_v1 import SignatureSegments, SignatureV1Engine

__all__ = [
    # Engines
    "ChecksumV0Engine",
    "SignatureSegments",
    "SignatureV1Engine",
    # Packet types
    "PacketVersion",
    "V1Packet",
    "decode_packet_hex",
    "detect_packet_version",
    # Exceptions
    "ConfigError",
    "ImageReadError",
    "KeyfinderError",
    "MalformedPacketError",
    "PacketHexDecodeError",
]
