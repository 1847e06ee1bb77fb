"""Key search: try candidate access keys against a captured packet.

The packet's leading bytes pick the engine (V1 signature for ``EA D0``, V0
checksum otherwise). Candidates are tried strictly in order and the first one
that verifies wins; the rest of the list is not checked for further matches.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Final, Protocol

from keyfinder import metrics
from keyfinder.instrumentation import timed
from keyfinder.logging_abstraction import get_logger
from keyfinder.protocol.checksum_v0 import ChecksumV0Engine
from keyfinder.protocol.exceptions import MalformedPacketError
from keyfinder.protocol.packet_types import PacketVersion, detect_packet_version
from keyfinder.protocol.signature_v1 import SignatureV1Engine

__all__ = [
    "NO_MATCH",
    "KeyMatch",
    "KeySearch",
    "NoMatch",
    "PacketVerifier",
    "SearchResult",
]

logger = get_logger(__name__)


class PacketVerifier(Protocol):
    """What KeySearch needs from an engine."""

    def validate(self, packet: bytes) -> None: ...

    def verify(self, key: str, packet: bytes) -> bool: ...


@dataclass(frozen=True)
class KeyMatch:
    """A candidate reproduced the packet's checksum or signature."""

    key: str
    version: PacketVersion
    attempts: int


@dataclass(frozen=True)
class NoMatch:
    """No candidate matched (or there were none to try)."""

    attempts: int = 0


NO_MATCH: Final = NoMatch()

type SearchResult = KeyMatch | NoMatch
type AttemptCallback = Callable[[int, str], None]


class KeySearch:
    """Drive the V0 or V1 engine over an ordered candidate list."""

    def __init__(
        self,
        checksum_engine: PacketVerifier | None = None,
        signature_engine: PacketVerifier | None = None,
        on_attempt: AttemptCallback | None = None,
    ) -> None:
        """Initialize KeySearch.

        Args:
            checksum_engine: V0 engine (defaults to ChecksumV0Engine)
            signature_engine: V1 engine (defaults to SignatureV1Engine)
            on_attempt: Called with (index, key) before each candidate is verified

        """
        self.checksum_engine: PacketVerifier = checksum_engine or ChecksumV0Engine()
        self.signature_engine: PacketVerifier = signature_engine or SignatureV1Engine()
        self.on_attempt = on_attempt

    def engine_for(self, version: PacketVersion) -> PacketVerifier:
        if version is PacketVersion.V1:
            return self.signature_engine
        return self.checksum_engine

    @timed("key_search")
    def search(self, candidates: Sequence[str], packet: bytes) -> SearchResult:
        """Return the first candidate that verifies against ``packet``.

        Args:
            candidates: Ranked candidate keys; order decides which match is returned
            packet: Raw captured packet

        Returns:
            KeyMatch for the first working key, otherwise NoMatch

        Raises:
            MalformedPacketError: Packet does not fit its detected version's layout

        """
        if not candidates:
            logger.debug("No candidate keys supplied; skipping verification")
            return NO_MATCH

        version = detect_packet_version(packet)
        engine = self.engine_for(version)
        try:
            engine.validate(packet)
        except MalformedPacketError as e:
            metrics.record_malformed_packet(version.name, e.reason)
            raise

        logger.info(
            "Searching %d candidate keys",
            len(candidates),
            extra={"version": version.name, "packet_bytes": len(packet)},
        )

        start_time = time.perf_counter()
        attempts = 0
        result: SearchResult
        for index, key in enumerate(candidates):
            attempts += 1
            logger.debug("Trying key: %s", key, extra={"index": index})
            metrics.record_key_attempt(version.name)
            if self.on_attempt is not None:
                self.on_attempt(index, key)

            if engine.verify(key, packet):
                result = KeyMatch(key=key, version=version, attempts=attempts)
                break
        else:
            result = NoMatch(attempts=attempts)

        metrics.record_search_duration(version.name, time.perf_counter() - start_time)
        if isinstance(result, KeyMatch):
            metrics.record_search(version.name, "found")
            logger.info("Found working access key: %s", result.key, extra={"attempts": attempts})
        else:
            metrics.record_search(version.name, "not_found")
            logger.info("No candidate key matched the packet", extra={"attempts": attempts})
        return result
