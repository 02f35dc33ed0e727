"""
Public-key handshake.

Immediately after connecting, each peer writes its raw 32-byte public key and
reads the peer's. There is no framing and no authentication: an active
man-in-the-middle can substitute keys.
"""

from __future__ import annotations

from enum import Enum

import structlog

from secure_stream.codec import KEY_SIZE
from secure_stream.errors import PeerKeyTruncated
from secure_stream.keys import KeyPair
from secure_stream.transport import ByteStream, read_exact, write_all

log = structlog.get_logger()


class HandshakeState(Enum):
    AWAITING_PEER_KEY = "awaiting_peer_key"
    KEYS_EXCHANGED = "keys_exchanged"
    PEER_KEY_TRUNCATED = "peer_key_truncated"


class Handshake:
    """One peer's side of the key exchange."""

    def __init__(self, stream: ByteStream, keypair: KeyPair) -> None:
        self.stream = stream
        self.keypair = keypair
        self.state = HandshakeState.AWAITING_PEER_KEY
        self.peer_public_key: bytes | None = None

    def perform(self) -> bytes:
        """Send our public key and receive the peer's.

        Both peers write first; the stream is full-duplex, so neither blocks
        on the other's read.

        Returns:
            Peer public key (32 bytes)

        Raises:
            ShortWrite: If our key could not be written in full
            PeerKeyTruncated: If the peer sent fewer than 32 bytes
        """
        if self.state is not HandshakeState.AWAITING_PEER_KEY:
            raise RuntimeError(f"Handshake already finished: {self.state.value}")

        write_all(self.stream, self.keypair.public_key)

        peer_key = read_exact(self.stream, KEY_SIZE)
        if len(peer_key) < KEY_SIZE:
            self.state = HandshakeState.PEER_KEY_TRUNCATED
            raise PeerKeyTruncated(expected=KEY_SIZE, received=len(peer_key))

        self.peer_public_key = peer_key
        self.state = HandshakeState.KEYS_EXCHANGED
        log.debug("keys_exchanged", peer_public_key=peer_key.hex())
        return peer_key


def exchange_public_keys(stream: ByteStream, keypair: KeyPair) -> bytes:
    """Run a handshake and return the peer public key."""
    return Handshake(stream, keypair).perform()
