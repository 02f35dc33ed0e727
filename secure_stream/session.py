"""
Secure sessions.

A Session is the per-connection pairing of a SecureReader and SecureWriter
built from one key pair and one peer public key. Nothing is shared between
sessions.
"""

from __future__ import annotations

import socket
from typing import Any

import structlog

from secure_stream.codec import MAX_MESSAGE_SIZE, precompute
from secure_stream.handshake import exchange_public_keys
from secure_stream.keys import KeyPair
from secure_stream.stream import SecureReader, SecureWriter
from secure_stream.transport import ByteStream, SocketStream

log = structlog.get_logger()


class Session:
    """Encrypted reader/writer pair over one connection.

    At most one thread may read and one thread may write at a time.
    """

    def __init__(self, stream: ByteStream, keypair: KeyPair, peer_public_key: bytes) -> None:
        self.stream = stream
        self.keypair = keypair
        self.peer_public_key = peer_public_key
        shared_key = precompute(keypair.private_key, peer_public_key)
        self.reader = SecureReader(stream, shared_key)
        self.writer = SecureWriter(stream, shared_key)

    @classmethod
    def establish(cls, stream: ByteStream, keypair: KeyPair | None = None) -> Session:
        """Handshake over ``stream`` and return the session.

        Args:
            stream: Freshly connected transport
            keypair: Local key pair; a fresh one is generated if omitted

        Raises:
            PeerKeyTruncated: If the peer hung up during the handshake
            ShortWrite: If our public key could not be sent
            InvalidPeerKey: If the peer's key is unusable
        """
        if keypair is None:
            keypair = KeyPair.generate()
        peer_public_key = exchange_public_keys(stream, keypair)
        return cls(stream, keypair, peer_public_key)

    def send(self, message: bytes) -> int:
        """Encrypt and send one message."""
        return self.writer.write(message)

    def receive(self, capacity: int = MAX_MESSAGE_SIZE) -> bytes | None:
        """Receive one message; None once the peer has finished sending."""
        return self.reader.read_message(capacity)

    def close(self) -> None:
        """Close the underlying transport, if it can be closed."""
        close = getattr(self.stream, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (host may be empty, meaning all interfaces)."""
    host, sep, port_str = address.rpartition(":")
    if not sep:
        raise ValueError(f"Address must be host:port, got {address!r}")
    return host or "0.0.0.0", int(port_str)


def dial(
    address: str | tuple[str, int],
    *,
    keypair: KeyPair | None = None,
    timeout: float | None = None,
) -> Session:
    """Connect to a peer and establish a secure session.

    Args:
        address: ``host:port`` or a (host, port) tuple
        keypair: Local key pair; a fresh one is generated if omitted
        timeout: Socket timeout in seconds (None blocks indefinitely)

    Returns:
        Established Session; close it when done
    """
    if isinstance(address, str):
        address = parse_address(address)

    sock = socket.create_connection(address, timeout=timeout)
    stream = SocketStream(sock)
    try:
        session = Session.establish(stream, keypair)
    except BaseException:
        stream.close()
        raise

    log.debug("session_established", peer=stream.peer)
    return session
