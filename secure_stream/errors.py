"""
Secure Stream Error Kinds

Every failure raised by the protocol core belongs to exactly one ErrorKind.
Callers branch on ``exc.kind`` (or the concrete subclass), never on message
text.

All of these errors are terminal for the connection: a failed frame leaves the
stream at an unknown frame boundary, so the only recovery is to close and
re-handshake on a new connection.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Closed set of protocol error kinds."""

    INSUFFICIENT_RANDOMNESS = "insufficient_randomness"
    TRUNCATED_FRAME = "truncated_frame"
    AUTHENTICATION_FAILED = "authentication_failed"
    BUFFER_TOO_SMALL = "buffer_too_small"
    SHORT_WRITE = "short_write"
    PEER_KEY_TRUNCATED = "peer_key_truncated"
    MESSAGE_TOO_LARGE = "message_too_large"
    INVALID_PEER_KEY = "invalid_peer_key"


class SecureStreamError(Exception):
    """Base class for all protocol errors."""

    kind: ErrorKind


class InsufficientRandomness(SecureStreamError):
    """The random source could not supply a full nonce."""

    kind = ErrorKind.INSUFFICIENT_RANDOMNESS

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"Random source returned {received} of {expected} nonce bytes")


class TruncatedFrame(SecureStreamError):
    """The stream ended in the middle of a frame field.

    Attributes:
        field: Name of the field being read ("nonce", "length" or "ciphertext").
        expected: Bytes the field requires.
        received: Bytes read before the stream ended.
    """

    kind = ErrorKind.TRUNCATED_FRAME

    def __init__(self, field: str, expected: int, received: int) -> None:
        self.field = field
        self.expected = expected
        self.received = received
        super().__init__(f"Frame truncated in {field}: have {received}, need {expected}")


class AuthenticationFailed(SecureStreamError):
    """Ciphertext failed authentication.

    Deliberately carries no detail about why decryption failed.
    """

    kind = ErrorKind.AUTHENTICATION_FAILED

    def __init__(self) -> None:
        super().__init__("Frame authentication failed")


class BufferTooSmall(SecureStreamError):
    """Decrypted message does not fit the caller's buffer."""

    kind = ErrorKind.BUFFER_TOO_SMALL

    def __init__(self, required: int, capacity: int) -> None:
        self.required = required
        self.capacity = capacity
        super().__init__(f"Message of {required} bytes does not fit buffer of {capacity}")


class ShortWrite(SecureStreamError):
    """The transport accepted fewer bytes than were handed to it."""

    kind = ErrorKind.SHORT_WRITE

    def __init__(self, expected: int, written: int) -> None:
        self.expected = expected
        self.written = written
        super().__init__(f"Short write: {written} of {expected} bytes accepted")


class PeerKeyTruncated(SecureStreamError):
    """The peer closed the stream before sending a full public key."""

    kind = ErrorKind.PEER_KEY_TRUNCATED

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"Peer public key truncated: have {received}, need {expected}")


class MessageTooLarge(SecureStreamError):
    """Plaintext exceeds the per-frame message limit."""

    kind = ErrorKind.MESSAGE_TOO_LARGE

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Message too large: {size} > {limit}")


class InvalidPeerKey(SecureStreamError):
    """The peer public key cannot be used for key agreement."""

    kind = ErrorKind.INVALID_PEER_KEY

    def __init__(self) -> None:
        super().__init__("Peer public key rejected by key agreement")
