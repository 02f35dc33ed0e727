"""
Secure Stream Frame Codec

Encoding and decoding of the secure stream wire format on top of NaCl
``crypto_box`` (Curve25519 + XSalsa20-Poly1305) in its precomputed-key form.

Frame layout:
- Nonce (24 bytes, random)
- Ciphertext length (2 bytes, LE16)
- Ciphertext (length bytes, plaintext + 16-byte Poly1305 tag)
"""

from __future__ import annotations

import hmac
import struct
from collections.abc import Callable
from dataclasses import dataclass

import nacl.utils
from nacl.bindings import (
    crypto_box_afternm,
    crypto_box_beforenm,
    crypto_box_open_afternm,
)
from nacl.exceptions import CryptoError

from secure_stream.errors import (
    AuthenticationFailed,
    BufferTooSmall,
    InsufficientRandomness,
    InvalidPeerKey,
    MessageTooLarge,
    TruncatedFrame,
)
from secure_stream.transport import ByteStream, read_exact

# =============================================================================
# Protocol Constants
# =============================================================================

NONCE_SIZE = 24
KEY_SIZE = 32
TAG_SIZE = 16  # Poly1305 authenticator
LENGTH_PREFIX_SIZE = 2
FRAME_HEADER_SIZE = NONCE_SIZE + LENGTH_PREFIX_SIZE

# Largest plaintext accepted per frame
MAX_MESSAGE_SIZE = 32 * 1024

# Length field is an unsigned 16-bit value
MAX_CIPHERTEXT_SIZE = 0xFFFF

# Bytes added on the wire per message
TOTAL_OVERHEAD = FRAME_HEADER_SIZE + TAG_SIZE

RandomSource = Callable[[int], bytes]


# =============================================================================
# Nonce Generation
# =============================================================================


def generate_nonce(random_source: RandomSource = nacl.utils.random) -> bytes:
    """Generate a fresh 24-byte nonce.

    Nonces are never counter- or time-derived: the 192-bit random space makes
    collisions negligible for any realistic number of frames per key.

    Args:
        random_source: Cryptographically secure byte source.

    Returns:
        24-byte nonce

    Raises:
        InsufficientRandomness: If the source fails or returns short output.
    """
    try:
        nonce = random_source(NONCE_SIZE)
    except OSError as e:
        raise InsufficientRandomness(expected=NONCE_SIZE, received=0) from e

    if len(nonce) != NONCE_SIZE:
        raise InsufficientRandomness(expected=NONCE_SIZE, received=len(nonce))
    return bytes(nonce)


# =============================================================================
# Shared-Secret Derivation
# =============================================================================


class SharedKey:
    """Precomputed ``crypto_box`` key for one session.

    The raw bytes stay inside this object; ``repr()`` never shows them.
    """

    __slots__ = ("_key",)

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Shared key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = bytes(key)

    def __repr__(self) -> str:
        return "SharedKey(<redacted>)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SharedKey):
            return NotImplemented
        return hmac.compare_digest(self._key, other._key)

    __hash__ = None  # type: ignore[assignment]


def precompute(local_private: bytes, peer_public: bytes) -> SharedKey:
    """Derive the session key from a local private key and a peer public key.

    ``precompute(a.private, b.public) == precompute(b.private, a.public)``.

    Args:
        local_private: Local Curve25519 private key (32 bytes)
        peer_public: Peer Curve25519 public key (32 bytes)

    Returns:
        SharedKey for encoding and decoding frames

    Raises:
        ValueError: If either key has the wrong length
        InvalidPeerKey: If key agreement rejects the peer key
    """
    if len(local_private) != KEY_SIZE:
        raise ValueError(f"Private key must be {KEY_SIZE} bytes, got {len(local_private)}")
    if len(peer_public) != KEY_SIZE:
        raise ValueError(f"Public key must be {KEY_SIZE} bytes, got {len(peer_public)}")

    try:
        return SharedKey(crypto_box_beforenm(peer_public, local_private))
    except CryptoError as e:
        raise InvalidPeerKey() from e


# =============================================================================
# Frame Encoding/Decoding
# =============================================================================


@dataclass
class FrameHeader:
    """Parsed frame header (nonce and ciphertext length)."""

    nonce: bytes
    length: int

    def __post_init__(self) -> None:
        if len(self.nonce) != NONCE_SIZE:
            raise ValueError(f"Nonce must be {NONCE_SIZE} bytes")
        if not 0 <= self.length <= MAX_CIPHERTEXT_SIZE:
            raise ValueError(f"Length must be 0-{MAX_CIPHERTEXT_SIZE}, got {self.length}")


def encode_frame_header(nonce: bytes, length: int) -> bytes:
    """Encode the 26-byte frame header."""
    header = FrameHeader(nonce=nonce, length=length)
    return header.nonce + struct.pack("<H", header.length)


def parse_frame_header(data: bytes) -> FrameHeader:
    """Parse a frame header from the start of ``data``.

    Raises:
        TruncatedFrame: If fewer than 26 bytes are present
    """
    if len(data) < NONCE_SIZE:
        raise TruncatedFrame("nonce", NONCE_SIZE, len(data))
    if len(data) < FRAME_HEADER_SIZE:
        raise TruncatedFrame("length", LENGTH_PREFIX_SIZE, len(data) - NONCE_SIZE)

    (length,) = struct.unpack_from("<H", data, NONCE_SIZE)
    return FrameHeader(nonce=bytes(data[:NONCE_SIZE]), length=length)


def encode_frame(
    plaintext: bytes,
    shared_key: SharedKey,
    *,
    random_source: RandomSource = nacl.utils.random,
) -> bytes:
    """Encrypt one message into a complete wire frame.

    Args:
        plaintext: Message, at most MAX_MESSAGE_SIZE bytes
        shared_key: Session key from precompute()
        random_source: Source for the frame nonce

    Returns:
        nonce || LE16(len(ciphertext)) || ciphertext

    Raises:
        MessageTooLarge: If plaintext exceeds MAX_MESSAGE_SIZE
        InsufficientRandomness: If no nonce could be generated
    """
    if len(plaintext) > MAX_MESSAGE_SIZE:
        raise MessageTooLarge(size=len(plaintext), limit=MAX_MESSAGE_SIZE)

    nonce = generate_nonce(random_source)
    ciphertext = crypto_box_afternm(bytes(plaintext), nonce, shared_key._key)
    return encode_frame_header(nonce, len(ciphertext)) + ciphertext


def _open(ciphertext: bytes, nonce: bytes, shared_key: SharedKey, capacity: int) -> bytes:
    try:
        plaintext = crypto_box_open_afternm(ciphertext, nonce, shared_key._key)
    except CryptoError:
        raise AuthenticationFailed() from None

    if len(plaintext) > capacity:
        raise BufferTooSmall(required=len(plaintext), capacity=capacity)
    return plaintext


def decode_frame(
    stream: ByteStream,
    shared_key: SharedKey,
    capacity: int = MAX_MESSAGE_SIZE,
) -> bytes | None:
    """Read and decrypt exactly one frame from a stream.

    Each field is read in full before moving on, so transports that deliver
    a frame in arbitrary pieces are fine.

    Args:
        stream: Transport positioned at a frame boundary
        shared_key: Session key from precompute()
        capacity: Largest plaintext the caller accepts

    Returns:
        Decrypted plaintext, or None if the stream ended cleanly before the
        first byte of a frame

    Raises:
        TruncatedFrame: If the stream ends inside a frame
        AuthenticationFailed: If the ciphertext does not verify
        BufferTooSmall: If the plaintext is longer than ``capacity``
    """
    nonce = read_exact(stream, NONCE_SIZE)
    if not nonce:
        return None
    if len(nonce) < NONCE_SIZE:
        raise TruncatedFrame("nonce", NONCE_SIZE, len(nonce))

    prefix = read_exact(stream, LENGTH_PREFIX_SIZE)
    if len(prefix) < LENGTH_PREFIX_SIZE:
        raise TruncatedFrame("length", LENGTH_PREFIX_SIZE, len(prefix))
    (length,) = struct.unpack("<H", prefix)

    ciphertext = read_exact(stream, length)
    if len(ciphertext) < length:
        raise TruncatedFrame("ciphertext", length, len(ciphertext))

    return _open(ciphertext, nonce, shared_key, capacity)


def parse_frame(
    data: bytes,
    shared_key: SharedKey,
    capacity: int = MAX_MESSAGE_SIZE,
) -> bytes:
    """Decrypt one complete in-memory frame.

    Trailing bytes after the frame are ignored.

    Raises:
        TruncatedFrame: If ``data`` is shorter than the frame it announces
        AuthenticationFailed: If the ciphertext does not verify
        BufferTooSmall: If the plaintext is longer than ``capacity``
    """
    header = parse_frame_header(data)
    ciphertext = bytes(data[FRAME_HEADER_SIZE : FRAME_HEADER_SIZE + header.length])
    if len(ciphertext) < header.length:
        raise TruncatedFrame("ciphertext", header.length, len(ciphertext))
    return _open(ciphertext, header.nonce, shared_key, capacity)


# =============================================================================
# SecureCodec Class (Main Interface)
# =============================================================================


class SecureCodec:
    """Frame codec bound to one session key.

    One instance per session and direction pair; it holds no state besides
    the immutable key, so a reader and a writer may share it across threads.
    """

    NONCE_SIZE = NONCE_SIZE
    KEY_SIZE = KEY_SIZE
    TAG_SIZE = TAG_SIZE
    FRAME_HEADER_SIZE = FRAME_HEADER_SIZE
    MAX_MESSAGE_SIZE = MAX_MESSAGE_SIZE
    TOTAL_OVERHEAD = TOTAL_OVERHEAD

    def __init__(
        self,
        shared_key: SharedKey,
        *,
        random_source: RandomSource = nacl.utils.random,
    ) -> None:
        self._shared_key = shared_key
        self._random_source = random_source

    @classmethod
    def from_keys(cls, local_private: bytes, peer_public: bytes) -> SecureCodec:
        """Build a codec by precomputing the session key."""
        return cls(precompute(local_private, peer_public))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._shared_key!r})"

    def encode(self, plaintext: bytes) -> bytes:
        """Encrypt one message into a wire frame."""
        return encode_frame(plaintext, self._shared_key, random_source=self._random_source)

    def decode(self, stream: ByteStream, capacity: int = MAX_MESSAGE_SIZE) -> bytes | None:
        """Read and decrypt one frame from a stream."""
        return decode_frame(stream, self._shared_key, capacity)

    def parse(self, data: bytes, capacity: int = MAX_MESSAGE_SIZE) -> bytes:
        """Decrypt one complete in-memory frame."""
        return parse_frame(data, self._shared_key, capacity)

    @staticmethod
    def parse_header(data: bytes) -> FrameHeader:
        """Parse a frame header."""
        return parse_frame_header(data)
