"""
secure_stream: authenticated, encrypted framing over a byte stream.

Peers exchange raw Curve25519 public keys, precompute a NaCl box key, and then
send length-prefixed frames, each sealed under a fresh random nonce.
"""

from secure_stream.codec import (
    FRAME_HEADER_SIZE,
    KEY_SIZE,
    MAX_MESSAGE_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    TOTAL_OVERHEAD,
    FrameHeader,
    SecureCodec,
    SharedKey,
    decode_frame,
    encode_frame,
    generate_nonce,
    parse_frame,
    parse_frame_header,
    precompute,
)
from secure_stream.errors import (
    AuthenticationFailed,
    BufferTooSmall,
    ErrorKind,
    InsufficientRandomness,
    InvalidPeerKey,
    MessageTooLarge,
    PeerKeyTruncated,
    SecureStreamError,
    ShortWrite,
    TruncatedFrame,
)
from secure_stream.handshake import Handshake, HandshakeState, exchange_public_keys
from secure_stream.keys import KeyPair
from secure_stream.session import Session, dial
from secure_stream.stream import SecureReader, SecureWriter
from secure_stream.transport import ByteStream, SocketStream

__version__ = "1.0.0"

__all__ = [
    "FRAME_HEADER_SIZE",
    "KEY_SIZE",
    "MAX_MESSAGE_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "TOTAL_OVERHEAD",
    "AuthenticationFailed",
    "BufferTooSmall",
    "ByteStream",
    "ErrorKind",
    "FrameHeader",
    "Handshake",
    "HandshakeState",
    "InsufficientRandomness",
    "InvalidPeerKey",
    "KeyPair",
    "MessageTooLarge",
    "PeerKeyTruncated",
    "SecureCodec",
    "SecureReader",
    "SecureStreamError",
    "SecureWriter",
    "Session",
    "SharedKey",
    "ShortWrite",
    "SocketStream",
    "TruncatedFrame",
    "decode_frame",
    "dial",
    "encode_frame",
    "exchange_public_keys",
    "generate_nonce",
    "parse_frame",
    "parse_frame_header",
    "precompute",
]
