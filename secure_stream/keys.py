"""
Curve25519 key pairs.

Key pairs live for one connection only and are never persisted.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field

from nacl.bindings import crypto_box_keypair, crypto_scalarmult_base

from secure_stream.codec import KEY_SIZE


@dataclass(frozen=True)
class KeyPair:
    """A Curve25519 key pair."""

    private_key: bytes = field(repr=False)
    public_key: bytes

    def __post_init__(self) -> None:
        if len(self.private_key) != KEY_SIZE:
            raise ValueError(f"Private key must be {KEY_SIZE} bytes")
        if len(self.public_key) != KEY_SIZE:
            raise ValueError(f"Public key must be {KEY_SIZE} bytes")

    @classmethod
    def generate(cls) -> KeyPair:
        """Generate a fresh random key pair."""
        public_key, private_key = crypto_box_keypair()
        return cls(private_key=private_key, public_key=public_key)

    @classmethod
    def from_private_key(cls, private_key: bytes) -> KeyPair:
        """Rebuild a key pair from its private half."""
        return cls(private_key=private_key, public_key=crypto_scalarmult_base(private_key))

    @property
    def public_key_b64(self) -> str:
        """Public key as base64 text (safe to log)."""
        return base64.b64encode(self.public_key).decode("ascii")

