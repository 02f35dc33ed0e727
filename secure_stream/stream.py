"""
Secure Reader / Secure Writer

File-like wrappers that move one encrypted frame per call over a ByteStream.
They can be handed to anything expecting a binary reader or writer.
"""

from __future__ import annotations

import io
from collections.abc import Iterator
from typing import Any

from secure_stream.codec import MAX_MESSAGE_SIZE, SecureCodec, SharedKey
from secure_stream.transport import ByteStream, write_all


class SecureReader(io.RawIOBase):
    """Decrypts frames from an underlying stream.

    Every ``readinto``/``read_message`` call consumes exactly one frame.
    Nothing is buffered between calls, so a message larger than the caller's
    buffer is an error rather than a partial read.

    ``readinto`` returns 0 both for an empty message and at end of stream;
    use ``read_message`` or iteration where the two must be told apart.
    """

    def __init__(self, stream: ByteStream, shared_key: SharedKey) -> None:
        super().__init__()
        self.stream = stream
        self._codec = SecureCodec(shared_key)

    def readable(self) -> bool:
        return True

    def read_message(self, capacity: int = MAX_MESSAGE_SIZE) -> bytes | None:
        """Read one message.

        Returns:
            The plaintext, or None at a clean end of stream.
        """
        return self._codec.decode(self.stream, capacity)

    def readinto(self, buffer: Any) -> int:
        """Read one message into ``buffer``; 0 at end of stream."""
        view = memoryview(buffer).cast("B")
        message = self.read_message(len(view))
        if message is None:
            return 0
        view[: len(message)] = message
        return len(message)

    def readall(self) -> bytes:
        """Read every remaining message and return them concatenated."""
        return b"".join(self)

    def __iter__(self) -> Iterator[bytes]:  # type: ignore[override]
        while True:
            message = self.read_message()
            if message is None:
                return
            yield message


class SecureWriter(io.RawIOBase):
    """Encrypts each ``write`` as one frame on an underlying stream."""

    def __init__(self, stream: ByteStream, shared_key: SharedKey) -> None:
        super().__init__()
        self.stream = stream
        self._codec = SecureCodec(shared_key)

    def writable(self) -> bool:
        return True

    def write(self, data: Any) -> int:
        """Encrypt and send one message.

        Returns:
            ``len(data)`` (plaintext bytes consumed)

        Raises:
            MessageTooLarge: If data exceeds MAX_MESSAGE_SIZE
            ShortWrite: If the transport did not take the whole frame
        """
        plaintext = bytes(data)
        write_all(self.stream, self._codec.encode(plaintext))
        return len(plaintext)

    def copy_from(self, source: Any, chunk_size: int = MAX_MESSAGE_SIZE) -> int:
        """Encrypt everything readable from ``source`` until it is exhausted.

        A SecureReader source is copied message by message, empty messages
        included. Any other binary reader is read in chunks of at most
        ``chunk_size`` bytes, each becoming one frame.

        Returns:
            Total plaintext bytes written
        """
        if chunk_size > MAX_MESSAGE_SIZE:
            raise ValueError(f"chunk_size must be at most {MAX_MESSAGE_SIZE}")

        total = 0
        if isinstance(source, SecureReader):
            for message in source:
                total += self.write(message)
            return total

        buffer = bytearray(chunk_size)
        while True:
            n = source.readinto(buffer)
            if not n:
                return total
            total += self.write(memoryview(buffer)[:n])
