"""
Byte-stream transports.

The protocol runs over anything that offers blocking read-some / write-all
primitives. ``io.BytesIO``, buffered binary files and ``SocketStream`` all fit
the ``ByteStream`` protocol.
"""

from __future__ import annotations

import socket
from typing import Protocol

from secure_stream.errors import ShortWrite


class ByteStream(Protocol):
    """Blocking byte-stream transport."""

    def read(self, size: int, /) -> bytes:
        """Read between 1 and ``size`` bytes; ``b""`` means end of stream."""
        ...

    def write(self, data: bytes, /) -> int | None:
        """Write all of ``data``; return the number of bytes accepted."""
        ...


def read_exact(stream: ByteStream, size: int) -> bytes:
    """Read exactly ``size`` bytes, looping over short reads.

    Args:
        stream: Transport to read from.
        size: Number of bytes required.

    Returns:
        The bytes read. Shorter than ``size`` only if the stream ended first;
        callers decide which error that is.
    """
    chunks: list[bytes] = []
    received = 0
    while received < size:
        chunk = stream.read(size - received)
        if not chunk:
            break
        chunks.append(chunk)
        received += len(chunk)
    return b"".join(chunks)


def write_all(stream: ByteStream, data: bytes) -> None:
    """Hand ``data`` to the transport in one write.

    A partial write is not retried: part of a frame already on the wire
    desynchronizes every following frame.

    Raises:
        ShortWrite: If the transport accepted fewer bytes than ``len(data)``.
    """
    written = stream.write(data)
    if written is None:
        written = 0
    if written < len(data):
        raise ShortWrite(expected=len(data), written=written)


class SocketStream:
    """Adapts a connected, blocking ``socket.socket`` to ``ByteStream``."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    def read(self, size: int, /) -> bytes:
        return self.sock.recv(size)

    def write(self, data: bytes, /) -> int:
        self.sock.sendall(data)
        return len(data)

    def close(self) -> None:
        """Shut down both directions and close, unblocking pending I/O."""
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already disconnected by the peer
            pass
        self.sock.close()

    @property
    def peer(self) -> str:
        """Remote address as ``host:port`` (for logging)."""
        try:
            host, port = self.sock.getpeername()[:2]
        except OSError:
            return "unknown"
        return f"{host}:{port}"
