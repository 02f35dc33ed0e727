"""
Secure Echo Client

Dials an echo server, sends messages and reads back the echoes.
"""

from __future__ import annotations

import structlog

from secure_stream.codec import MAX_MESSAGE_SIZE
from secure_stream.config import Settings
from secure_stream.session import Session, dial

log = structlog.get_logger()


class EchoClient:
    """Client for the secure echo server."""

    def __init__(self, address: str | tuple[str, int], settings: Settings | None = None) -> None:
        self.address = address
        self.settings = settings or Settings.from_env()
        self.messages_sent = 0
        self.messages_received = 0

    def connect(self) -> Session:
        """Dial the server and establish a session."""
        session = dial(self.address, timeout=self.settings.connect_timeout)
        log.debug("connected", server=str(self.address))
        return session

    def echo(self, message: bytes) -> bytes:
        """Send one message over a new session and return the echo.

        Raises:
            ConnectionError: If the server closed without echoing
            SecureStreamError: On any protocol error
        """
        with self.connect() as session:
            session.send(message)
            self.messages_sent += 1

            reply = session.receive(MAX_MESSAGE_SIZE)
            if reply is None:
                raise ConnectionError("Server closed the connection without replying")
            self.messages_received += 1

        log.debug("echo_received", size=len(reply))
        return reply
