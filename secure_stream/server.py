"""
Secure Echo Server

A threaded TCP server that:
1. Accepts connections and hands each to its own thread
2. Generates a fresh key pair per connection and performs the handshake
3. Echoes every decrypted message back, encrypted, until the peer finishes

Any protocol error ends that connection (logged, never retried); other
connections are unaffected.
"""

from __future__ import annotations

import signal
import socket
import threading

import structlog

from secure_stream.config import Settings
from secure_stream.errors import SecureStreamError
from secure_stream.session import Session, parse_address
from secure_stream.transport import SocketStream

log = structlog.get_logger()

# How often the accept loop checks for shutdown
ACCEPT_POLL_INTERVAL = 0.5

# How long serve() waits for each connection thread after shutting it down
CONNECTION_JOIN_TIMEOUT = 5.0


class EchoServer:
    """Secure echo server."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings.from_env()
        self.running = False
        self.listener: socket.socket | None = None
        self._connections: dict[socket.socket, threading.Thread] = {}
        self._lock = threading.Lock()

    @property
    def active_connections(self) -> int:
        """Number of connections currently being served."""
        with self._lock:
            return len(self._connections)

    def bind(self) -> socket.socket:
        """Open the listening socket from ``settings.bind_addr``."""
        host, port = parse_address(self.settings.bind_addr)
        listener = socket.create_server((host, port))
        self.listener = listener
        log.info("server_listening", addr="%s:%d" % listener.getsockname()[:2])
        return listener

    def serve(self, listener: socket.socket) -> None:
        """Accept connections until shutdown() is called.

        On exit every open connection is shut down and its thread joined.

        Raises:
            OSError: If accepting fails for a reason other than shutdown
        """
        self.listener = listener
        listener.settimeout(ACCEPT_POLL_INTERVAL)
        self.running = True

        try:
            while self.running:
                try:
                    conn, _addr = listener.accept()
                except TimeoutError:
                    continue
                except OSError:
                    if not self.running:
                        break
                    raise

                thread = threading.Thread(
                    target=self.handle_connection,
                    args=(conn,),
                    daemon=True,
                )
                with self._lock:
                    self._connections[conn] = thread
                thread.start()
        finally:
            self.running = False
            listener.close()
            self._close_connections()
            log.info("server_stopped")

    def _close_connections(self) -> None:
        with self._lock:
            connections = list(self._connections.items())

        for conn, thread in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            thread.join(timeout=CONNECTION_JOIN_TIMEOUT)
            if thread.is_alive():
                log.warning("connection_thread_stuck", thread=thread.name)

    def handle_connection(self, conn: socket.socket) -> None:
        """Handshake with one client and echo its messages."""
        stream = SocketStream(conn)
        peer = stream.peer
        log.info("connection_accepted", peer=peer)

        try:
            session = Session.establish(stream)
            log.debug(
                "handshake_complete",
                peer=peer,
                local_public_key=session.keypair.public_key_b64,
            )

            for message in session.reader:
                session.send(message)
                log.debug("message_echoed", peer=peer, size=len(message))
        except SecureStreamError as e:
            log.warning("connection_failed", peer=peer, kind=e.kind.value, error=str(e))
        except OSError as e:
            log.warning("connection_error", peer=peer, error=str(e))
        finally:
            with self._lock:
                self._connections.pop(conn, None)
            stream.close()
            log.info("connection_closed", peer=peer)

    def shutdown(self) -> None:
        """Stop accepting and close the listener.

        serve() then closes the open connections and returns.
        """
        if self.running:
            log.info("shutdown_requested")
        self.running = False

        if self.listener is not None:
            try:
                self.listener.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self.listener.close()

    def run(self) -> None:
        """Bind, install signal handlers and serve until SIGINT/SIGTERM."""
        log.info("server_starting", bind_addr=self.settings.bind_addr)

        def signal_handler(signum: int, _frame: object) -> None:
            log.info("shutdown_signal_received", signal=signal.Signals(signum).name)
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, signal_handler)

        self.serve(self.bind())
