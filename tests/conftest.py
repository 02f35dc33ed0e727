"""
Pytest configuration and fixtures for the secure stream test suite.

This module provides:
- Deterministic keypair fixtures for reproducible cryptographic tests
- Precomputed shared keys and codecs for both peers
- Connected socket pairs for in-process stream tests
- A running echo server for end-to-end tests
"""

from __future__ import annotations

import socket
import threading
from collections.abc import Iterator
from dataclasses import dataclass

import pytest
import structlog

from lib.keys import deterministic_keypair
from secure_stream import __version__
from secure_stream.codec import SecureCodec, SharedKey, precompute
from secure_stream.config import Settings
from secure_stream.keys import KeyPair
from secure_stream.server import EchoServer

# Configure structlog for tests
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer(),
    ],
)
log = structlog.get_logger()


@dataclass
class TestKeyPairs:
    """Deterministic keypairs for reproducible tests.

    These are well-known test keys. DO NOT USE IN PRODUCTION.
    """

    __test__ = False

    server: KeyPair
    client: KeyPair


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================


@pytest.fixture(scope="session")
def test_keypairs() -> TestKeyPairs:
    """Deterministic server and client keypairs."""
    return TestKeyPairs(
        server=deterministic_keypair("secure-stream-test-server"),
        client=deterministic_keypair("secure-stream-test-client"),
    )


@pytest.fixture(scope="session")
def shared_key(test_keypairs: TestKeyPairs) -> SharedKey:
    """Session key as computed by the client."""
    return precompute(test_keypairs.client.private_key, test_keypairs.server.public_key)


@pytest.fixture(scope="session")
def client_codec(test_keypairs: TestKeyPairs) -> SecureCodec:
    """Codec from the client's side."""
    return SecureCodec.from_keys(test_keypairs.client.private_key, test_keypairs.server.public_key)


@pytest.fixture(scope="session")
def server_codec(test_keypairs: TestKeyPairs) -> SecureCodec:
    """Codec from the server's side."""
    return SecureCodec.from_keys(test_keypairs.server.private_key, test_keypairs.client.public_key)


# =============================================================================
# Function-scoped fixtures (fresh for each test)
# =============================================================================


@pytest.fixture
def socket_pair() -> Iterator[tuple[socket.socket, socket.socket]]:
    """Two connected stream sockets with a 5 second timeout."""
    left, right = socket.socketpair()
    left.settimeout(5.0)
    right.settimeout(5.0)
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def echo_server() -> Iterator[tuple[str, int]]:
    """Echo server running in a background thread on an ephemeral port.

    Yields:
        The server's (host, port).
    """
    server = EchoServer(Settings(bind_addr="127.0.0.1:0"))
    listener = server.bind()
    address = listener.getsockname()[:2]

    thread = threading.Thread(target=server.serve, args=(listener,), daemon=True)
    thread.start()
    log.debug("echo_server_fixture_started", address=f"{address[0]}:{address[1]}")

    yield address

    server.shutdown()
    thread.join(timeout=5.0)


# =============================================================================
# Pytest hooks and configuration
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "network: tests using real TCP sockets")
    config.addinivalue_line("markers", "adversarial: tampering/truncation tests")


def pytest_report_header(config):
    """Add information to the pytest header."""
    import nacl

    return [
        "Secure Stream Test Suite",
        f"  secure_stream: {__version__}",
        f"  PyNaCl: {nacl.__version__}",
    ]
