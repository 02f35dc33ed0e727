"""Protocol behavior tests over real TCP connections.

These tests run the echo server in-process and cover:
- Echo round trips through dial(), EchoClient and the CLI
- What an observer of the connection sees (test_echo_e2e.py)
- Server handling of tampered, truncated and short handshakes
"""
