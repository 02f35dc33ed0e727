"""
Command-line entry point.

Usage:
    secure-stream -l PORT          # run the echo server
    secure-stream PORT MESSAGE     # send MESSAGE to localhost:PORT, print echo
"""

from __future__ import annotations

import argparse
import dataclasses
import sys

import structlog

from secure_stream.client import EchoClient
from secure_stream.config import Settings, configure_logging
from secure_stream.errors import SecureStreamError
from secure_stream.server import EchoServer

log = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secure-stream",
        description="Encrypted echo server and client over NaCl box",
    )
    parser.add_argument(
        "-l", "--listen", type=int, metavar="PORT", help="Listen mode. Specify port"
    )
    parser.add_argument("port", nargs="?", type=int, help="Server port to dial")
    parser.add_argument("message", nargs="?", help="Message to send")
    parser.add_argument("--log-level", help="Override SECURE_STREAM_LOG_LEVEL")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        if args.log_level:
            settings = dataclasses.replace(settings, log_level=args.log_level.lower())
    except (RuntimeError, ValueError) as e:
        parser.error(str(e))
    configure_logging(settings)

    # Server mode
    if args.listen:
        host, _, _ = settings.bind_addr.rpartition(":")
        settings = dataclasses.replace(settings, bind_addr=f"{host}:{args.listen}")
        try:
            EchoServer(settings).run()
        except OSError as e:
            log.error("server_failed", error=str(e))
            return 1
        return 0

    # Client mode
    if args.port is None or args.message is None:
        parser.error("client mode requires PORT and MESSAGE")

    client = EchoClient(("localhost", args.port), settings)
    try:
        reply = client.echo(args.message.encode())
    except (SecureStreamError, OSError) as e:
        log.error("echo_failed", error=str(e))
        return 1

    sys.stdout.write(reply.decode(errors="replace") + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
