"""
Runtime configuration and logging setup.

Settings come from SECURE_STREAM_* environment variables; CLI flags override
them where both exist.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import structlog

ENV_PREFIX = "SECURE_STREAM_"

LOG_FORMATS = ("console", "json")


def require_env(name: str, default: str | None = None) -> str:
    """Get environment variable or fail with clear error.

    Args:
        name: Environment variable name.
        default: Default value if not set (None means required).

    Returns:
        The environment variable value.

    Raises:
        RuntimeError: If the variable is not set and no default.
    """
    value = os.environ.get(name, default)
    if value is None:
        raise RuntimeError(f"Required environment variable {name} is not set.")
    return value


@dataclass(frozen=True)
class Settings:
    """Echo server / client settings."""

    bind_addr: str = "0.0.0.0:0"
    log_level: str = "info"
    log_format: str = "console"
    connect_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Log format must be one of {LOG_FORMATS}, got {self.log_format!r}")
        if self.log_level.lower() not in structlog.stdlib.NAME_TO_LEVEL:
            raise ValueError(f"Unknown log level {self.log_level!r}")

    @classmethod
    def from_env(cls) -> Settings:
        """Read settings from the environment."""
        timeout = os.environ.get(f"{ENV_PREFIX}CONNECT_TIMEOUT")
        return cls(
            bind_addr=require_env(f"{ENV_PREFIX}BIND_ADDR", cls.bind_addr),
            log_level=require_env(f"{ENV_PREFIX}LOG_LEVEL", cls.log_level).lower(),
            log_format=require_env(f"{ENV_PREFIX}LOG_FORMAT", cls.log_format).lower(),
            connect_timeout=float(timeout) if timeout else None,
        )


def configure_logging(settings: Settings) -> None:
    """Configure structlog for the process."""
    processors: list[structlog.typing.Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if settings.log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.stdlib.NAME_TO_LEVEL[settings.log_level.lower()]
        ),
    )
