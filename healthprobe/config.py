from __future__ import annotations

import argparse
import os
from collections.abc import Sequence

from dotenv import load_dotenv

load_dotenv()


class ConfigError(ValueError):
    pass


class Settings:
    COMMAND: str = os.getenv("HEALTHPROBE_COMMAND", "")
    # Validated by parse_timeout() so a bad value is reported as a usage error.
    TIMEOUT: str | float = os.getenv("HEALTHPROBE_TIMEOUT", "3")
    PERIODICITY: str = os.getenv("HEALTHPROBE_PERIODICITY", "@every 1s")
    LOG_LEVEL: str = os.getenv("HEALTHPROBE_LOG_LEVEL", "info")
    BIND: str = os.getenv("HEALTHPROBE_BIND", ":8080")
    RESOURCE_NAME: str = os.getenv("HEALTHPROBE_RESOURCE_NAME", "/health")


settings = Settings()


def build_parser(defaults: Settings = settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthprobe",
        description=(
            "Runs a health check command on a schedule and serves its latest "
            "result over HTTP."
        ),
    )
    parser.add_argument(
        "--command",
        default=defaults.COMMAND,
        help="(Required) Command to run to perform healthcheck",
    )
    parser.add_argument(
        "--timeout",
        default=defaults.TIMEOUT,
        help="Timeout in seconds for healthcheck command (default: %(default)s)",
    )
    parser.add_argument(
        "--periodicity",
        default=defaults.PERIODICITY,
        help="Healthcheck periodicity, cron expression or '@every <duration>' (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=defaults.LOG_LEVEL,
        help="Log level (default: %(default)s)",
    )
    parser.add_argument(
        "--bind",
        default=defaults.BIND,
        help="Address to bind to (default: %(default)s)",
    )
    parser.add_argument(
        "--resource-name",
        default=defaults.RESOURCE_NAME,
        help="Name of the HTTP resource that delivers healthcheck results (default: %(default)s)",
    )
    return parser


def parse_bind(bind: str) -> tuple[str, int]:
    host, sep, port_raw = bind.strip().rpartition(":")
    if not sep or not port_raw.isdigit():
        raise ConfigError(f"Invalid bind address {bind!r}, expected [host]:port")
    port = int(port_raw)
    if not 0 <= port <= 65535:
        raise ConfigError(f"Invalid port in bind address {bind!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, port


def parse_timeout(raw: str | int | float) -> float:
    try:
        timeout_s = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid timeout {raw!r}, expected a number of seconds") from exc
    if timeout_s < 0:
        raise ConfigError(f"Invalid timeout {raw!r}, must not be negative")
    return timeout_s


def parse_args(
    argv: Sequence[str] | None = None,
    parser: argparse.ArgumentParser | None = None,
) -> Settings:
    """Overlay command line flags on the environment defaults and validate."""
    parser = parser or build_parser()
    ns = parser.parse_args(argv)

    if not ns.command.strip():
        raise ConfigError("A health check command is required")
    resource_name = ns.resource_name if ns.resource_name.startswith("/") else f"/{ns.resource_name}"

    cfg = Settings()
    cfg.COMMAND = ns.command
    cfg.TIMEOUT = parse_timeout(ns.timeout)
    cfg.PERIODICITY = ns.periodicity
    cfg.LOG_LEVEL = ns.log_level
    cfg.BIND = ns.bind
    cfg.RESOURCE_NAME = resource_name

    parse_bind(cfg.BIND)
    return cfg
