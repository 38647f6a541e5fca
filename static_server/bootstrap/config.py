"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


HEADER_DELIMITER = b"\r\n\r\n"
MAX_HEADER_BYTES = 64 * 1024
DEFAULT_DIRECTORY = "."
DEFAULT_ADDRESS = ":8080"
DEFAULT_LOG_FORMAT = "text"
SHUTDOWN_GRACE_SECONDS = 5.0
ACCEPT_POLL_SECONDS = 0.5
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_FORMATS = ["text", "json"]


@dataclass(frozen=True)
class ServerConfig:
    """Immutable process-lifetime server configuration."""

    directory: str = DEFAULT_DIRECTORY
    host: str = ""
    port: int = 8080
    log_requests: bool = True
    silent: bool = False
    log_level: str = "INFO"
    log_destination: str = "stdout"
    log_format: str = DEFAULT_LOG_FORMAT
    shutdown_grace_seconds: float = SHUTDOWN_GRACE_SECONDS

    @property
    def address(self) -> str:
        """Return the bind address in ``host:port`` form."""
        return format_address(self.host, self.port)


def format_address(host: str, port: int) -> str:
    """Render a host and port the way they are accepted on the command line."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_address(value: str) -> tuple[str, int]:
    """Split a ``host:port`` string; an empty host binds all interfaces."""
    host, separator, port_text = value.rpartition(":")
    if not separator:
        raise argparse.ArgumentTypeError(f"missing port in address {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise argparse.ArgumentTypeError(f"too many colons in address {value!r}")
    if not (port_text.isascii() and port_text.isdigit()):
        raise argparse.ArgumentTypeError(f"invalid port in address {value!r}")
    port = int(port_text)
    if port > 65535:
        raise argparse.ArgumentTypeError(f"port out of range in address {value!r}")
    return host, port


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(
        description="Serve files from a local directory over HTTP"
    )
    parser.add_argument(
        "-d",
        "-dir",
        "--directory",
        dest="directory",
        default=DEFAULT_DIRECTORY,
        help="The directory to serve files from.",
    )
    parser.add_argument(
        "-a",
        "-address",
        "--address",
        dest="address",
        type=parse_address,
        default=DEFAULT_ADDRESS,
        help="The address to listen on.",
    )
    parser.add_argument(
        "-s",
        "--silent",
        action="store_true",
        help="Silence server logging.",
    )
    default_log_level = _env_str("STATIC_SERVER_LOG_LEVEL", "INFO").upper()
    default_destination = _env_str("STATIC_SERVER_LOG_DESTINATION", "stdout")
    default_format = _env_str("STATIC_SERVER_LOG_FORMAT", DEFAULT_LOG_FORMAT).lower()
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=LOG_LEVELS,
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=default_format,
        choices=LOG_FORMATS,
        type=str.lower,
    )
    return parser.parse_args(argv)


def load_config(argv: Optional[list[str]] = None) -> ServerConfig:
    """Parse ``argv`` into a ServerConfig, exiting with usage on bad input."""
    args = parse_cli_args([] if argv is None else argv)
    host, port = args.address
    return ServerConfig(
        directory=args.directory,
        host=host,
        port=port,
        log_requests=not args.silent,
        silent=args.silent,
        log_level=args.log_level,
        log_destination=args.log_destination,
        log_format=args.log_format,
    )
