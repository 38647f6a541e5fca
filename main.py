"""Serve files from a local directory over HTTP until SIGINT or SIGTERM."""

import logging
import sys
from typing import Optional

from static_server.bootstrap.config import ServerConfig, load_config
from static_server.bootstrap.logging_setup import configure_logging
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.lifecycle.server import FileServer, ShutdownTimeout
from static_server.lifecycle.signals import ShutdownSignal

SERVER_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.server"), {})


def run(config: ServerConfig) -> int:
    """Serve until a termination signal and return the process exit code."""
    server = FileServer(config)

    with ShutdownSignal() as shutdown_signal:
        SERVER_LOGGER.info(
            "Starting server on %s",
            config.address,
            extra={"event": "server_starting", "address": config.address},
        )
        server.start(on_failure=shutdown_signal.trigger)
        shutdown_signal.wait()

        if server.error is not None:
            SERVER_LOGGER.critical(
                "Received unexpected error: %s",
                server.error,
                extra={
                    "event": "listener_failed",
                    "error_type": type(server.error).__name__,
                },
            )
            return 1

        SERVER_LOGGER.info(
            "Shutting down server",
            extra={"event": "shutdown_started", "signal": shutdown_signal.signal_name},
        )
        try:
            server.shutdown()
        except (ShutdownTimeout, OSError) as error:
            SERVER_LOGGER.critical(
                "Received unexpected error during shutdown: %s",
                error,
                extra={"event": "shutdown_failed", "error_type": type(error).__name__},
            )
            return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, configure logging and run the server."""
    config = load_config(sys.argv[1:] if argv is None else argv)
    configure_logging(
        config.log_level,
        config.log_destination,
        use_json=config.log_format == "json",
        silent=config.silent,
    )
    SERVER_LOGGER.info(
        "Serving files from %s",
        config.directory,
        extra={"event": "serving_directory", "directory": config.directory},
    )
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
