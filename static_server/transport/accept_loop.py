"""Main connection acceptance loop."""

import errno
import logging
import socket
import threading
import time

from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.transport.context import WorkerContext
from static_server.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.accept"), {}
)

TEMPORARY_ACCEPT_ERRNOS = {
    errno.ECONNABORTED,
    errno.EMFILE,
    errno.ENFILE,
    errno.ENOBUFS,
    errno.ENOMEM,
}
ACCEPT_RETRY_DELAY_SECONDS = 0.05


def _handle_accepted_client(
    client_socket: socket.socket,
    client_address: tuple,
    handler_context: WorkerContext,
) -> None:
    """Hand a newly accepted connection to its own worker thread."""
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )

    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, handler_context),
        daemon=True,
    )
    handler_context.lifecycle.register_worker(thread, client_socket)
    thread.start()


def accept_connections(
    server_socket: socket.socket, handler_context: WorkerContext
) -> None:
    """Accept connections until the lifecycle asks the server to stop."""
    lifecycle = handler_context.lifecycle
    while True:
        try:
            client_socket, client_address = server_socket.accept()
        except socket.timeout:
            if lifecycle.should_stop():
                break
            continue
        except OSError as error:
            if lifecycle.should_stop():
                break
            ACCEPT_LOGGER.error(
                "Socket accept failed",
                extra={"event": "accept_error", "error_type": type(error).__name__},
            )
            if error.errno in TEMPORARY_ACCEPT_ERRNOS:
                time.sleep(ACCEPT_RETRY_DELAY_SECONDS)
                continue
            raise

        if lifecycle.is_draining():
            client_socket.close()
            continue

        _handle_accepted_client(client_socket, client_address, handler_context)
