"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
from typing import Optional

from static_server.domain.correlation_id import (
    CorrelationLoggerAdapter,
    clear_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from static_server.domain.http_types import HttpRequest, HttpResponse, should_close
from static_server.domain.response_builders import (
    bad_request_response,
    internal_error_response,
    not_implemented_response,
)
from static_server.pipeline.io import (
    SocketResponseWriter,
    UnsupportedTransferEncoding,
    receive_request,
    send_response,
)
from static_server.transport.context import WorkerContext

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.transport.worker"), {}
)


def _reject_request(client_socket: socket.socket, response: HttpResponse) -> None:
    writer = SocketResponseWriter(client_socket, close_connection=True)
    send_response(writer, response)
    writer.finish()


def _read_request(
    client_socket: socket.socket,
    buffer: bytes,
    client_addr_str: str,
) -> tuple[Optional[HttpRequest], bytes]:
    """Read one request; unreadable requests are answered, then the connection ends."""
    try:
        return receive_request(client_socket, buffer)
    except UnsupportedTransferEncoding:
        WORKER_LOGGER.warning(
            "Unsupported transfer encoding",
            extra={"event": "unsupported_transfer_encoding", "client": client_addr_str},
        )
        _reject_request(client_socket, not_implemented_response())
    except (ValueError, UnicodeDecodeError):
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        _reject_request(client_socket, bad_request_response())
    return None, b""


def _process_request(
    request: HttpRequest,
    context: WorkerContext,
    client_socket: socket.socket,
) -> bool:
    """Dispatch the request; return True when the connection must be closed."""
    writer = SocketResponseWriter(
        client_socket,
        method=request.method,
        close_connection=should_close(request) or context.lifecycle.is_draining(),
        version=request.version,
    )
    try:
        context.router.dispatch(writer, request)
    except OSError:
        raise
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in handler",
            extra={
                "event": "handler_error",
                "route": request.path,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
        if writer.header_written:
            return True
        writer.close_connection = True
        send_response(writer, internal_error_response())
    writer.finish()
    return writer.close_connection


def _cleanup_worker(
    context: WorkerContext,
    thread: threading.Thread,
    client_socket: socket.socket,
    client_addr_str: str,
) -> None:
    context.lifecycle.cleanup_worker(thread)

    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()

    WORKER_LOGGER.debug(
        "Socket closed",
        extra={"event": "socket_closed", "client": client_addr_str},
    )
    clear_correlation_id()


def handle_client(
    client_socket: socket.socket,
    client_address: tuple,
    context: WorkerContext,
) -> None:
    """Process requests on a client socket until the connection is closed."""
    buffer = b""
    lifecycle = context.lifecycle
    current_thread = threading.current_thread()
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    client_socket.settimeout(None)

    try:
        while lifecycle.mark_idle(current_thread):
            request, buffer = _read_request(client_socket, buffer, client_addr_str)
            if request is None:
                break
            if not lifecycle.mark_active(current_thread):
                break

            if get_correlation_id() is None:
                set_correlation_id(generate_correlation_id())

            WORKER_LOGGER.debug(
                "Request line parsed",
                extra={
                    "event": "request_line_parsed",
                    "method": request.method,
                    "route": request.path,
                },
            )

            should_terminate_connection = _process_request(
                request, context, client_socket
            )
            clear_correlation_id()

            if should_terminate_connection:
                break
    except (ConnectionError, TimeoutError, OSError) as error:
        WORKER_LOGGER.debug(
            "Connection closed with error",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
    finally:
        _cleanup_worker(context, current_thread, client_socket, client_addr_str)
