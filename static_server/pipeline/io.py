"""HTTP Input/Output operations."""

import logging
import socket
import urllib.parse
from email.utils import formatdate
from typing import Optional, Tuple

from static_server.bootstrap.config import HEADER_DELIMITER, MAX_HEADER_BYTES
from static_server.domain.correlation_id import (
    CorrelationLoggerAdapter,
    get_correlation_id,
    is_valid_correlation_id,
    set_correlation_id,
)
from static_server.domain.http_types import (
    HttpRequest,
    HttpResponse,
    body_allowed,
    status_line,
)

IO_LOGGER = CorrelationLoggerAdapter(logging.getLogger("static_server.io"), {})

SUPPORTED_VERSIONS = {"HTTP/1.0", "HTTP/1.1"}


class UnsupportedTransferEncoding(ValueError):
    """Raised when a request body uses a transfer coding the server cannot read."""


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Convert raw header lines into a lowercase-keyed dictionary."""
    parsed = {}
    for line in lines:
        name, separator, value = line.partition(":")
        if not separator or not name or name != name.strip():
            continue
        parsed[name.lower()] = value.strip()
    return parsed


def parse_request_line(request_line: str) -> Tuple[str, str, str, str]:
    """Return the method, decoded path, raw query and version of a request line."""
    try:
        method, target, version = request_line.split(" ", 2)
    except ValueError as exc:
        raise ValueError("Invalid request line") from exc

    if version not in SUPPORTED_VERSIONS:
        raise ValueError(f"Unsupported protocol version: {version}")
    if not method or not target:
        raise ValueError("Invalid request line")

    parsed_target = urllib.parse.urlsplit(target)
    if not parsed_target.path.startswith("/"):
        raise ValueError("Invalid request target")
    path = urllib.parse.unquote(parsed_target.path)
    return method, path, parsed_target.query, version


def determine_content_length(headers: dict[str, str]) -> int:
    """Validate and return the declared Content-Length for the request."""
    if "transfer-encoding" in headers:
        raise UnsupportedTransferEncoding(headers["transfer-encoding"])
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    try:
        content_length = int(header_value)
    except ValueError as exc:
        raise ValueError("Invalid Content-Length") from exc
    if content_length < 0:
        raise ValueError("Negative Content-Length")
    return content_length


def receive_request(
    client_socket: socket.socket, buffer: bytes
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available.

    Returns ``(None, b"")`` when the peer closes the connection first.
    """
    while HEADER_DELIMITER not in buffer:
        if len(buffer) > MAX_HEADER_BYTES:
            raise ValueError("Request header block too large")
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        buffer += chunk

    header_block, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = header_block.decode("iso-8859-1").split("\r\n")
    method, path, query, version = parse_request_line(header_lines[0])
    headers = parse_headers(header_lines[1:])

    incoming_correlation_id = headers.get("x-request-id")
    if incoming_correlation_id and is_valid_correlation_id(incoming_correlation_id):
        set_correlation_id(incoming_correlation_id)

    content_length = determine_content_length(headers)

    while len(remainder) < content_length:
        chunk = client_socket.recv(4096)
        if not chunk:
            return None, b""
        remainder += chunk

    body = remainder[:content_length]
    leftover = remainder[content_length:]
    IO_LOGGER.debug("Parsed request", extra={"method": method, "route": path})
    return HttpRequest(method, path, headers, body, query, version), leftover


class SocketResponseWriter:
    """Streams one HTTP response onto a client socket.

    Headers are buffered until ``write_header`` (or the first ``write``,
    which implies 200). Without an explicit Content-Length the body is sent
    with chunked transfer coding.
    """

    def __init__(
        self,
        client_socket: socket.socket,
        method: str = "GET",
        close_connection: bool = False,
        version: str = "HTTP/1.1",
    ) -> None:
        self.headers: dict[str, str] = {}
        self.status: Optional[int] = None
        self.bytes_written = 0
        self.close_connection = close_connection
        self._socket = client_socket
        self._head_only = method == "HEAD"
        self._chunked = False
        self._chunked_allowed = version != "HTTP/1.0"
        self._body_allowed = True
        self._finished = False

    @property
    def header_written(self) -> bool:
        """Return True once the status line and headers are on the wire."""
        return self.status is not None

    def write_header(self, status: int) -> None:
        """Send the status line and buffered headers."""
        if self.header_written:
            IO_LOGGER.warning(
                "Superfluous write_header call",
                extra={"status_code": status, "event": "superfluous_header"},
            )
            return
        self.status = status
        self._body_allowed = body_allowed(status)

        headers = dict(self.headers)
        headers.setdefault("Date", formatdate(usegmt=True))
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Request-ID"] = correlation_id
        if not self._body_allowed:
            headers.pop("Content-Length", None)
            headers.pop("Transfer-Encoding", None)
        elif "Content-Length" not in headers and not self._head_only:
            if self._chunked_allowed:
                headers["Transfer-Encoding"] = "chunked"
                self._chunked = True
            else:
                self.close_connection = True
        if self.close_connection:
            headers["Connection"] = "close"

        header_lines = [status_line(status)]
        header_lines.extend(f"{name}: {value}" for name, value in headers.items())
        header_block = "\r\n".join(header_lines).encode("latin-1") + HEADER_DELIMITER
        self._socket.sendall(header_block)

    def write(self, data: bytes) -> int:
        """Write body bytes, sending an implicit 200 header first if needed."""
        if not self.header_written:
            self.write_header(200)
        if not data or not self._body_allowed or self._head_only:
            return 0
        if self._chunked:
            self._socket.sendall(f"{len(data):X}\r\n".encode() + data + b"\r\n")
        else:
            self._socket.sendall(data)
        self.bytes_written += len(data)
        return len(data)

    def finish(self) -> None:
        """Complete the response, emitting an empty 200 when nothing was written."""
        if self._finished:
            return
        if not self.header_written:
            self.headers.setdefault("Content-Length", "0")
            self.write_header(200)
        if self._chunked:
            self._socket.sendall(b"0\r\n\r\n")
        self._finished = True


def send_response(writer, response: HttpResponse) -> None:
    """Write a fully built HttpResponse through ``writer``."""
    writer.headers.update(response.headers)
    if response.body_iter is None:
        writer.headers.setdefault("Content-Length", str(len(response.body)))
    writer.write_header(response.status)
    if response.body_iter is not None:
        for chunk in response.body_iter:
            writer.write(chunk)
    elif response.body:
        writer.write(response.body)
    IO_LOGGER.debug(
        "Sent response",
        extra={"status_code": response.status, "bytes_out": writer.bytes_written},
    )
