"""Shared HTTP type definitions to avoid circular imports."""

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Iterable, Optional


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request."""

    method: str
    path: str
    headers: dict[str, str]
    body: bytes
    query: str = ""
    version: str = "HTTP/1.1"


@dataclass
class HttpResponse:
    """Represents a complete HTTP response ready to be written."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_iter: Optional[Iterable[bytes]] = None


def status_line(status: int, version: str = "HTTP/1.1") -> str:
    """Return the status line for a numeric status code."""
    try:
        reason = HTTPStatus(status).phrase
    except ValueError:
        reason = ""
    return f"{version} {status} {reason}".rstrip()


def body_allowed(status: int) -> bool:
    """Return False for statuses that must not carry a message body."""
    return not (100 <= status < 200 or status in (204, 304))


def should_close(request: HttpRequest) -> bool:
    """Determine whether the connection should be closed after responding."""
    connection = request.headers.get("connection", "").lower()
    if request.version == "HTTP/1.0":
        return connection != "keep-alive"
    return connection == "close"
