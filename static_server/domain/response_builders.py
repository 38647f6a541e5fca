"""Pure HTTP response builders."""

import urllib.parse
from http import HTTPStatus

from static_server.domain.http_types import HttpRequest, HttpResponse

ERROR_HEADERS = {
    "Content-Type": "text/plain; charset=utf-8",
    "X-Content-Type-Options": "nosniff",
}


def error_response(status: int, message: str = "") -> HttpResponse:
    """Return a short text/plain error document for ``status``."""
    if not message:
        message = f"{int(status)} {HTTPStatus(status).phrase}"
    return HttpResponse(int(status), dict(ERROR_HEADERS), f"{message}\n".encode())


def not_found_response() -> HttpResponse:
    """Return a 404 response."""
    return error_response(HTTPStatus.NOT_FOUND, "404 page not found")


def forbidden_response() -> HttpResponse:
    """Return a 403 response."""
    return error_response(HTTPStatus.FORBIDDEN)


def internal_error_response() -> HttpResponse:
    """Return a 500 response."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR)


def bad_request_response() -> HttpResponse:
    """Return a 400 response for requests that could not be parsed."""
    return error_response(HTTPStatus.BAD_REQUEST)


def not_implemented_response() -> HttpResponse:
    """Return a 501 response for unsupported request framing."""
    return error_response(HTTPStatus.NOT_IMPLEMENTED)


def range_not_satisfiable_response(size: int) -> HttpResponse:
    """Return a 416 response advertising the representation size."""
    response = error_response(HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE)
    response.headers["Content-Range"] = f"bytes */{size}"
    return response


def local_redirect_response(request: HttpRequest, target: str) -> HttpResponse:
    """Return a 301 to ``target`` relative to the request, keeping the query."""
    location = urllib.parse.quote(target)
    if request.query:
        location += "?" + request.query
    return HttpResponse(int(HTTPStatus.MOVED_PERMANENTLY), {"Location": location})
