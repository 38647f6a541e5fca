"""File serving handlers."""

import logging
import os
import stat
import uuid
from email.utils import formatdate, parsedate_to_datetime
from http import HTTPStatus
from pathlib import Path
from typing import Iterator, Optional

from static_server.domain.byte_ranges import (
    ByteRange,
    InvalidRange,
    parse_range_header,
    total_length,
)
from static_server.domain.content_types import (
    HTML_CONTENT_TYPE,
    SNIFF_LENGTH,
    content_type_for_path,
    sniff_content_type,
)
from static_server.domain.correlation_id import CorrelationLoggerAdapter
from static_server.domain.http_types import HttpRequest, HttpResponse
from static_server.domain.response_builders import (
    error_response,
    forbidden_response,
    internal_error_response,
    local_redirect_response,
    not_found_response,
    range_not_satisfiable_response,
)
from static_server.domain.sandbox import ForbiddenPath, resolve_sandbox_path
from static_server.handlers.directory_listing import render_listing
from static_server.pipeline.io import send_response

FILE_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("static_server.handlers.file"), {}
)

INDEX_DOCUMENT = "index.html"


def stream_file(
    filepath: Path,
    offset: int = 0,
    length: Optional[int] = None,
    chunk_size: int = 65536,
) -> Iterator[bytes]:
    """Yield up to ``length`` bytes of the file from ``offset`` in fixed-size chunks."""
    if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
        FILE_LOGGER.debug(
            "File streaming started",
            extra={"event": "file_streaming_started", "route": filepath.as_posix()},
        )
    remaining = length
    with open(filepath, "rb") as file_handle:
        file_handle.seek(offset)
        while remaining is None or remaining > 0:
            read_size = chunk_size if remaining is None else min(chunk_size, remaining)
            chunk = file_handle.read(read_size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk


def _parse_http_date(value: str) -> Optional[int]:
    try:
        return int(parsedate_to_datetime(value).timestamp())
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _last_segment(url_path: str) -> str:
    return url_path.rstrip("/").rsplit("/", 1)[-1]


def _is_safe_method(request: HttpRequest) -> bool:
    return request.method in ("GET", "HEAD")


def check_preconditions(request: HttpRequest, modified: int) -> Optional[int]:
    """Return 412 or 304 when a conditional header short-circuits the request."""
    if modified <= 0:
        return None
    unmodified_since = request.headers.get("if-unmodified-since")
    if unmodified_since and "if-match" not in request.headers:
        limit = _parse_http_date(unmodified_since)
        if limit is not None and modified > limit:
            return HTTPStatus.PRECONDITION_FAILED
    modified_since = request.headers.get("if-modified-since")
    if (
        modified_since
        and "if-none-match" not in request.headers
        and _is_safe_method(request)
    ):
        since = _parse_http_date(modified_since)
        if since is not None and modified <= since:
            return HTTPStatus.NOT_MODIFIED
    return None


def range_applies(request: HttpRequest, modified: int) -> bool:
    """Return False when an If-Range validator no longer matches the file."""
    if_range = request.headers.get("if-range")
    if not if_range:
        return True
    if if_range.startswith(('"', "W/")):
        return False
    validator = _parse_http_date(if_range)
    return validator is not None and modified > 0 and validator == modified


class FileResponder:
    """Serve files below a root directory."""

    def __init__(self, directory: str, index_document: str = INDEX_DOCUMENT) -> None:
        self.directory = directory
        self.index_document = index_document

    def __call__(self, writer, request: HttpRequest) -> None:
        send_response(writer, self.respond(request))

    def respond(self, request: HttpRequest) -> HttpResponse:
        """Build the response for ``request``."""
        try:
            resolved_path = resolve_sandbox_path(self.directory, request.path)
        except ForbiddenPath:
            if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
                FILE_LOGGER.debug(
                    "Forbidden path access blocked",
                    extra={"event": "forbidden_path", "route": request.path},
                )
            return forbidden_response()

        try:
            return self._respond_for_path(request, resolved_path)
        except (FileNotFoundError, NotADirectoryError):
            if FILE_LOGGER.logger.isEnabledFor(logging.DEBUG):
                FILE_LOGGER.debug(
                    "File not found",
                    extra={"event": "file_not_found", "route": request.path},
                )
            return not_found_response()
        except PermissionError:
            return forbidden_response()
        except OSError as error:
            FILE_LOGGER.error(
                "File access failed",
                extra={
                    "event": "file_error",
                    "route": request.path,
                    "error_type": type(error).__name__,
                },
            )
            return internal_error_response()

    def _respond_for_path(
        self, request: HttpRequest, resolved_path: Path
    ) -> HttpResponse:
        stat_result = resolved_path.stat()
        if stat.S_ISDIR(stat_result.st_mode):
            if not request.path.endswith("/"):
                return local_redirect_response(
                    request, _last_segment(request.path) + "/"
                )
            index_path = resolved_path / self.index_document
            try:
                index_stat = index_path.stat()
            except OSError:
                return self._listing_response(request, resolved_path, stat_result)
            if stat.S_ISREG(index_stat.st_mode):
                return self._file_response(request, index_path, index_stat)
            return self._listing_response(request, resolved_path, stat_result)

        if request.path.endswith("/"):
            return local_redirect_response(
                request, "../" + _last_segment(request.path)
            )
        if not stat.S_ISREG(stat_result.st_mode):
            return not_found_response()
        return self._file_response(request, resolved_path, stat_result)

    def _listing_response(
        self, request: HttpRequest, directory: Path, stat_result: os.stat_result
    ) -> HttpResponse:
        modified = int(stat_result.st_mtime)
        precondition = check_preconditions(request, modified)
        headers = {}
        if modified > 0:
            headers["Last-Modified"] = formatdate(modified, usegmt=True)
        if precondition == HTTPStatus.NOT_MODIFIED:
            return HttpResponse(int(precondition), headers)
        if precondition is not None:
            return error_response(precondition)
        body = render_listing(directory)
        headers["Content-Type"] = HTML_CONTENT_TYPE
        headers["Content-Length"] = str(len(body))
        return HttpResponse(
            int(HTTPStatus.OK), headers, b"" if request.method == "HEAD" else body
        )

    def _content_type(self, filepath: Path) -> str:
        with open(filepath, "rb") as file_handle:
            sample = file_handle.read(SNIFF_LENGTH)
        return content_type_for_path(filepath) or sniff_content_type(sample)

    def _file_response(
        self, request: HttpRequest, filepath: Path, stat_result: os.stat_result
    ) -> HttpResponse:
        modified = int(stat_result.st_mtime)
        size = stat_result.st_size
        headers = {"Accept-Ranges": "bytes"}
        if modified > 0:
            headers["Last-Modified"] = formatdate(modified, usegmt=True)

        precondition = check_preconditions(request, modified)
        if precondition == HTTPStatus.NOT_MODIFIED:
            return HttpResponse(int(precondition), headers)
        if precondition is not None:
            return error_response(precondition)

        content_type = self._content_type(filepath)
        headers["Content-Type"] = content_type

        ranges: list[ByteRange] = []
        range_header = request.headers.get("range")
        if range_header and range_applies(request, modified):
            try:
                ranges = parse_range_header(range_header, size)
            except InvalidRange:
                FILE_LOGGER.debug(
                    "Unsatisfiable range requested",
                    extra={"event": "range_not_satisfiable", "route": request.path},
                )
                return range_not_satisfiable_response(size)
            if total_length(ranges) > size:
                ranges = []

        status = HTTPStatus.OK
        if len(ranges) == 1:
            byte_range = ranges[0]
            status = HTTPStatus.PARTIAL_CONTENT
            headers["Content-Range"] = byte_range.content_range(size)
            headers["Content-Length"] = str(byte_range.length)
            body_iter = stream_file(filepath, byte_range.start, byte_range.length)
        elif ranges:
            status = HTTPStatus.PARTIAL_CONTENT
            boundary = uuid.uuid4().hex
            headers["Content-Type"] = f"multipart/byteranges; boundary={boundary}"
            length, body_iter = _multipart_body(
                filepath, ranges, size, content_type, boundary
            )
            headers["Content-Length"] = str(length)
        else:
            headers["Content-Length"] = str(size)
            body_iter = stream_file(filepath)

        if request.method == "HEAD":
            body_iter = iter(())
        return HttpResponse(int(status), headers, body_iter=body_iter)


def _multipart_body(
    filepath: Path,
    ranges: list[ByteRange],
    size: int,
    content_type: str,
    boundary: str,
) -> tuple[int, Iterator[bytes]]:
    """Return the length and lazy body of a ``multipart/byteranges`` document."""
    part_headers = []
    for index, byte_range in enumerate(ranges):
        delimiter = f"--{boundary}" if index == 0 else f"\r\n--{boundary}"
        part_headers.append(
            (
                f"{delimiter}\r\n"
                f"Content-Range: {byte_range.content_range(size)}\r\n"
                f"Content-Type: {content_type}\r\n\r\n"
            ).encode("latin-1")
        )
    closing = f"\r\n--{boundary}--\r\n".encode("latin-1")
    length = sum(len(header) for header in part_headers)
    length += total_length(ranges) + len(closing)

    def generate() -> Iterator[bytes]:
        for header, byte_range in zip(part_headers, ranges):
            yield header
            yield from stream_file(filepath, byte_range.start, byte_range.length)
        yield closing

    return length, generate()
