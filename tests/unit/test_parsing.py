"""Unit tests covering HTTP request parsing behavior."""

import pytest

from static_server.bootstrap.config import MAX_HEADER_BYTES
from static_server.domain.correlation_id import (
    clear_correlation_id,
    get_correlation_id,
)
from static_server.domain.http_types import HttpRequest
from static_server.pipeline.io import (
    UnsupportedTransferEncoding,
    determine_content_length,
    parse_headers,
    parse_request_line,
    receive_request,
)


class FakeSocket:
    """Minimal socket stub that returns predefined chunks sequentially."""

    def __init__(self, chunks):
        self._chunks = [
            chunk if isinstance(chunk, bytes) else chunk.encode() for chunk in chunks
        ]

    def recv(self, _):
        """Return the next chunk or an empty bytes object when exhausted."""

        if self._chunks:
            return self._chunks.pop(0)
        return b""


def test_parse_headers_normalizes_keys_and_skips_invalid_lines():
    """Header parsing should lowercase keys and ignore malformed lines."""

    headers = parse_headers(
        [
            "Content-Length: 10",
            "If-Modified-Since: Mon, 02 Jan 2006 15:04:05 GMT",
            "x-custom:value",
            "invalid-line",
            " Folded: nope",
        ]
    )
    assert headers == {
        "content-length": "10",
        "if-modified-since": "Mon, 02 Jan 2006 15:04:05 GMT",
        "x-custom": "value",
    }


def test_parse_request_line_decodes_path_and_keeps_query():
    """Percent-escapes in the path are decoded; the query stays raw."""

    method, path, query, version = parse_request_line(
        "GET /my%20docs/a.txt?x=1&y=%2F HTTP/1.0"
    )

    assert method == "GET"
    assert path == "/my docs/a.txt"
    assert query == "x=1&y=%2F"
    assert version == "HTTP/1.0"


@pytest.mark.parametrize(
    "line",
    [
        "GET /",
        "GET / HTTP/2.0",
        "GET relative HTTP/1.1",
        " / HTTP/1.1",
    ],
)
def test_parse_request_line_rejects_malformed_lines(line):
    """Unsupported versions and bad targets raise ValueError."""

    with pytest.raises(ValueError):
        parse_request_line(line)


def test_determine_content_length():
    """Content-Length is optional but must be a non-negative integer."""

    assert determine_content_length({}) == 0
    assert determine_content_length({"content-length": "12"}) == 12
    with pytest.raises(ValueError):
        determine_content_length({"content-length": "-1"})
    with pytest.raises(ValueError):
        determine_content_length({"content-length": "ten"})


def test_transfer_encoded_bodies_are_unsupported():
    """Chunked request bodies raise a dedicated error."""

    with pytest.raises(UnsupportedTransferEncoding):
        determine_content_length({"transfer-encoding": "chunked"})


def test_receive_request_handles_partial_reads_and_leftover_bytes():
    """Receiving a request must tolerate partial socket reads."""

    request_bytes = (
        b"PUT /sub/file.txt HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: 5\r\n\r\n"
        b"helloEXTRA"
    )
    socket_chunks = [request_bytes[:25], request_bytes[25:50], request_bytes[50:]]
    client = FakeSocket(socket_chunks)
    request, leftover = receive_request(client, b"")
    assert isinstance(request, HttpRequest)
    assert request.method == "PUT"
    assert request.path == "/sub/file.txt"
    assert request.version == "HTTP/1.1"
    assert request.body == b"hello"
    assert leftover == b"EXTRA"


def test_receive_request_uses_buffered_pipelined_request():
    """A request already in the buffer is parsed without reading the socket."""

    pipelined = b"GET /a HTTP/1.1\r\n\r\nGET /b HTTP/1.1\r\n\r\n"
    request, leftover = receive_request(FakeSocket([]), pipelined)

    assert request.path == "/a"
    second, rest = receive_request(FakeSocket([]), leftover)
    assert second.path == "/b"
    assert rest == b""


def test_receive_request_returns_none_when_socket_closes_early():
    """If the client disconnects early the parser should return nothing."""

    client = FakeSocket([b"GET / HTTP/1.1\r\n"])
    request, buffer = receive_request(client, b"")
    assert request is None
    assert buffer == b""


def test_receive_request_rejects_oversized_header_block():
    """Header blocks beyond the limit raise instead of growing forever."""

    client = FakeSocket([b"GET / HTTP/1.1\r\n", b"X-Pad: " + b"a" * MAX_HEADER_BYTES])
    with pytest.raises(ValueError):
        receive_request(client, b"")


def test_receive_request_adopts_incoming_request_id():
    """An X-Request-ID header becomes the correlation ID for the request."""

    clear_correlation_id()
    client = FakeSocket([b"GET / HTTP/1.1\r\nX-Request-ID: abc-123\r\n\r\n"])
    try:
        receive_request(client, b"")
        assert get_correlation_id() == "abc-123"
    finally:
        clear_correlation_id()


@pytest.mark.parametrize(
    "request_id",
    [
        "abc\nSet-Cookie: pwned=1",
        "tab\tseparated",
        "café",
        "x" * 129,
    ],
)
def test_receive_request_ignores_unsafe_request_id(request_id):
    """Request IDs that could corrupt the response header block are dropped."""

    clear_correlation_id()
    raw = f"GET / HTTP/1.1\r\nX-Request-ID: {request_id}\r\n\r\n".encode("latin-1")
    try:
        request, _ = receive_request(FakeSocket([raw]), b"")
        assert request is not None
        assert get_correlation_id() is None
    finally:
        clear_correlation_id()
