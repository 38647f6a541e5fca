"""Unit tests for the status-capturing writer wrapper."""

from static_server.pipeline.io import SocketResponseWriter
from static_server.pipeline.recorder import StatusRecorder
from tests.utils.writers import RecordingSocket, split_response


def _recorder():
    sock = RecordingSocket()
    return StatusRecorder(SocketResponseWriter(sock)), sock


def test_status_defaults_to_ok():
    """A handler that never sets a status is recorded as 200."""
    recorder, _ = _recorder()

    assert recorder.status == 200


def test_records_explicit_status_and_forwards():
    """The recorded status matches what the client receives."""
    recorder, sock = _recorder()
    recorder.headers["Content-Length"] = "0"

    recorder.write_header(404)

    assert recorder.status == 404
    assert split_response(sock.sent)[0] == "HTTP/1.1 404 Not Found"


def test_implicit_status_from_write():
    """Body writes without a header still record 200."""
    recorder, sock = _recorder()

    recorder.write(b"data")
    recorder.finish()

    assert recorder.status == 200
    assert split_response(sock.sent)[0] == "HTTP/1.1 200 OK"


def test_late_status_changes_are_not_recorded():
    """Once the header is sent the first status sticks."""
    recorder, sock = _recorder()

    recorder.write(b"data")
    recorder.write_header(500)
    recorder.finish()

    assert recorder.status == 200
    assert b"HTTP/1.1 500" not in sock.sent


def test_headers_and_attributes_are_delegated():
    """The wrapper exposes the underlying writer's state."""
    recorder, _ = _recorder()
    recorder.headers["X-Test"] = "yes"

    recorder.write(b"abc")

    assert recorder.header_written is True
    assert recorder.bytes_written == 3
    assert recorder.close_connection is False
