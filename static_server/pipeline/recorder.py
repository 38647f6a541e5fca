"""Response writer decorator that remembers the status sent to the client."""

from http import HTTPStatus
from typing import Any


class StatusRecorder:
    """Forward every writer operation while capturing the response status.

    The status defaults to 200 so a handler that only calls ``write`` (an
    implicit 200 on the wire) is recorded correctly. Once a header has been
    sent, later ``write_header`` calls are forwarded but not recorded, since
    the writer ignores them too.
    """

    def __init__(self, writer: Any) -> None:
        self._writer = writer
        self.status = int(HTTPStatus.OK)

    def write_header(self, status: int) -> None:
        if not self._writer.header_written:
            self.status = status
        self._writer.write_header(status)

    def write(self, data: bytes) -> int:
        return self._writer.write(data)

    def finish(self) -> None:
        self._writer.finish()

    @property
    def headers(self) -> dict[str, str]:
        return self._writer.headers

    @property
    def header_written(self) -> bool:
        return self._writer.header_written

    def __getattr__(self, name: str) -> Any:
        return getattr(self._writer, name)
