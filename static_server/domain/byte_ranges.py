"""Parsing of ``Range: bytes=...`` request headers."""

from dataclasses import dataclass


class InvalidRange(ValueError):
    """Raised when a Range header is malformed or cannot be satisfied."""


@dataclass(frozen=True)
class ByteRange:
    """A contiguous, satisfiable span of a representation."""

    start: int
    length: int

    @property
    def end(self) -> int:
        """Return the inclusive index of the last byte."""
        return self.start + self.length - 1

    def content_range(self, size: int) -> str:
        """Return the Content-Range header value for this span."""
        return f"bytes {self.start}-{self.end}/{size}"


def _parse_offset(value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise InvalidRange(f"Invalid range offset: {value!r}")
    return int(value)


def parse_range_header(header: str, size: int) -> list[ByteRange]:
    """Return the satisfiable ranges requested by ``header`` for a body of ``size``.

    Ranges that start beyond the end of the body are dropped; when every
    requested range is dropped InvalidRange is raised so the caller can
    answer 416.
    """
    if not header:
        return []
    unit, separator, range_set = header.partition("=")
    if unit.strip() != "bytes" or not separator:
        raise InvalidRange("Unsupported range unit")

    ranges: list[ByteRange] = []
    saw_unsatisfiable = False
    for raw_part in range_set.split(","):
        part = raw_part.strip()
        if not part:
            continue
        if "-" not in part:
            raise InvalidRange(f"Invalid range: {part!r}")
        start_text, _, end_text = part.partition("-")
        start_text, end_text = start_text.strip(), end_text.strip()

        if not start_text:
            # suffix range: the final N bytes
            suffix_length = _parse_offset(end_text)
            if suffix_length == 0 or size == 0:
                saw_unsatisfiable = True
                continue
            suffix_length = min(suffix_length, size)
            ranges.append(ByteRange(size - suffix_length, suffix_length))
            continue

        start = _parse_offset(start_text)
        if start >= size:
            saw_unsatisfiable = True
            continue
        if not end_text:
            ranges.append(ByteRange(start, size - start))
            continue
        end = _parse_offset(end_text)
        if start > end:
            raise InvalidRange(f"Invalid range: {part!r}")
        end = min(end, size - 1)
        ranges.append(ByteRange(start, end - start + 1))

    if not ranges and saw_unsatisfiable:
        raise InvalidRange("Requested range not satisfiable")
    return ranges


def total_length(ranges: list[ByteRange]) -> int:
    """Return the number of bytes covered by ``ranges``."""
    return sum(byte_range.length for byte_range in ranges)
