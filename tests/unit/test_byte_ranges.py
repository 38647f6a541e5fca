"""Unit tests for Range header parsing."""

import pytest

from static_server.domain.byte_ranges import (
    ByteRange,
    InvalidRange,
    parse_range_header,
    total_length,
)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("bytes=0-9", [ByteRange(0, 10)]),
        ("bytes=40-", [ByteRange(40, 10)]),
        ("bytes=-5", [ByteRange(45, 5)]),
        ("bytes=-500", [ByteRange(0, 50)]),
        ("bytes=45-1000", [ByteRange(45, 5)]),
        ("bytes= 0-1 , 4-5", [ByteRange(0, 2), ByteRange(4, 2)]),
    ],
)
def test_satisfiable_ranges(header, expected):
    """Open, suffix and clamped ranges resolve against the body size."""
    assert parse_range_header(header, 50) == expected


def test_empty_header_means_whole_body():
    """No header yields no ranges."""
    assert parse_range_header("", 50) == []


def test_unsatisfiable_ranges_are_dropped_when_others_remain():
    """A range past the end is ignored if another range is usable."""
    assert parse_range_header("bytes=100-200,0-0", 50) == [ByteRange(0, 1)]


@pytest.mark.parametrize(
    "header",
    [
        "bytes=50-",
        "bytes=100-200",
        "bytes=-0",
    ],
)
def test_fully_unsatisfiable_header_raises(header):
    """Every range beyond the body means 416."""
    with pytest.raises(InvalidRange):
        parse_range_header(header, 50)


@pytest.mark.parametrize(
    "header",
    ["items=0-1", "bytes", "bytes=5", "bytes=9-3", "bytes=a-b", "bytes=1-2-3"],
)
def test_malformed_headers_raise(header):
    """Syntax errors and reversed spans are rejected."""
    with pytest.raises(InvalidRange):
        parse_range_header(header, 50)


def test_any_range_of_empty_file_is_unsatisfiable():
    """An empty body has no satisfiable bytes."""
    with pytest.raises(InvalidRange):
        parse_range_header("bytes=0-", 0)
    with pytest.raises(InvalidRange):
        parse_range_header("bytes=-1", 0)


def test_content_range_and_total_length():
    """Header values and totals are derived from the spans."""
    ranges = [ByteRange(0, 10), ByteRange(40, 10)]

    assert ranges[1].end == 49
    assert ranges[1].content_range(50) == "bytes 40-49/50"
    assert total_length(ranges) == 20


@pytest.mark.parametrize("header", ["bytes=²-", "bytes=0-³", "bytes=-١"])
def test_non_ascii_digits_are_malformed(header):
    """Only ASCII digits count as offsets."""
    with pytest.raises(InvalidRange):
        parse_range_header(header, 50)
