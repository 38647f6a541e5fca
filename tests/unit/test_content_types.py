"""Unit tests for Content-Type detection."""

from pathlib import Path

import pytest

from static_server.domain.content_types import (
    DEFAULT_CONTENT_TYPE,
    HTML_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
    content_type_for_path,
    sniff_content_type,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("index.html", "text/html; charset=utf-8"),
        ("notes.txt", "text/plain; charset=utf-8"),
        ("data.json", "application/json; charset=utf-8"),
        ("photo.png", "image/png"),
    ],
)
def test_extension_lookup(name, expected):
    """Known extensions map to their registered type."""
    assert content_type_for_path(Path(name)) == expected


def test_unknown_extension_returns_none():
    """Unknown extensions defer to content sniffing."""
    assert content_type_for_path(Path("README.unknownext")) is None


@pytest.mark.parametrize(
    ("sample", "expected"),
    [
        (b"  <!DOCTYPE HTML><title>x</title>", HTML_CONTENT_TYPE),
        (b"<p>hello</p>", HTML_CONTENT_TYPE),
        (b"<?xml version='1.0'?><a/>", "text/xml; charset=utf-8"),
        (b"%PDF-1.7 ...", "application/pdf"),
        (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
        (b"plain words\n", TEXT_CONTENT_TYPE),
        (b"\x00\x01\x02binary", DEFAULT_CONTENT_TYPE),
        (b"", TEXT_CONTENT_TYPE),
    ],
)
def test_sniffing(sample, expected):
    """Leading bytes decide the type when the extension cannot."""
    assert sniff_content_type(sample) == expected


def test_tag_prefix_needs_terminator():
    """'<pre' is not mistaken for a '<p' tag."""
    assert sniff_content_type(b"<pretend") == TEXT_CONTENT_TYPE
