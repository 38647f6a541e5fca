"""Content-Type detection by file extension with a byte-signature fallback."""

import mimetypes
from pathlib import Path
from typing import Optional

SNIFF_LENGTH = 512
DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"

_HTML_SIGNATURES = (
    b"<!doctype html",
    b"<html",
    b"<head",
    b"<script",
    b"<iframe",
    b"<h1",
    b"<div",
    b"<font",
    b"<table",
    b"<a",
    b"<style",
    b"<title",
    b"<b",
    b"<body",
    b"<br",
    b"<p",
    b"<!--",
)

_EXACT_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"\xef\xbb\xbf", TEXT_CONTENT_TYPE),
)

_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def content_type_for_path(filepath: Path) -> Optional[str]:
    """Return the Content-Type registered for the file extension, if any."""
    mime_type, _ = mimetypes.guess_type(filepath.as_posix())
    if mime_type is None:
        return None
    if mime_type.startswith("text/") or mime_type in (
        "application/javascript",
        "application/json",
    ):
        return f"{mime_type}; charset=utf-8"
    return mime_type


def sniff_content_type(sample: bytes) -> str:
    """Guess a Content-Type from the leading bytes of a file."""
    data = sample[:SNIFF_LENGTH]
    stripped = data.lstrip(b"\t\n\x0c\r ")
    lowered = stripped.lower()
    for signature in _HTML_SIGNATURES:
        if lowered.startswith(signature):
            tail = lowered[len(signature) : len(signature) + 1]
            if tail in (b" ", b">"):
                return HTML_CONTENT_TYPE
    if lowered.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for signature, content_type in _EXACT_SIGNATURES:
        if data.startswith(signature):
            return content_type
    if any(byte in _BINARY_BYTES for byte in data):
        return DEFAULT_CONTENT_TYPE
    return TEXT_CONTENT_TYPE
