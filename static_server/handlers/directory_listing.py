"""HTML directory listing for directories without an index document."""

import html
import os
import urllib.parse
from pathlib import Path

LISTING_HEADER = (
    '<!doctype html>\n<meta name="viewport" content="width=device-width">\n<pre>\n'
)
LISTING_FOOTER = "</pre>\n"


def list_entries(directory: Path) -> list[str]:
    """Return sorted entry names, directories suffixed with ``/``."""
    names = []
    with os.scandir(directory) as entries:
        for entry in entries:
            name = entry.name
            if entry.is_dir():
                name += "/"
            names.append(name)
    return sorted(names)


def render_listing(directory: Path) -> bytes:
    """Render the ``<pre>`` listing document for ``directory``."""
    lines = [LISTING_HEADER]
    for name in list_entries(directory):
        href = urllib.parse.quote(name)
        lines.append(f'<a href="{html.escape(href)}">{html.escape(name)}</a>\n')
    lines.append(LISTING_FOOTER)
    return "".join(lines).encode("utf-8")
