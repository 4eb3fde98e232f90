"""Directory listing pages.

``list_directory`` snapshots a directory's children; ``render_directory_listing``
turns them into an HTML page through a kida template. Entry names come
from the filesystem, so the template is always autoescaped.
"""

from __future__ import annotations

import functools
import os
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import quote

from kida import Environment

_LISTING_TEMPLATE = """\
<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>Index of {{ title }}</title>
<style>
body { font-family: system-ui, sans-serif; margin: 2em; }
table { border-collapse: collapse; }
td, th { padding: 0.2em 1.5em 0.2em 0; text-align: left; }
td.size { text-align: right; }
</style>
</head>
<body>
<h1>Index of {{ title }}</h1>
<table>
<tr><th>Name</th><th>Size</th><th>Modified</th></tr>
{% if parent_url %}
<tr><td><a href="{{ parent_url }}">../</a></td><td></td><td></td></tr>
{% end %}
{% for entry in entries %}
<tr><td><a href="{{ entry.href }}">{{ entry.label }}</a></td>
    <td class="size">{{ entry.size }}</td><td>{{ entry.modified }}</td></tr>
{% end %}
</table>
</body>
</html>
"""


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One child of a listed directory."""

    name: str
    is_dir: bool
    size: int
    modified: float


@dataclass(frozen=True, slots=True)
class _Row:
    href: str
    label: str
    size: str
    modified: str


def list_directory(path: Path) -> tuple[DirectoryEntry, ...]:
    """Snapshot the children of *path*: directories first, then by name.

    ``PermissionError`` from reading the directory propagates; entries that
    vanish or cannot be stat'ed while scanning are skipped.
    """
    entries: list[DirectoryEntry] = []
    with os.scandir(path) as it:
        for item in it:
            try:
                info = item.stat()
                is_dir = item.is_dir()
            except OSError:
                continue
            entries.append(
                DirectoryEntry(
                    name=item.name,
                    is_dir=is_dir,
                    size=0 if is_dir else info.st_size,
                    modified=info.st_mtime,
                )
            )
    entries.sort(key=lambda e: (not e.is_dir, e.name.lower(), e.name))
    return tuple(entries)


def _display_name(name: str) -> str:
    """*name* as printable text; undecodable bytes become U+FFFD."""
    return os.fsencode(name).decode("utf-8", "replace")


def format_size(size: int) -> str:
    """Human-readable byte count: ``512 B``, ``1.5 KB``, ``3.0 MB``."""
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


@functools.cache
def _listing_template():
    return Environment(autoescape=True).from_string(_LISTING_TEMPLATE)


def render_directory_listing(
    entries: Sequence[DirectoryEntry],
    title: str,
    request_url: str,
    *,
    parent_url: str | None = None,
) -> str:
    """Render *entries* as an HTML listing page.

    Links are absolute, built from the path part of *request_url*, so the
    page works whether or not the request ended in a slash. Names that are
    not valid UTF-8 keep their raw bytes in the link and are shown with
    replacement characters.
    """
    base = request_url.split("?", 1)[0].rstrip("/") + "/"
    rows = [
        _Row(
            href=quote(os.fsencode(base + entry.name)) + ("/" if entry.is_dir else ""),
            label=_display_name(entry.name) + ("/" if entry.is_dir else ""),
            size="" if entry.is_dir else format_size(entry.size),
            modified=datetime.fromtimestamp(entry.modified, UTC).strftime("%Y-%m-%d %H:%M"),
        )
        for entry in entries
    ]
    context = {
        "title": _display_name(title),
        "entries": rows,
        "parent_url": quote(os.fsencode(parent_url)) if parent_url else None,
    }
    return _listing_template().render(context)
