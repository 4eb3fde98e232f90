"""Content-type lookup by file extension."""

import mimetypes
from pathlib import Path

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Web types some platform mime databases get wrong or lack
mimetypes.add_type("text/html", ".html")
mimetypes.add_type("text/html", ".htm")
mimetypes.add_type("text/css", ".css")
mimetypes.add_type("text/javascript", ".js")
mimetypes.add_type("text/javascript", ".mjs")
mimetypes.add_type("application/json", ".json")
mimetypes.add_type("image/svg+xml", ".svg")
mimetypes.add_type("image/webp", ".webp")
mimetypes.add_type("application/wasm", ".wasm")
mimetypes.add_type("font/woff2", ".woff2")


def resolve_content_type(path: Path) -> str:
    """Guess the content type of *path*, falling back to generic binary."""
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or DEFAULT_CONTENT_TYPE
