"""ASGI response sending — translates perch responses to ASGI messages.

Handles single-body responses and file bodies streamed in chunks.
"""

import logging
import os

import anyio

from perch._internal.asgi import Send
from perch.errors import NotFound, Unauthorized
from perch.http.response import FileResponse, Response

logger = logging.getLogger("perch.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _raw_headers(
    content_type: str, headers: tuple[tuple[str, str], ...]
) -> list[tuple[bytes, bytes]]:
    raw = [(b"content-type", content_type.encode("latin-1"))]
    raw.extend((name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers)
    return raw


async def send_response(response: Response, send: Send) -> None:
    """Translate a Response into ASGI send() calls."""
    raw_headers = _raw_headers(response.content_type, response.headers)
    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": body})


async def send_file_response(response: FileResponse, send: Send, *, chunk_size: int) -> None:
    """Stream a file body in chunks of ``chunk_size`` bytes.

    The file handle is scoped to this call: it is closed when the transfer
    completes, when ``send`` raises, and when the task is cancelled
    because the client went away.

    A file that has vanished or become unreadable since the response was
    built raises ``NotFound`` or ``Unauthorized`` before anything is sent,
    so the caller can still answer with an error response.
    """
    size = response.chunk_size or chunk_size
    try:
        opened = await anyio.open_file(response.path, "rb")
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFound(f"Page not found {response.path.name}") from exc
    except PermissionError as exc:
        raise Unauthorized() from exc

    async with opened as file:
        length = os.fstat(file.wrapped.fileno()).st_size
        raw_headers = _raw_headers(response.content_type, response.headers)
        if not _body_allowed(response.status):
            length = 0
        raw_headers.append((b"content-length", str(length).encode("latin-1")))

        await send(
            {
                "type": "http.response.start",
                "status": response.status,
                "headers": raw_headers,
            }
        )

        remaining = length
        while remaining > 0:
            chunk = await file.read(min(size, remaining))
            if not chunk:
                # File shrank after we measured it; end the body early.
                logger.debug("%s shrank during transfer", response.path)
                break
            remaining -= len(chunk)
            await send({"type": "http.response.body", "body": chunk, "more_body": True})

    await send({"type": "http.response.body", "body": b"", "more_body": False})
