"""The static site route handler.

One ``StaticSite`` is bound to one GET route pattern at registration time
and captures its ``StaticRouteConfig``. Per request it runs the resolver,
then the serving policy, and turns the outcome into exactly one response.

Not-found and permission failures become 404/401 pages here. Every other
exception propagates to the application's error handling.
"""

import html
import logging
import posixpath
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from perch.http.request import Request
from perch.http.response import FileResponse, Response
from perch.static.config import StaticRouteConfig
from perch.static.listing import DirectoryEntry, render_directory_listing
from perch.static.mime import resolve_content_type
from perch.static.policy import Listing, Stream, decide
from perch.static.resolver import Failure, FailureKind, resolve

logger = logging.getLogger("perch.static")


class ListingRenderer(Protocol):
    def __call__(
        self,
        entries: Sequence[DirectoryEntry],
        title: str,
        request_url: str,
        *,
        parent_url: str | None = None,
    ) -> str: ...


def not_found_page(path: str) -> Response:
    """Minimal 404 page naming the unresolved request path."""
    return Response(body=f"404 - Page not found {html.escape(path)}", status=404)


def unauthorized_page() -> Response:
    """Minimal 401 page."""
    return Response(body="401 - Unauthorized", status=401)


class StaticSite:
    """Route handler serving ``config.root_path`` under ``config.mount_prefix``.

    Usage::

        config = StaticRouteConfig.create("./public", "/docs", default_documents=["index.html"])
        app.add_route("/docs/{path:path}", StaticSite(config))

    ``App.static()`` does both steps and registers the mount itself too.
    The content-type lookup and listing renderer can be swapped out.
    """

    __slots__ = ("_content_types", "_render_listing", "config")

    def __init__(
        self,
        config: StaticRouteConfig,
        *,
        content_types: Callable[[Path], str] = resolve_content_type,
        render_listing: ListingRenderer = render_directory_listing,
    ) -> None:
        self.config = config
        self._content_types = content_types
        self._render_listing = render_listing

    def __call__(self, request: Request) -> Response | FileResponse:
        """Serve one GET request."""
        target = resolve(self.config, request.path)
        if isinstance(target, Failure):
            return self._failure(target, request)

        outcome = decide(self.config, target, content_types=self._content_types)
        match outcome:
            case Stream(path=path, content_type=content_type):
                return FileResponse(path=path, content_type=content_type)
            case Listing():
                body = self._render_listing(
                    outcome.entries,
                    outcome.title,
                    request.url,
                    parent_url=self._parent_url(outcome.directory.relative),
                )
                return Response(body=body, content_type="text/html; charset=utf-8")
            case Failure():
                return self._failure(outcome, request)

    def _failure(self, failure: Failure, request: Request) -> Response:
        logger.debug("%s %s -> %s", request.method, request.path, failure.kind.value)
        if failure.kind is FailureKind.UNAUTHORIZED:
            return unauthorized_page()
        return not_found_page(request.path)

    def _parent_url(self, relative: str) -> str | None:
        """URL of the directory above *relative*, or None at the mount root."""
        relative = relative.strip("/")
        if not relative:
            return None
        parent = posixpath.dirname(relative)
        base = self.config.mount_url
        return f"{base}/{parent}/" if parent else f"{base}/"

    def __repr__(self) -> str:
        return (
            f"StaticSite(root={str(self.config.root_path)!r}, "
            f"mount={self.config.mount_url or '/'!r})"
        )
