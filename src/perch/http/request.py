"""Immutable HTTP request.

Frozen metadata built once from the ASGI scope. Static handlers never
read a body, so the request carries only what routing and serving need.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from perch._internal.asgi import Receive
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the percent-decoded path from the ASGI scope.
    ``path_params`` is filled in by the router after matching.
    """

    method: str
    path: str
    headers: Headers
    query_string: bytes
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # Private: ASGI receive callable, kept for handlers that stream bodies
    _receive: Receive

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying the router's captured parameters."""
        return replace(self, path_params=path_params)

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query_string=scope.get("query_string", b""),
            path_params={},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
