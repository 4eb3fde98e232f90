"""Perch exception hierarchy.

Shared across Router, App, handler, and the static site so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app or route configuration is invalid.

    Raised eagerly at registration time, before any route is live.
    """


class RouteExistsError(ConfigurationError):
    """A handler is already registered for this path and method.

    Pass ``overwrite=True`` at registration to replace it instead.
    """

    def __init__(self, path: str, methods: frozenset[str]) -> None:
        self.path = path
        self.methods = methods
        method_list = ", ".join(sorted(methods))
        super().__init__(
            f"A route for {method_list} {path!r} is already registered. "
            "Use overwrite=True to replace it."
        )


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router or by handlers. The ASGI handler catches these
    and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — nothing matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818
    """401 — the request was refused for lack of permission."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status=401, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
