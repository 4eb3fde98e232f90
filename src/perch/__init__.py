"""Perch — a small ASGI routing layer with static site serving.

Basic usage::

    from perch import App

    app = App()

    @app.route("/health")
    def health():
        return {"status": "ok"}

    app.static("/", "./public", default_documents=["index.html"])

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "FileResponse",
    "HTTPError",
    "MethodNotAllowed",
    "NotFound",
    "PerchError",
    "Redirect",
    "Request",
    "Response",
    "RouteExistsError",
    "StaticRouteConfig",
    "StaticSite",
    "Unauthorized",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import perch`` fast while providing a flat top-level namespace.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "Redirect", "FileResponse"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("StaticRouteConfig", "StaticSite"):
        from perch import static as _static

        return getattr(_static, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "PerchError",
        "RouteExistsError",
        "Unauthorized",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
