"""Perch application class.

Mutable during setup (route registration, static mounts, error handlers).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import inspect
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import ErrorHandler, Handler
from perch.config import AppConfig
from perch.errors import ConfigurationError, RouteExistsError
from perch.routing.route import PathSegment, Route
from perch.routing.router import Router, parse_path
from perch.server.handler import handle_request
from perch.static.config import StaticRouteConfig
from perch.static.site import StaticSite

logger = logging.getLogger("perch.app")


@dataclass(frozen=True, slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Handler
    methods: frozenset[str]
    name: str | None
    shape: tuple[str, ...]
    converters: dict[tuple[str, ...], str]


def _shape_key(seg: PathSegment) -> str:
    if not seg.is_param:
        return seg.value
    return "{:path}" if seg.param_type == "path" else "{}"


def _route_shape(path: str) -> tuple[str, ...]:
    """Key identifying which trie node *path* lands on.

    Parameter names and converters are ignored: ``/users/{id:int}`` and
    ``/users/{name}`` share one parameter edge, so they compete for the
    same methods.
    """
    return tuple(_shape_key(seg) for seg in parse_path(path))


def _route_converters(path: str) -> dict[tuple[str, ...], str]:
    """Converter of each parameter edge, keyed by the shape leading to it."""
    segments = parse_path(path)
    return {
        tuple(_shape_key(s) for s in segments[:index]): seg.param_type
        for index, seg in enumerate(segments)
        if seg.is_param and seg.param_type != "path"
    }


def _check_converters(route: _PendingRoute, existing: _PendingRoute) -> None:
    for prefix, converter in route.converters.items():
        other = existing.converters.get(prefix)
        if other is not None and other != converter:
            msg = (
                f"Route {route.path!r} uses a {converter!r} parameter where "
                f"{existing.path!r} uses {other!r}. Parameters at the same "
                f"position must share a converter."
            )
            raise ConfigurationError(msg)


class App:
    """The perch application.

    Mutable during setup (routes, static mounts, error handlers, hooks).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app, even when several ASGI workers call
        ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_pending_routes",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._router: Router | None = None

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
        overwrite: bool = False,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters and
                ``{name:path}`` for a catch-all tail.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
            overwrite: Replace an existing handler for the same path and
                method instead of raising ``RouteExistsError``.
        """

        def decorator(func: Handler) -> Handler:
            self.add_route(path, func, methods=methods, name=name, overwrite=overwrite)
            return func

        return decorator

    def add_route(
        self,
        path: str,
        handler: Handler,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
        overwrite: bool = False,
    ) -> None:
        """Register *handler* for *path*. See ``route()`` for the arguments."""
        method_set = frozenset(m.upper() for m in (methods or ["GET"]))
        self._register((path,), handler, method_set, name, overwrite=overwrite)

    def static(
        self,
        mount_prefix: str,
        root_path: str | Path,
        *,
        default_documents: Iterable[str] = (),
        directory_browsing: bool = False,
        overwrite: bool = False,
        name: str | None = None,
    ) -> StaticSite:
        """Serve the directory tree at *root_path* under *mount_prefix*.

        Registers one GET handler covering the mount and every path below
        it. Validation happens now: a missing or non-directory root raises
        ``ConfigurationError`` and nothing is registered.

        Usage::

            app.static("/public", "./site", default_documents=["index.html"])
            app.static("/files", "./shared", directory_browsing=True)

        Args:
            mount_prefix: URL prefix the site is served under (``"/"`` for root).
            root_path: Directory to serve. No request resolves outside it.
            default_documents: File names tried in order for directory requests.
            directory_browsing: List directories that have no default document.
            overwrite: Replace an existing GET handler on the same mount.
            name: Optional route name.

        Returns:
            The ``StaticSite`` handler bound to the route.
        """
        config = StaticRouteConfig.create(
            root_path,
            mount_prefix,
            default_documents=default_documents,
            directory_browsing=directory_browsing,
        )
        site = StaticSite(config)
        self._register(config.route_patterns, site, frozenset({"GET"}), name, overwrite=overwrite)
        logger.info(
            "Serving %s at %s (default documents: %s, browsing: %s)",
            config.root_path,
            config.mount_url or "/",
            ", ".join(config.default_documents) or "none",
            "on" if config.directory_browsing else "off",
        )
        return site

    def _register(
        self,
        paths: Iterable[str],
        handler: Handler,
        methods: frozenset[str],
        name: str | None,
        *,
        overwrite: bool,
    ) -> None:
        """Add routes for every path, all or nothing.

        Conflicts are detected here, not at freeze time: an overlapping
        path+method raises ``RouteExistsError`` unless *overwrite*, and a
        parameter whose converter disagrees with an earlier route at the
        same position raises ``ConfigurationError``.
        """
        self._check_not_frozen()
        new = [
            _PendingRoute(p, handler, methods, name, _route_shape(p), _route_converters(p))
            for p in paths
        ]

        kept = self._pending_routes
        for route in new:
            remaining: list[_PendingRoute] = []
            for existing in kept:
                taken = existing.methods & methods
                if existing.shape == route.shape and taken:
                    if not overwrite:
                        raise RouteExistsError(route.path, taken)
                    if existing.methods == taken:
                        continue
                    existing = replace(existing, methods=existing.methods - taken)
                remaining.append(existing)
            kept = remaining

        for index, route in enumerate(new):
            for existing in (*kept, *new[:index]):
                _check_converters(route, existing)

        self._pending_routes = [*kept, *new]

    @property
    def routes(self) -> list[Route]:
        """Registered routes, in registration order."""
        return [Route(p.path, p.handler, p.methods, p.name) for p in self._pending_routes]

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with pounce."""
        self._ensure_frozen()

        from perch.server.dev import run_dev_server

        run_dev_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
            reload_include=self.config.reload_include,
            reload_dirs=self.config.reload_dirs,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
            file_chunk_size=self.config.file_chunk_size,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, before the first HTTP request, then
        runs the startup/shutdown hooks.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self._run_hooks(self._startup_hooks)
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self._run_hooks(self._shutdown_hooks)
                await send({"type": "lifespan.shutdown.complete"})
                return

    @staticmethod
    async def _run_hooks(hooks: list[Callable[..., Any]]) -> None:
        for hook in hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the route table. MUST only be called while holding _freeze_lock."""
        router = Router()
        for route in self.routes:
            router.add(route)
        router.compile()
        self._router = router
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes and static mounts before calling app.run()."
            )
            raise RuntimeError(msg)
