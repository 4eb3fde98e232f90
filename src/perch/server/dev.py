"""Development server.

Starts a pounce ASGI server with the live perch App object, single
worker, optional auto-reload.
"""


def run_dev_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = False,
    reload_include: tuple[str, ...] = (),
    reload_dirs: tuple[str, ...] = (),
    app_path: str | None = None,
    log_level: str = "info",
) -> None:
    """Start a pounce server for the given perch App.

    Pounce's ``run()`` takes an import string, but perch has a live ``App``
    object, so ``pounce.Server`` is used directly with the ASGI callable.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Enable auto-reload on file changes.
        reload_include: Extra file extensions to watch when reloading.
        reload_dirs: Extra directories to watch alongside cwd.
        app_path: Optional ``"module:attribute"`` import string. When
            provided, pounce reimports the app on each reload cycle.
        log_level: Server log level (debug, info, warning, error).
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_include=reload_include,
        reload_dirs=reload_dirs,
        log_level=log_level,
    )
    Server(config, app, app_path=app_path).run()
