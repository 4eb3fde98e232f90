"""``perch run`` — serve an App found by import string."""

import argparse
import sys

from perch.cli._resolve import resolve_app
from perch.errors import ConfigurationError


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and start the development server."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    app._ensure_frozen()

    from perch.server.dev import run_dev_server

    run_dev_server(
        app,
        args.host or app.config.host,
        args.port or app.config.port,
        reload=app.config.debug,
        reload_include=app.config.reload_include,
        reload_dirs=app.config.reload_dirs,
        app_path=args.app,
        log_level=args.log_level,
    )
