"""``perch serve`` — serve one directory tree.

Builds an App with a single static mount from command-line options and
runs it. A bad root is reported on stderr with exit status 1.
"""

import argparse
import sys

from perch.app import App
from perch.config import AppConfig
from perch.errors import ConfigurationError


def build_app(args: argparse.Namespace) -> App:
    """Create the App described by ``perch serve`` arguments."""
    app = App(AppConfig(log_level=args.log_level))
    app.static(
        args.mount,
        args.root,
        default_documents=args.default_documents,
        directory_browsing=args.browse,
    )
    return app


def serve_directory(args: argparse.Namespace) -> None:
    """Start serving ``args.root``."""
    try:
        app = build_app(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    app.run(args.host, args.port)
