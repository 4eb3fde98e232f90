"""Perch CLI — serve a directory or run an app.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import logging
import sys


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — a small ASGI routing layer with static site serving.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch serve -------------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Serve a directory tree over HTTP")
    serve_parser.add_argument("root", help="Directory to serve")
    serve_parser.add_argument(
        "--mount",
        default="/",
        help="URL prefix to serve the directory under (default: /)",
    )
    serve_parser.add_argument(
        "--default",
        dest="default_documents",
        action="append",
        default=[],
        metavar="NAME",
        help="Default document for directory requests; repeat to set precedence",
    )
    serve_parser.add_argument(
        "--browse",
        action="store_true",
        help="List directories that have no default document",
    )

    # -- perch run ---------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Run an app from an import string")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    for sub in (serve_parser, run_parser):
        sub.add_argument("--host", default=None, help="Bind host address")
        sub.add_argument("--port", type=int, default=None, help="Bind port number")
        sub.add_argument(
            "--log-level",
            default="info",
            choices=["debug", "info", "warning", "error"],
            help="Logging level (default: info)",
        )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.log_level)

    if args.command == "serve":
        from perch.cli._serve import serve_directory

        serve_directory(args)
    elif args.command == "run":
        from perch.cli._run import run_server

        run_server(args)
