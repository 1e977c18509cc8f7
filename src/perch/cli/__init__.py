"""Perch CLI: serve an app or list its routes.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys

DEFAULT_APP = "perch.worker:app"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch: a small ASGI edge dispatcher.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch run --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Serve an app with pounce")
    run_parser.add_argument(
        "app",
        nargs="?",
        default=DEFAULT_APP,
        help=f"Import string (default: {DEFAULT_APP})",
    )
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker count (0=auto-detect)",
    )

    # -- perch routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument(
        "app",
        nargs="?",
        default=DEFAULT_APP,
        help=f"Import string (default: {DEFAULT_APP})",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        from perch.cli._run import run_app

        run_app(args)
    elif args.command == "routes":
        from perch.cli._routes import run_routes

        run_routes(args)
