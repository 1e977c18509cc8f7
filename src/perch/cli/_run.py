"""``perch run``: serve an app with pounce."""

import argparse
import sys
from dataclasses import replace

from perch.cli._resolve import resolve_app


def run_app(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it; CLI flags override app config."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if args.workers is not None:
        app.config = replace(app.config, workers=args.workers)
    app.run(host=args.host, port=args.port)
