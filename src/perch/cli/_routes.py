"""``perch routes``: list registered routes in match order."""

import argparse
import sys

from perch.cli._resolve import resolve_app


def run_routes(args: argparse.Namespace) -> None:
    """Print METHOD, PATH and HANDLER for each route, in registration order."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = app.routes
    if not routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str]] = []
    for route in routes:
        handler_name = getattr(route.handler, "__name__", str(route.handler))
        if route.name:
            handler_name = f"{handler_name} ({route.name})"
        rows.append((route.method, route.path, handler_name))

    width_method = max(6, *(len(r[0]) for r in rows))
    width_path = max(4, *(len(r[1]) for r in rows))

    fmt = f"{{:<{width_method}}}  {{:<{width_path}}}  {{}}"
    print(fmt.format("METHOD", "PATH", "HANDLER"))
    print("-" * min(width_method + width_path + 4 + max(len(r[2]) for r in rows), 80))
    for row in rows:
        print(fmt.format(*row))
