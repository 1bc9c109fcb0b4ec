"""Command line entry point for routetable.

Entry point registered as ``routetable`` in ``pyproject.toml``::

    routetable compile routes.yaml -o table.json
    routetable resolve GET /v2/products/456 --routes routes.yaml
    routetable serve --config config/routetable.yaml
"""

import argparse
import asyncio
import json
import logging
import sys

from routetable.core.builder import (
    RouteTableBuilder,
    build_from_files,
    load_compiled_table,
    save_compiled_table,
)
from routetable.core.config import load_config
from routetable.core.errors import RouteTableError
from routetable.core.handler import inspect_controller
from routetable.core.logging import initialize_logging
from routetable.core.metrics import RouterMetrics
from routetable.core.routing import Router, create_router
from routetable.core.server import HTTPServer

logger = logging.getLogger("routetable.cli")


def _compile(args: argparse.Namespace) -> int:
    builder = RouteTableBuilder(namespace_separator=args.separator)
    table = build_from_files(args.routes, builder)

    if args.output:
        save_compiled_table(table, args.output)
        counts = table.count()
        print(
            f"Compiled {counts['static']} static and {counts['dynamic']} dynamic routes "
            f"into {args.output}"
        )
    else:
        print(json.dumps(table.to_dict(), indent=2))
    return 0


def _resolve(args: argparse.Namespace) -> int:
    if args.table:
        router = Router().set_table(load_compiled_table(args.table))
    else:
        router = Router(builder=RouteTableBuilder(namespace_separator=args.separator))
        router.set_table(build_from_files(args.routes, router.builder))

    route = f"{args.method} {args.path}"
    if args.mime:
        route += f" {args.mime}"

    leaf = router.get_controller(route, args.default)
    print(json.dumps(leaf, indent=2, default=str))
    return 0 if leaf.get("controller") is not None else 1


async def _serve(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    structured_logger = initialize_logging(config.logging)
    metrics = RouterMetrics(config.metrics) if config.metrics.enabled else None

    router = create_router(config.routing, metrics)
    server = HTTPServer(
        config,
        router,
        fallback=inspect_controller,
        structured_logger=structured_logger,
        metrics=metrics,
    )

    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``routetable`` command."""
    parser = argparse.ArgumentParser(
        prog="routetable",
        description="Compile route tables and resolve requests to controllers.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- routetable compile -----------------------------------------------
    compile_parser = subparsers.add_parser("compile", help="Compile route files into a table")
    compile_parser.add_argument("routes", nargs="+", help="Route files (YAML or JSON)")
    compile_parser.add_argument("-o", "--output", help="Write the compiled table to this file")
    compile_parser.add_argument(
        "--separator", default=".", help="Namespace separator for derived controllers"
    )

    # -- routetable resolve -----------------------------------------------
    resolve_parser = subparsers.add_parser("resolve", help="Resolve a request to a controller")
    resolve_parser.add_argument("method", help="HTTP method")
    resolve_parser.add_argument("path", help="Request path")
    resolve_parser.add_argument("--mime", default=None, help="Request content type")
    resolve_parser.add_argument("--default", default=None, help="Default controller")
    resolve_parser.add_argument(
        "--separator", default=".", help="Namespace separator for derived controllers"
    )
    source = resolve_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--table", help="Compiled table file")
    source.add_argument("--routes", nargs="+", help="Route files (YAML or JSON)")

    # -- routetable serve -------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Serve the routing table over HTTP")
    serve_parser.add_argument("--config", default=None, help="Configuration file")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "compile":
            sys.exit(_compile(args))
        elif args.command == "resolve":
            sys.exit(_resolve(args))
        elif args.command == "serve":
            asyncio.run(_serve(args))
    except RouteTableError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
