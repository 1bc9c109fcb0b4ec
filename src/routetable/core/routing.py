"""Router for routetable.

This module ties the engine together:
- Compiling route declarations and route files into one table
- Exporting and importing the compiled table
- Resolving ``METHOD PATH [MIME]`` strings and live requests to controllers
"""

import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from routetable.core.builder import (
    RouteTableBuilder,
    load_compiled_table,
    load_route_file,
)
from routetable.core.config import RoutingConfig
from routetable.core.errors import MEMORY_SOURCE, MalformedTableError
from routetable.core.matcher import Matcher
from routetable.core.metrics import RouterMetrics
from routetable.core.request import RoutedRequest
from routetable.core.resolver import Resolver
from routetable.core.table import Leaf, RoutingTable

logger = logging.getLogger(__name__)


class Router:
    """Owns a routing table and resolves requests against it.

    Route sources are merged in the order they are given, later declarations
    overwriting earlier ones for the same key. Merges and imports are
    serialized and publish a new table in one assignment; a published table is
    never changed, so resolution reads it without locking.
    """

    def __init__(
        self,
        routes: Any = None,
        route_files: Iterable[str | Path] | None = None,
        builder: RouteTableBuilder | None = None,
        matcher: Matcher | None = None,
        mime_header: str = "content-type",
        metrics: RouterMetrics | None = None,
    ):
        """Initialize the router.

        Args:
            routes: Inline route declarations, merged after the files
            route_files: Route files (YAML or JSON) merged in order
            builder: Table builder (a default one if None)
            matcher: Matcher (a default one if None)
            mime_header: Header carrying the request content type
            metrics: Optional metrics collector

        Raises:
            MalformedTableError: If a route source is malformed
        """
        self.builder = builder or RouteTableBuilder()
        self.matcher = matcher or Matcher()
        self.metrics = metrics
        self.resolver = Resolver(self.matcher, mime_header=mime_header, metrics=metrics)
        self._table = RoutingTable()
        self._lock = threading.Lock()

        for path in route_files or []:
            self.load_file(path)
        if routes is not None:
            self.parse_routes(routes)

    @property
    def table(self) -> RoutingTable:
        return self._table

    def parse_routes(self, routes: Any, source: str = MEMORY_SOURCE) -> "Router":
        """Compile route declarations and merge them into the table.

        Args:
            routes: Route declarations in any accepted shape
            source: Source identifier used in errors and logs

        Returns:
            This router

        Raises:
            MalformedTableError: If the source is malformed; the table is unchanged
        """
        with self._lock:
            # Readers keep the published table until the swap below
            merged = self._table.copy()
            try:
                self.builder.merge(merged, routes, source)
            except MalformedTableError:
                self._record_build(success=False)
                raise
            self._table = merged
            self._record_build(success=True)
        return self

    def load_file(self, path: str | Path) -> "Router":
        """Load a route file and merge it into the table."""
        try:
            routes = load_route_file(path)
        except MalformedTableError:
            self._record_build(success=False)
            raise
        return self.parse_routes(routes, str(path))

    def get_parsed_routes(self) -> dict[str, Any]:
        """Export the compiled table as a plain nested mapping."""
        return self._table.to_dict()

    def set_parsed_routes(self, parsed_routes: Any) -> "Router":
        """Install a compiled table exported by ``get_parsed_routes()``.

        Raises:
            MalformedTableError: If the value is not a mapping
        """
        table = RoutingTable.from_dict(parsed_routes)
        with self._lock:
            self._table = table
            self._record_build(success=True)
        return self

    def set_table(self, table: RoutingTable) -> "Router":
        """Install an already compiled table."""
        with self._lock:
            self._table = table
            self._record_build(success=True)
        return self

    def match(self, method: str, path: str, mime: str | None = None) -> Leaf | None:
        """Find the leaf for a method, path and optional content type."""
        return self.matcher.match(self._table, method, mime, path)

    def get_controller(self, route: str, default_controller: str | None = None) -> dict[str, Any]:
        """Get the leaf for a ``METHOD PATH [MIME]`` string.

        Args:
            route: Route string, e.g. ``"POST /api/login application/json"``
            default_controller: Controller reported when no route matches

        Returns:
            Leaf mapping with ``controller`` and, when present, ``filters`` and
            ``parameters``; ``{"controller": default_controller}`` if not found
        """
        tokens = route.split()
        method = tokens[0] if tokens else ""
        path = tokens[1] if len(tokens) > 1 else ""
        mime = tokens[2] if len(tokens) > 2 else None

        leaf = self.match(method, path, mime) if method else None
        if leaf is None:
            return {"controller": default_controller}
        return leaf.to_dict()

    def resolve(self, request: RoutedRequest, default_controller: str | None = None) -> str | None:
        """Resolve a request to a controller, updating its filters and parameters."""
        return self.resolver.resolve(request, self._table, default_controller)

    def _record_build(self, success: bool) -> None:
        counts = self._table.count()
        logger.info(
            f"Routing table {'updated' if success else 'build failed'}",
            extra={"success": success, **counts},
        )
        if self.metrics is not None:
            self.metrics.record_build(success, counts)


def create_router(config: RoutingConfig, metrics: RouterMetrics | None = None) -> Router:
    """Create a router from configuration.

    A configured compiled table is imported as-is; otherwise route files and
    inline routes are compiled in that order.

    Args:
        config: Routing configuration
        metrics: Optional metrics collector

    Returns:
        Configured Router instance
    """
    builder = RouteTableBuilder(namespace_separator=config.namespace_separator)
    router = Router(builder=builder, mime_header=config.mime_header, metrics=metrics)

    if config.compiled_table:
        router.set_table(load_compiled_table(config.compiled_table))
        logger.info(
            f"Imported compiled table {config.compiled_table}",
            extra={"compiled_table": config.compiled_table},
        )
        return router

    for path in config.route_files:
        router.load_file(path)
    if config.routes:
        router.parse_routes(config.routes)

    return router
