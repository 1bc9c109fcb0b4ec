"""Route resolution against a live request."""

import logging
import time

from routetable.core.matcher import Matcher
from routetable.core.metrics import RouterMetrics
from routetable.core.paths import normalize_path
from routetable.core.request import RoutedRequest
from routetable.core.table import Leaf, RoutingTable

logger = logging.getLogger(__name__)


class Resolver:
    """Resolves a request to a controller name.

    On a match the leaf's filters are registered with the request and every
    captured path parameter is injected into the request's parameter store.
    The routing table is never modified.
    """

    def __init__(
        self,
        matcher: Matcher | None = None,
        mime_header: str = "content-type",
        metrics: RouterMetrics | None = None,
    ):
        self.matcher = matcher or Matcher()
        self.mime_header = mime_header
        self.metrics = metrics

    def find(self, request: RoutedRequest, table: RoutingTable) -> Leaf | None:
        """Find the leaf for a request without touching the request."""
        path = normalize_path(request.path)
        mime = request.header(self.mime_header)
        return self.matcher.match(table, request.method, mime, path)

    def resolve(
        self,
        request: RoutedRequest,
        table: RoutingTable,
        default_controller: str | None = None,
    ) -> str | None:
        """Resolve a request to its controller.

        Args:
            request: Request to route, receives filters and parameters
            table: Compiled routing table
            default_controller: Returned unchanged when no route matches

        Returns:
            Controller name of the matching route, or ``default_controller``
        """
        start = time.perf_counter()
        leaf = self.find(request, table)

        if leaf is None:
            outcome = "default"
            controller = default_controller
            logger.debug(
                f"No route matched for {request.method} {request.path}",
                extra={"method": request.method, "path": request.path},
            )
        else:
            outcome = "static" if leaf.parameters is None else "dynamic"
            controller = leaf.controller
            if leaf.filters:
                request.add_filters(leaf.filters)
            for name, value in (leaf.parameters or {}).items():
                request[name] = value

        if self.metrics is not None:
            self.metrics.record_resolution(outcome, time.perf_counter() - start)

        return controller
