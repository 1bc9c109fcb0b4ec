"""aiohttp middleware resolving each request against the routing table.

The resolved controller and the ``RoutedRequest`` (carrying captured path
parameters and their filters) are stored on the aiohttp request for handlers.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable

from aiohttp import web

from routetable.core.request import RoutedRequest
from routetable.core.routing import Router

logger = logging.getLogger(__name__)

CONTROLLER_KEY = "routetable.controller"
ROUTED_REQUEST_KEY = "routetable.routed_request"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def create_routing_middleware(
    router: Router,
    default_controller: str | None = None,
    skip_paths: Iterable[str] = (),
) -> Callable[[web.Request, Handler], Awaitable[web.StreamResponse]]:
    """Create an aiohttp middleware that resolves requests with a router.

    Args:
        router: Router holding the compiled table
        default_controller: Controller stored when no route matches
        skip_paths: Paths served by the application itself, left unresolved

    Returns:
        aiohttp middleware function
    """
    skipped = frozenset(skip_paths)

    @web.middleware
    async def routing_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if request.path in skipped:
            return await handler(request)

        routed = RoutedRequest.from_aiohttp(request)
        controller = router.resolve(routed, default_controller)

        request[ROUTED_REQUEST_KEY] = routed
        request[CONTROLLER_KEY] = controller

        logger.debug(
            f"Resolved {routed.method} {routed.path} -> {controller}",
            extra={"controller": controller, "params": routed.params},
        )
        return await handler(request)

    return routing_middleware
