"""Request handler for routetable.

This module dispatches requests, already resolved by the routing middleware,
to the handler registered for their controller.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from aiohttp import web

from routetable.core.config import AppConfig
from routetable.core.logging import RouterLogger
from routetable.core.request import RoutedRequest
from routetable.middleware.routing import CONTROLLER_KEY, ROUTED_REQUEST_KEY

logger = logging.getLogger(__name__)

ControllerHandler = Callable[[web.Request, RoutedRequest], Awaitable[web.StreamResponse]]


class RequestHandler:
    """Main request handler.

    Coordinates:
    - Correlation IDs
    - Controller dispatch
    - Error responses (404, 501, 500)
    """

    def __init__(
        self,
        config: AppConfig,
        controllers: dict[str, ControllerHandler] | None = None,
        fallback: ControllerHandler | None = None,
        structured_logger: RouterLogger | None = None,
    ):
        """Initialize the request handler.

        Args:
            config: Application configuration
            controllers: Controller name -> async handler
            fallback: Handler for resolved controllers without a registered handler
            structured_logger: Optional structured logger for response logs
        """
        self.config = config
        self.controllers = dict(controllers or {})
        self.fallback = fallback
        self.structured_logger = structured_logger

    def register(self, controller: str, handler: ControllerHandler) -> None:
        """Register the handler for a controller name."""
        self.controllers[controller] = handler

    async def handle_request(self, request: web.Request) -> web.StreamResponse:
        """Handle a request resolved by the routing middleware.

        Args:
            request: aiohttp Request object

        Returns:
            web.StreamResponse object
        """
        start = time.perf_counter()
        header = self.config.logging.correlation_id_header
        correlation_id = request.headers.get(header) or RouterLogger.generate_correlation_id()

        controller: str | None = request.get(CONTROLLER_KEY)
        routed: RoutedRequest | None = request.get(ROUTED_REQUEST_KEY)

        if self.structured_logger is not None:
            self.structured_logger.set_correlation_id(correlation_id)
            self.structured_logger.log_resolution(
                request.method,
                request.path,
                controller,
                parameters=routed.params if routed is not None else None,
                matched=controller is not None,
            )

        try:
            try:
                response = await self._dispatch(request, controller, routed, correlation_id)
            except web.HTTPException as e:
                e.headers[header] = correlation_id
                raise

            if header not in response.headers:
                response.headers[header] = correlation_id

            if self.structured_logger is not None:
                self.structured_logger.log_response(
                    request.method,
                    request.path,
                    response.status,
                    (time.perf_counter() - start) * 1000,
                    controller=controller,
                )
            return response
        finally:
            if self.structured_logger is not None:
                self.structured_logger.clear_correlation_id()

    async def _dispatch(
        self,
        request: web.Request,
        controller: str | None,
        routed: RoutedRequest | None,
        correlation_id: str,
    ) -> web.StreamResponse:
        if controller is None or routed is None:
            return self._error(
                404, "not_found", "The requested resource was not found", correlation_id
            )

        handler = self.controllers.get(controller, self.fallback)
        if handler is None:
            return self._error(
                501,
                "not_implemented",
                f"No handler registered for controller {controller}",
                correlation_id,
            )

        try:
            return await handler(request, routed)
        except web.HTTPException:
            raise
        except Exception as e:
            logger.exception(
                f"Unexpected error in controller {controller}: {e}",
                extra={"controller": controller},
            )
            return self._error(
                500, "internal_error", "An unexpected error occurred", correlation_id
            )

    @staticmethod
    def _error(status: int, error: str, message: str, correlation_id: str) -> web.Response:
        return web.json_response(
            {
                "error": error,
                "message": message,
                "correlation_id": correlation_id,
                "timestamp": datetime.now(UTC).isoformat(),
            },
            status=status,
        )


async def inspect_controller(request: web.Request, routed: RoutedRequest) -> web.Response:
    """Fallback handler echoing the resolution as JSON."""
    return web.json_response(
        {
            "controller": request.get(CONTROLLER_KEY),
            "method": routed.method,
            "path": routed.path,
            "parameters": routed.params,
            "filters": routed.filters,
        }
    )
