"""HTTP Server module for routetable.

This module serves a routing table over HTTP:
- aiohttp application with the routing middleware
- Catch-all route dispatching resolved controllers to handlers
- Prometheus metrics endpoint
"""

import logging

from aiohttp import web

from routetable.core.config import AppConfig
from routetable.core.errors import MEMORY_SOURCE
from routetable.core.handler import ControllerHandler, RequestHandler
from routetable.core.logging import RouterLogger
from routetable.core.metrics import RouterMetrics
from routetable.core.routing import Router
from routetable.middleware.routing import create_routing_middleware

logger = logging.getLogger(__name__)


class HTTPServer:
    """HTTP Server dispatching requests through a Router."""

    def __init__(
        self,
        config: AppConfig,
        router: Router,
        controllers: dict[str, ControllerHandler] | None = None,
        fallback: ControllerHandler | None = None,
        structured_logger: RouterLogger | None = None,
        metrics: RouterMetrics | None = None,
    ):
        """Initialize the HTTP server.

        Args:
            config: Application configuration
            router: Router holding the compiled table
            controllers: Controller name -> async handler
            fallback: Handler for controllers without a registered handler
            structured_logger: Optional structured logger
            metrics: Optional metrics collector, exposed on the metrics endpoint
        """
        self.config = config
        self.router = router
        self.metrics = metrics
        self.handler = RequestHandler(config, controllers, fallback, structured_logger)
        self.app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def create_app(self) -> web.Application:
        """Create and configure the aiohttp application."""
        serve_metrics = self.metrics is not None and self.config.metrics.enabled
        # The metrics endpoint is not a routed path
        skip_paths = [self.config.metrics.endpoint] if serve_metrics else []

        app = web.Application(
            client_max_size=self.config.server.client_max_size,
            middlewares=[
                create_routing_middleware(
                    self.router, self.config.routing.default_controller, skip_paths
                )
            ],
            handler_args={
                "keepalive_timeout": self.config.server.keepalive_timeout,
            },
        )

        if serve_metrics:
            app.router.add_get(self.config.metrics.endpoint, self._metrics_handler)

        # Everything else goes through the routing table
        app.router.add_route("*", "/{tail:.*}", self.handler.handle_request)

        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)

        self.app = app
        return app

    async def _metrics_handler(self, request: web.Request) -> web.Response:
        if self.metrics is None:
            raise web.HTTPNotFound()
        return web.Response(body=self.metrics.export_metrics(), content_type="text/plain")

    async def start(self) -> None:
        """Start the HTTP server.

        Raises:
            RuntimeError: If server is already running
        """
        if self._runner is not None:
            raise RuntimeError("Server is already running")

        if self.app is None:
            self.create_app()

        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()

        self._site = web.TCPSite(
            self._runner,
            host=self.config.server.host,
            port=self.config.server.port,
        )
        await self._site.start()

        logger.info(
            f"HTTP server started on http://{self.config.server.host}:{self.config.server.port}",
            extra={"host": self.config.server.host, "port": self.config.server.port},
        )

    async def stop(self) -> None:
        """Stop the HTTP server gracefully."""
        if self._runner is None:
            logger.warning("Server is not running")
            return

        logger.info("Stopping HTTP server...")

        if self._site:
            await self._site.stop()
        await self._runner.cleanup()

        self._site = None
        self._runner = None

        logger.info("HTTP server stopped")

    async def _on_startup(self, app: web.Application) -> None:
        counts = self.router.table.count()
        logger.info("Application starting up...", extra=counts)

        structured_logger = self.handler.structured_logger
        if structured_logger is not None:
            routing = self.config.routing
            source = routing.compiled_table or ", ".join(routing.route_files) or MEMORY_SOURCE
            structured_logger.log_table_built(source, counts)

    async def _on_cleanup(self, app: web.Application) -> None:
        logger.info("Application cleanup...")
