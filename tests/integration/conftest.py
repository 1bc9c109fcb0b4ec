"""Shared fixtures for integration tests."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from prometheus_client import CollectorRegistry

from routetable.core.config import AppConfig
from routetable.core.handler import inspect_controller
from routetable.core.metrics import RouterMetrics
from routetable.core.request import RoutedRequest
from routetable.core.routing import create_router
from routetable.core.server import HTTPServer


@pytest.fixture
def integration_config(sample_routes: list[Any]) -> AppConfig:
    """Create configuration for integration tests."""
    config = AppConfig()
    config.routing.routes = list(sample_routes)
    config.routing.default_controller = None
    return config


@pytest.fixture
def metrics() -> RouterMetrics:
    """Create a metrics collector on its own registry."""
    return RouterMetrics(AppConfig().metrics, registry=CollectorRegistry())


@pytest.fixture
def controllers() -> dict[str, Any]:
    """Controller handlers for the sample routes."""

    async def orders(request: web.Request, routed: RoutedRequest) -> web.Response:
        return web.json_response(
            {"controller": "orders", "ver": routed.get("ver"), "id": routed.get("id")}
        )

    async def products_list(request: web.Request, routed: RoutedRequest) -> web.Response:
        return web.json_response({"ids": routed.get("id_list")})

    async def broken(request: web.Request, routed: RoutedRequest) -> web.Response:
        raise RuntimeError("controller crashed")

    async def forbidden(request: web.Request, routed: RoutedRequest) -> web.Response:
        raise web.HTTPForbidden()

    return {
        "OrdersController": orders,
        "ProductsListController": products_list,
        "api.contracts": broken,
        "AvatarsController": forbidden,
    }


@pytest.fixture
def server(
    integration_config: AppConfig, controllers: dict[str, Any], metrics: RouterMetrics
) -> HTTPServer:
    """Create an HTTP server for the sample routes."""
    router = create_router(integration_config.routing, metrics)
    return HTTPServer(
        integration_config,
        router,
        controllers=controllers,
        fallback=inspect_controller,
        metrics=metrics,
    )


@pytest.fixture
async def client(server: HTTPServer) -> AsyncGenerator[TestClient, None]:
    """Create a test client for the server."""
    test_server = TestServer(server.create_app())
    client = TestClient(test_server)
    await client.start_server()
    yield client
    await client.close()
