"""Shared pytest fixtures and configuration."""

import logging
from typing import Any

import pytest
from prometheus_client import REGISTRY

from routetable.core.routing import Router


def _unregister_routetable_collectors() -> None:
    for collector, names in list(REGISTRY._collector_to_names.items()):
        if any(name.startswith("routetable_") for name in names):
            REGISTRY.unregister(collector)


@pytest.fixture(autouse=True)
def reset_prometheus_registry():
    """Reset Prometheus registry before each test to avoid duplicate metric errors."""
    _unregister_routetable_collectors()
    yield
    _unregister_routetable_collectors()


@pytest.fixture(autouse=True)
def reset_routetable_logger():
    """Undo RouterLogger setup so records propagate to caplog again."""
    yield
    logger = logging.getLogger("routetable")
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler):
            handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


PRODUCT_FILTERS = {"ver": "default", "id": "int"}

SAMPLE_ROUTES: list[Any] = [
    "GET /",
    {"GET /{ver}/users/{id}": "UsersController"},
    {"GET /users/{uuid}": {"controller": "UsersUuidController", "filters": {"uuid": "uuid"}}},
    {"GET /{ver}/products": "ProductsController"},
    {"GET /{ver}/products/{id}": {"controller": "ProductsController", "filters": PRODUCT_FILTERS}},
    {"POST /{ver}/products/{id}": {"controller": "ProductsController", "filters": PRODUCT_FILTERS}},
    {"PUT /{ver}/products/{id}": {"controller": "ProductsController", "filters": PRODUCT_FILTERS}},
    {"DELETE /{ver}/products/{id}": {"controller": "ProductsController", "filters": PRODUCT_FILTERS}},
    "GET /api/contracts",
    "DELETE /api/contracts/{id}",
    {"route": "GET /api/users--up/{id}/some.controller", "filters": {"id": "int"}},
    {
        "GET /v{ver}/orders/{id}": {
            "controller": "OrdersController",
            "filters": {"id": {"filter": "int", "options": {"min_range": 1}}},
        }
    },
    {"POST /v{ver}/orders": "OrdersController"},
    {"POST /v{ver}/orders application/json": "OrdersJsonController"},
    {"GET /v1/avatars": "AvatarsController"},
    {"GET /v{ver}/avatars application/json": "AvatarsGetJsonController"},
    {"GET /v{ver}/avatars": "AvatarsGetController"},
    {"PUT /v{ver}/avatars": "AvatarsPutController"},
    {
        "route": "GET /products/{id_list}",
        "controller": "ProductsListController",
        "filters": {"id_list": "int_list"},
    },
]


@pytest.fixture
def sample_routes() -> list[Any]:
    """Route declarations covering every accepted shape."""
    return SAMPLE_ROUTES


@pytest.fixture
def router(sample_routes: list[Any]) -> Router:
    """Router compiled from the sample routes."""
    return Router(sample_routes)
