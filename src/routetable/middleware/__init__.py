"""aiohttp middleware for request routing."""

from routetable.middleware.routing import create_routing_middleware

__all__ = [
    "create_routing_middleware",
]
