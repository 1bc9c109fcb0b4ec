"""Request abstraction consumed by the resolver.

``RoutedRequest`` carries what routing needs from an HTTP request:
- Method, raw path and headers (case-insensitive)
- A parameter store, written by the resolver with captured path parameters
- A filter registry mapping parameter names to filter descriptors, applied
  whenever a parameter is read
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from routetable.core.filters import FILTER_FAILED, FilterRegistry, default_registry


@dataclass
class RoutedRequest:
    """Request data flowing through route resolution."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    filters: dict[str, Any] = field(default_factory=dict)
    filter_registry: FilterRegistry = field(default=default_registry, repr=False)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    @classmethod
    def from_aiohttp(cls, request: web.Request) -> "RoutedRequest":
        """Adapt an aiohttp request, keeping the path percent-encoded.

        Query string values are pre-populated as parameters.
        """
        return cls(
            method=request.method,
            path=request.rel_url.raw_path,
            headers=dict(request.headers),
            params=dict(request.query),
        )

    def header(self, name: str, default: str | None = None) -> str | None:
        """Get a header value by case-insensitive name."""
        return self.headers.get(name.lower(), default)

    @property
    def content_type(self) -> str | None:
        return self.header("content-type")

    def add_filters(self, filters: Mapping[str, Any]) -> None:
        """Register filter descriptors for parameters, replacing existing ones."""
        self.filters.update(filters)

    def raw(self, name: str, default: Any = None) -> Any:
        """Get a parameter without applying its filter."""
        return self.params.get(name, default)

    def get(self, name: str, default: Any = None) -> Any:
        """Get a filtered parameter.

        Returns:
            The filtered value, or ``default`` if the parameter is missing or
            fails its filter
        """
        try:
            value = self[name]
        except KeyError:
            return default
        return default if value is FILTER_FAILED else value

    def __getitem__(self, name: str) -> Any:
        """Get a filtered parameter, ``FILTER_FAILED`` if it fails its filter.

        Raises:
            KeyError: If the parameter is not set
        """
        value = self.params[name]
        descriptor = self.filters.get(name)
        if descriptor is None:
            return value
        return self.filter_registry.apply(descriptor, value)

    def __setitem__(self, name: str, value: Any) -> None:
        self.params[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self.params
