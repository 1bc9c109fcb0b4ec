"""Route declaration parsing.

A route source is an ordered sequence of entries, each in one of three shapes:

- By route:      ``"GET /users/{id}"`` (controller derived from the path)
- By key/value:  ``{"GET /users/{id}": "Users"}`` or
                 ``{"GET /users/{id}": {"controller": "Users", "filters": {...}}}``
- Structured:    ``{"route": "GET /users/{id}", "controller": "Users", "filters": {...}}``

A plain mapping of key/value pairs (the natural shape of a YAML or JSON object)
is accepted as well. Every entry is classified once and normalized into a
``RouteDeclaration`` before any table logic runs.
"""

import re
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from routetable.core.errors import MEMORY_SOURCE, MalformedTableError

DEFAULT_METHOD = "GET"
INDEX_CONTROLLER = "index"

_NON_WORD = re.compile(r"[^\w/]+")


class DeclarationShape(Enum):
    """Accepted shapes of a route table entry."""

    BY_ROUTE = "by_route"
    BY_KEY_VALUE = "by_key_value"
    BY_STRUCTURED = "by_structured"


class RouteDeclaration(BaseModel):
    """Canonical route declaration."""

    model_config = ConfigDict(frozen=True)

    method: str = Field(default=DEFAULT_METHOD, description="Uppercase HTTP method")
    path: str = Field(description="Path template, may contain {name} placeholders")
    mime: str = Field(default="", description="Content type, empty for any")
    controller: str | None = Field(default=None, description="Controller identifier")
    filters: dict[str, Any] | None = Field(
        default=None, description="Parameter name -> filter descriptor"
    )

    @property
    def method_and_type(self) -> str:
        """Table key: ``METHOD`` or ``METHOD MIME``."""
        return f"{self.method} {self.mime}" if self.mime else self.method


class _LeafSpec(BaseModel):
    """Value of a key/value entry when given as a mapping."""

    model_config = ConfigDict(extra="forbid")

    controller: str | None = None
    filters: dict[str, Any] | None = None


class _StructuredSpec(_LeafSpec):
    """Structured entry carrying its own route string."""

    route: str


def derive_controller(normalized_path: str, separator: str = ".") -> str:
    """Derive a controller name from a normalized path.

    Runs of characters that are neither word characters nor ``/`` collapse
    to ``_``, then every ``/`` becomes the namespace separator. The root path
    derives ``index``.

    Example::

        "api/users--up/{id}/some.controller" -> "api.users_up._id_.some_controller"
    """
    if not normalized_path:
        return INDEX_CONTROLLER
    return _NON_WORD.sub("_", normalized_path).replace("/", separator)


def parse_route_string(route: str, source: str = MEMORY_SOURCE) -> tuple[str, str, str]:
    """Split ``"METHOD PATH [MIME]"`` into its parts.

    A single token is a path served with ``GET``.

    Returns:
        Tuple of (method, path, mime)

    Raises:
        MalformedTableError: If the route has no token or more than three
    """
    if not isinstance(route, str):
        raise MalformedTableError(f"Route must be a string, got {type(route).__name__}", source)

    tokens = route.split()
    if len(tokens) == 1:
        return DEFAULT_METHOD, tokens[0], ""
    if len(tokens) == 2:
        return tokens[0].upper(), tokens[1], ""
    if len(tokens) == 3:
        return tokens[0].upper(), tokens[1], tokens[2]

    raise MalformedTableError(f"Cannot decode method and path from route {route!r}", source)


def classify(entry: Any) -> DeclarationShape:
    """Decide which shape a single list entry has."""
    if isinstance(entry, str):
        return DeclarationShape.BY_ROUTE
    if isinstance(entry, Mapping):
        if "route" in entry:
            return DeclarationShape.BY_STRUCTURED
        return DeclarationShape.BY_KEY_VALUE
    raise TypeError(f"Unsupported route entry type: {type(entry).__name__}")


def _from_key_value(key: Any, value: Any, source: str) -> RouteDeclaration:
    method, path, mime = parse_route_string(key, source)

    if value is None or isinstance(value, str):
        return RouteDeclaration(method=method, path=path, mime=mime, controller=value)

    if not isinstance(value, Mapping):
        raise MalformedTableError(
            f"Route {key!r} must map to a controller name or a mapping", source
        )

    try:
        spec = _LeafSpec.model_validate(dict(value))
    except ValidationError as e:
        raise MalformedTableError(f"Invalid leaf for route {key!r}: {e}", source) from e

    return RouteDeclaration(
        method=method, path=path, mime=mime, controller=spec.controller, filters=spec.filters
    )


def _from_structured(entry: Mapping[str, Any], source: str) -> RouteDeclaration:
    try:
        spec = _StructuredSpec.model_validate(dict(entry))
    except ValidationError as e:
        raise MalformedTableError(f"Invalid structured route entry: {e}", source) from e

    method, path, mime = parse_route_string(spec.route, source)
    return RouteDeclaration(
        method=method, path=path, mime=mime, controller=spec.controller, filters=spec.filters
    )


def iter_declarations(routes: Any, source: str = MEMORY_SOURCE) -> Iterator[RouteDeclaration]:
    """Normalize a route source into declarations, preserving order.

    Args:
        routes: Sequence of entries, or a mapping of key/value pairs
        source: Source identifier used in error messages

    Yields:
        RouteDeclaration for every entry

    Raises:
        MalformedTableError: If the source or one of its entries is malformed
    """
    if isinstance(routes, Mapping):
        for key, value in routes.items():
            yield _from_key_value(key, value, source)
        return

    if isinstance(routes, (str, bytes)) or not isinstance(routes, (list, tuple)):
        raise MalformedTableError(
            f"Routing table must be a list or mapping, got {type(routes).__name__}", source
        )

    for entry in routes:
        try:
            shape = classify(entry)
        except TypeError as e:
            raise MalformedTableError(str(e), source) from e

        if shape is DeclarationShape.BY_ROUTE:
            method, path, mime = parse_route_string(entry, source)
            yield RouteDeclaration(method=method, path=path, mime=mime)
        elif shape is DeclarationShape.BY_STRUCTURED:
            yield _from_structured(entry, source)
        else:
            for key, value in entry.items():
                yield _from_key_value(key, value, source)


def parse_declarations(routes: Any, source: str = MEMORY_SOURCE) -> list[RouteDeclaration]:
    """Eagerly parse a whole route source (see ``iter_declarations``)."""
    return list(iter_declarations(routes, source))
