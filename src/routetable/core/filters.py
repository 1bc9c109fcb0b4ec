"""Parameter filters.

A filter descriptor is either a filter name (``"int"``) or a mapping
``{"filter": "int", "options": {"min_range": 1}}``. Route tables only carry
descriptors; they are interpreted here when a parameter is read.

Built-in filters:
- ``default`` / ``str``: the raw string
- ``int``: integer, options ``min_range`` and ``max_range``
- ``float``: floating point number
- ``bool``: boolean (``true``/``false``, ``1``/``0``, ``yes``/``no``, ...)
- ``uuid``: ``uuid.UUID``
- ``regexp``: the raw string if it fully matches option ``regexp``
- ``int_list``: comma separated integers, invalid items dropped
"""

import re
from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from routetable.core.errors import FilterError

FilterFunc = Callable[[str, dict[str, Any]], Any]


class _FilterFailed:
    """Sentinel type returned when a value does not pass its filter."""

    _instance: "_FilterFailed | None" = None

    def __new__(cls) -> "_FilterFailed":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FILTER_FAILED"

    def __bool__(self) -> bool:
        return False


FILTER_FAILED = _FilterFailed()


class FilterSpec(BaseModel):
    """Parsed filter descriptor."""

    filter: str = Field(default="default", description="Filter name")
    options: dict[str, Any] = Field(default_factory=dict, description="Filter options")

    @classmethod
    def parse(cls, descriptor: Any) -> "FilterSpec":
        """Parse a descriptor given as a name or a mapping.

        Raises:
            FilterError: If the descriptor has another shape
        """
        if isinstance(descriptor, str):
            return cls(filter=descriptor)
        if isinstance(descriptor, Mapping):
            try:
                return cls.model_validate(dict(descriptor))
            except ValidationError as e:
                raise FilterError(f"Invalid filter descriptor {descriptor!r}: {e}") from e
        raise FilterError(f"Invalid filter descriptor {descriptor!r}")


@lru_cache(maxsize=64)
def _int_adapter(min_range: int | None, max_range: int | None) -> TypeAdapter:
    constraints: dict[str, int] = {}
    if min_range is not None:
        constraints["ge"] = min_range
    if max_range is not None:
        constraints["le"] = max_range
    if not constraints:
        return TypeAdapter(int)
    return TypeAdapter(Annotated[int, Field(**constraints)])


_STR = TypeAdapter(str)
_FLOAT = TypeAdapter(float)
_BOOL = TypeAdapter(bool)
_UUID = TypeAdapter(UUID)


def _filter_str(value: str, options: dict[str, Any]) -> Any:
    return _STR.validate_python(value)


def _filter_int(value: str, options: dict[str, Any]) -> Any:
    adapter = _int_adapter(options.get("min_range"), options.get("max_range"))
    return adapter.validate_python(value)


def _filter_float(value: str, options: dict[str, Any]) -> Any:
    return _FLOAT.validate_python(value)


def _filter_bool(value: str, options: dict[str, Any]) -> Any:
    return _BOOL.validate_python(value)


def _filter_uuid(value: str, options: dict[str, Any]) -> Any:
    return _UUID.validate_python(value)


def _filter_regexp(value: str, options: dict[str, Any]) -> Any:
    pattern = options.get("regexp")
    if not pattern:
        raise FilterError("Filter 'regexp' requires option 'regexp'")
    if re.fullmatch(pattern, value) is None:
        raise ValueError(f"{value!r} does not match {pattern!r}")
    return value


def _filter_int_list(value: str, options: dict[str, Any]) -> Any:
    items = []
    for item in value.split(","):
        try:
            items.append(_filter_int(item.strip(), options))
        except ValueError:
            continue
    if not items:
        raise ValueError(f"{value!r} contains no valid integer")
    return items


class FilterRegistry:
    """Named filter functions.

    A filter function receives the raw string and the descriptor options and
    returns the typed value, raising ``ValueError`` when the value is invalid.
    """

    def __init__(self) -> None:
        self._filters: dict[str, FilterFunc] = {
            "default": _filter_str,
            "str": _filter_str,
            "int": _filter_int,
            "float": _filter_float,
            "bool": _filter_bool,
            "uuid": _filter_uuid,
            "regexp": _filter_regexp,
            "int_list": _filter_int_list,
        }

    def register(self, name: str, func: FilterFunc) -> None:
        """Register or replace a named filter."""
        self._filters[name] = func

    def names(self) -> list[str]:
        return sorted(self._filters)

    def apply(self, descriptor: Any, value: Any) -> Any:
        """Apply a filter descriptor to a raw value.

        Args:
            descriptor: Filter name or ``{"filter": ..., "options": ...}`` mapping
            value: Raw parameter value

        Returns:
            The filtered value, or ``FILTER_FAILED`` if validation failed

        Raises:
            FilterError: If the descriptor is malformed or names an unknown filter
        """
        spec = FilterSpec.parse(descriptor)
        func = self._filters.get(spec.filter)
        if func is None:
            raise FilterError(f"Unknown filter {spec.filter!r}")

        if not isinstance(value, str):
            # Already typed values (e.g. set by application code) are filtered as text
            value = str(value)

        try:
            return func(value, spec.options)
        except ValueError:
            return FILTER_FAILED


default_registry = FilterRegistry()
