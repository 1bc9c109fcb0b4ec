"""Exception hierarchy for routetable.

Build-time problems with route sources are raised eagerly while the table is
compiled. Failing to match a route is not an error: resolution returns the
caller-supplied default controller instead.
"""

MEMORY_SOURCE = "<memory>"


class RouteTableError(Exception):
    """Base for all routetable errors."""


class MalformedTableError(RouteTableError):
    """A route source or declaration could not be decoded.

    Attributes:
        source: Identifier of the offending source (file path or ``<memory>``)
    """

    def __init__(self, message: str, source: str = MEMORY_SOURCE):
        super().__init__(f"{source}: {message}")
        self.message = message
        self.source = source


class PatternError(MalformedTableError):
    """A path segment template could not be compiled."""


class FilterError(RouteTableError):
    """A filter descriptor is unknown or malformed."""
