"""Route table compiler.

Consumes route declarations and produces a ``RoutingTable``:
- Paths without placeholders go to the static index
- Paths with at least one placeholder go to the dynamic tree
- Declarations are merged into the accumulated table, last write wins
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from routetable.core.declarations import RouteDeclaration, derive_controller, iter_declarations
from routetable.core.errors import MEMORY_SOURCE, MalformedTableError
from routetable.core.paths import normalize_path, split_path
from routetable.core.patterns import PatternCompiler, has_placeholder
from routetable.core.table import Leaf, RoutingTable

logger = logging.getLogger(__name__)


class RouteTableBuilder:
    """Compiles route declarations into a routing table."""

    def __init__(
        self,
        compiler: PatternCompiler | None = None,
        namespace_separator: str = ".",
    ):
        """Initialize the builder.

        Args:
            compiler: Segment pattern compiler (a fresh one if None)
            namespace_separator: Separator used when deriving controller names
        """
        self.compiler = compiler or PatternCompiler()
        self.namespace_separator = namespace_separator

    def build(self, routes: Any, source: str = MEMORY_SOURCE) -> RoutingTable:
        """Compile a route source into a new table."""
        return self.merge(RoutingTable(), routes, source)

    def merge(self, table: RoutingTable, routes: Any, source: str = MEMORY_SOURCE) -> RoutingTable:
        """Compile a route source and merge it into an existing table.

        The whole source is compiled into a partial table first, so a
        malformed entry leaves ``table`` untouched.

        Args:
            table: Accumulated table, updated in place
            routes: Route declarations in any accepted shape
            source: Source identifier used in errors and logs

        Returns:
            The updated table

        Raises:
            MalformedTableError: If the source or one of its entries is malformed
        """
        partial = RoutingTable()
        count = 0
        for declaration in iter_declarations(routes, source):
            self._add(partial, declaration, source)
            count += 1

        table.merge(partial)

        logger.info(
            f"Compiled {count} routes from {source}",
            extra={"source": source, "route_count": count},
        )
        return table

    def merge_declarations(
        self, table: RoutingTable, declarations: Iterable[RouteDeclaration]
    ) -> RoutingTable:
        """Merge already parsed declarations into a table."""
        partial = RoutingTable()
        for declaration in declarations:
            self._add(partial, declaration, MEMORY_SOURCE)
        return table.merge(partial)

    def _add(self, table: RoutingTable, declaration: RouteDeclaration, source: str) -> None:
        path = normalize_path(declaration.path)
        controller = declaration.controller
        if controller is None:
            controller = derive_controller(path, self.namespace_separator)

        leaf = Leaf(controller=controller, filters=declaration.filters)

        if not has_placeholder(path):
            table.add_static(declaration.method_and_type, "/" + path, leaf)
            return

        node = table.dynamic_root(declaration.method_and_type)
        bound: list[str] = []
        for segment in split_path(path):
            if has_placeholder(segment):
                try:
                    regex, variables = self.compiler.compile(segment)
                except MalformedTableError as e:
                    raise type(e)(e.message, source) from e
                for name in variables:
                    if name in bound:
                        logger.warning(
                            f"Variable {name!r} bound twice in route {declaration.path!r}; "
                            "the outer capture wins",
                            extra={"source": source, "variable": name},
                        )
                bound.extend(variables)
                node = node.branch(regex)
            else:
                node = node.child(segment)

        node.leaf = leaf


def load_route_file(path: str | Path) -> Any:
    """Load a route source from a YAML or JSON file.

    Args:
        path: Route file path (``.yaml``, ``.yml`` or ``.json``)

    Returns:
        Decoded list or mapping of route declarations

    Raises:
        MalformedTableError: If the file cannot be read or does not decode to
            a list or mapping
    """
    path = Path(path)
    source = str(path)

    try:
        with open(path) as f:
            if path.suffix.lower() == ".json":
                routes = json.load(f)
            else:
                routes = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise MalformedTableError(f"Cannot load routing table: {e}", source) from e

    if not isinstance(routes, (list, dict)):
        raise MalformedTableError("Routing table must be a list or mapping", source)

    return routes


def build_from_files(
    paths: Iterable[str | Path],
    builder: RouteTableBuilder | None = None,
    table: RoutingTable | None = None,
) -> RoutingTable:
    """Build a table from route files, later files overwriting earlier ones.

    Nothing is returned if any file is malformed: the error propagates with the
    offending file as its source.
    """
    builder = builder or RouteTableBuilder()
    table = table if table is not None else RoutingTable()
    for path in paths:
        builder.merge(table, load_route_file(path), str(path))
    return table


def save_compiled_table(table: RoutingTable, path: str | Path) -> None:
    """Write a compiled table as JSON for later reuse."""
    with open(path, "w") as f:
        json.dump(table.to_dict(), f, indent=2)


def load_compiled_table(path: str | Path) -> RoutingTable:
    """Read a compiled table written by ``save_compiled_table()``.

    Raises:
        MalformedTableError: If the file cannot be read or is not a mapping
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise MalformedTableError(f"Cannot load compiled table: {e}", str(path)) from e

    try:
        return RoutingTable.from_dict(data)
    except MalformedTableError as e:
        raise MalformedTableError(e.message, str(path)) from e
