"""Compiled routing table.

The table is partitioned into:
- ``static[method_and_type]["/" + normalized_path] -> Leaf`` for exact paths
- ``dynamic[method_and_type] -> Node`` for paths with placeholders

A ``Node`` holds literal children keyed by segment, pattern branches keyed by
regex (tried in insertion order) and an optional terminal ``Leaf``.

The plain mapping form used for export/import keeps literal children under
their segment, pattern branches under ``"re/"`` and the leaf under
``"result/"``. Both reserved keys contain a slash, so they never collide with a
path segment.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from routetable.core.errors import MalformedTableError

PATTERNS_KEY = "re/"
LEAF_KEY = "result/"


@dataclass(frozen=True)
class Leaf:
    """Terminal record of a route.

    ``parameters`` is only set on the copy returned by a dynamic match.
    """

    controller: str | None
    filters: dict[str, Any] | None = None
    parameters: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the plain mapping form, omitting unset fields.

        The mapping owns its filters and parameters; editing it leaves the
        leaf untouched.
        """
        result: dict[str, Any] = {"controller": self.controller}
        if self.filters is not None:
            result["filters"] = copy.deepcopy(self.filters)
        if self.parameters is not None:
            result["parameters"] = dict(self.parameters)
        return result

    @classmethod
    def from_dict(cls, data: Any) -> "Leaf":
        """Rebuild a leaf from its plain form (a mapping or a controller string)."""
        if isinstance(data, str) or data is None:
            return cls(controller=data)
        filters = data.get("filters")
        return cls(
            controller=data.get("controller"),
            filters=copy.deepcopy(filters) if filters is not None else None,
        )


@dataclass
class Node:
    """Dynamic tree node."""

    children: dict[str, "Node"] = field(default_factory=dict)
    patterns: dict[str, "Node"] = field(default_factory=dict)
    leaf: Leaf | None = None

    def child(self, segment: str) -> "Node":
        """Get or create the literal child for a segment."""
        node = self.children.get(segment)
        if node is None:
            node = self.children[segment] = Node()
        return node

    def branch(self, regex: str) -> "Node":
        """Get or create the pattern branch for a regex, keeping its first position."""
        node = self.patterns.get(regex)
        if node is None:
            node = self.patterns[regex] = Node()
        return node

    def merge(self, other: "Node") -> None:
        """Merge another node into this one, the other node winning on shared keys."""
        _merge_mapping(self.children, other.children)
        _merge_mapping(self.patterns, other.patterns)
        if other.leaf is not None:
            self.leaf = other.leaf

    def count_leaves(self) -> int:
        """Count leaves in this subtree."""
        count = 1 if self.leaf is not None else 0
        for node in (*self.children.values(), *self.patterns.values()):
            count += node.count_leaves()
        return count

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            segment: node.to_dict() for segment, node in self.children.items()
        }
        if self.patterns:
            result[PATTERNS_KEY] = {regex: node.to_dict() for regex, node in self.patterns.items()}
        if self.leaf is not None:
            result[LEAF_KEY] = self.leaf.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Node":
        node = cls()
        for key, value in data.items():
            if key == LEAF_KEY:
                node.leaf = Leaf.from_dict(value)
            elif key == PATTERNS_KEY:
                node.patterns = {regex: cls.from_dict(sub) for regex, sub in value.items()}
            else:
                node.children[key] = cls.from_dict(value)
        return node


def _merge_mapping(target: dict[str, Node], incoming: dict[str, Node]) -> None:
    for key, node in incoming.items():
        if key in target:
            target[key].merge(node)
        else:
            target[key] = copy.deepcopy(node)


class RoutingTable:
    """Static index plus dynamic trees, keyed by method and type.

    Built once (or by repeated merges) and read-only while serving requests.
    """

    def __init__(self) -> None:
        self.static: dict[str, dict[str, Leaf]] = {}
        self.dynamic: dict[str, Node] = {}

    def add_static(self, method_and_type: str, path: str, leaf: Leaf) -> None:
        """Store a leaf under an exact ``/path`` key."""
        self.static.setdefault(method_and_type, {})[path] = leaf

    def dynamic_root(self, method_and_type: str) -> Node:
        """Get or create the dynamic tree for a method and type."""
        return self.dynamic.setdefault(method_and_type, Node())

    def merge(self, other: "RoutingTable") -> "RoutingTable":
        """Merge another table into this one in place.

        Keys only present here survive, keys present in both take the other
        table's value, recursing into nested structures. Leaves are replaced
        wholesale.

        Returns:
            This table
        """
        for method_and_type, paths in other.static.items():
            self.static.setdefault(method_and_type, {}).update(paths)

        _merge_mapping(self.dynamic, other.dynamic)
        return self

    def copy(self) -> "RoutingTable":
        """Return a deep copy sharing no mutable state with this table."""
        return copy.deepcopy(self)

    def is_empty(self) -> bool:
        return not self.static and not self.dynamic

    def count(self) -> dict[str, int]:
        """Count leaves per kind."""
        return {
            "static": sum(len(paths) for paths in self.static.values()),
            "dynamic": sum(node.count_leaves() for node in self.dynamic.values()),
        }

    def to_dict(self) -> dict[str, Any]:
        """Export the table as a plain nested mapping."""
        return {
            "static": {
                method_and_type: {path: leaf.to_dict() for path, leaf in paths.items()}
                for method_and_type, paths in self.static.items()
            },
            "dynamic": {
                method_and_type: node.to_dict() for method_and_type, node in self.dynamic.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> "RoutingTable":
        """Import a table exported by ``to_dict()`` without re-validating it.

        Raises:
            MalformedTableError: If the data is not a mapping
        """
        if not isinstance(data, Mapping):
            raise MalformedTableError(
                f"Parsed routes must be a mapping, got {type(data).__name__}"
            )

        table = cls()
        for method_and_type, paths in (data.get("static") or {}).items():
            table.static[method_and_type] = {
                path: Leaf.from_dict(leaf) for path, leaf in paths.items()
            }
        for method_and_type, tree in (data.get("dynamic") or {}).items():
            table.dynamic[method_and_type] = Node.from_dict(tree)
        return table
