"""Route matching engine.

Lookup order, first success wins:
1. Static index, ``METHOD MIME`` key (only when a mime is given)
2. Static index, ``METHOD`` key
3. Dynamic tree, ``METHOD MIME`` key (only when a mime is given)
4. Dynamic tree, ``METHOD`` key

The dynamic probe is a recursive descent with backtracking: at each level the
literal child is tried before the pattern branches, and pattern branches are
tried in the order they were declared.
"""

import logging
import re
from dataclasses import replace
from functools import lru_cache
from urllib.parse import unquote

from routetable.core.paths import normalize_path, split_path
from routetable.core.table import Leaf, Node, RoutingTable

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1024)
def _compiled(regex: str) -> re.Pattern[str]:
    return re.compile(regex)


def method_and_type_keys(method: str, mime: str | None) -> list[str]:
    """Table keys to probe, most specific first."""
    method = method.upper()
    return [f"{method} {mime}", method] if mime else [method]


class Matcher:
    """Matches a request against a compiled routing table."""

    def match(
        self, table: RoutingTable, method: str, mime: str | None, path: str
    ) -> Leaf | None:
        """Find the leaf for a request.

        Args:
            table: Compiled routing table
            method: HTTP method
            mime: Request content type, empty or None for none
            path: Request path, normalized here

        Returns:
            The matching leaf (a fresh copy carrying ``parameters`` for dynamic
            routes), or None if no route matches
        """
        normalized_path = normalize_path(path)
        keys = method_and_type_keys(method, mime)

        static_path = "/" + normalized_path
        for key in keys:
            leaf = table.static.get(key, {}).get(static_path)
            if leaf is not None:
                logger.debug(
                    f"Static route matched: {key} {static_path}",
                    extra={"route_key": key, "path": static_path},
                )
                return leaf

        segments = split_path(normalized_path)
        if not segments:
            return None

        for key in keys:
            root = table.dynamic.get(key)
            if root is None:
                continue
            leaf = self._descend(root, segments, {})
            if leaf is not None:
                logger.debug(
                    f"Dynamic route matched: {key} {static_path}",
                    extra={"route_key": key, "path": static_path, "params": leaf.parameters},
                )
                return leaf

        return None

    def _descend(self, node: Node, segments: list[str], params: dict[str, str]) -> Leaf | None:
        """Match the remaining segments below a node, backtracking on failure."""
        segment, rest = segments[0], segments[1:]

        # 1. Literal child
        child = node.children.get(segment)
        if child is not None:
            found = self._finish(child, rest, params)
            if found is not None:
                return found

        # 2. Pattern branches, in declaration order
        for regex, branch in node.patterns.items():
            m = _compiled(regex).fullmatch(segment)
            if m is None:
                continue

            merged = dict(params)
            for name, value in m.groupdict().items():
                if value is not None:
                    # Values captured at outer levels are kept
                    merged.setdefault(name, unquote(value))

            found = self._finish(branch, rest, merged)
            if found is not None:
                return found

        return None

    def _finish(self, node: Node, rest: list[str], params: dict[str, str]) -> Leaf | None:
        if rest:
            return self._descend(node, rest, params)
        if node.leaf is not None:
            return replace(node.leaf, parameters=params)
        return None
