"""Unit tests for the route table compiler."""

import json
import logging
from pathlib import Path

import pytest
import yaml

from routetable.core.builder import (
    RouteTableBuilder,
    build_from_files,
    load_compiled_table,
    load_route_file,
    save_compiled_table,
)
from routetable.core.errors import MalformedTableError, PatternError
from routetable.core.table import Leaf, RoutingTable


@pytest.fixture
def builder() -> RouteTableBuilder:
    return RouteTableBuilder()


class TestRouteTableBuilder:
    """Tests for RouteTableBuilder class."""

    def test_static_route(self, builder):
        """Test paths without placeholders go to the static index."""
        table = builder.build([{"GET /api//users/": "Users"}])

        assert table.static == {"GET": {"/api/users": Leaf(controller="Users")}}
        assert table.dynamic == {}

    def test_root_route(self, builder):
        """Test the root path derives the index controller."""
        table = builder.build(["GET /"])
        assert table.static["GET"]["/"] == Leaf(controller="index")

    def test_mime_key(self, builder):
        """Test routes with a content type use a composite key."""
        table = builder.build(
            [{"POST /orders": "Orders"}, {"POST /orders application/json": "OrdersJson"}]
        )

        assert table.static["POST"]["/orders"].controller == "Orders"
        assert table.static["POST application/json"]["/orders"].controller == "OrdersJson"

    def test_dynamic_route(self, builder):
        """Test placeholder segments become pattern branches."""
        table = builder.build(
            [{"GET /{ver}/products/{id}": {"controller": "Products", "filters": {"id": "int"}}}]
        )

        assert table.static == {}
        root = table.dynamic["GET"]
        assert list(root.patterns) == ["^(?P<ver>[^/]+)$"]
        products = root.patterns["^(?P<ver>[^/]+)$"].children["products"]
        leaf_node = products.patterns["^(?P<id>[^/]+)$"]
        assert leaf_node.leaf == Leaf(controller="Products", filters={"id": "int"})

    def test_dynamic_even_with_static_prefix(self, builder):
        """Test a placeholder route is dynamic even if its prefix is a static route."""
        table = builder.build([{"GET /users": "List"}, {"GET /users/{id}": "Item"}])

        assert table.static["GET"]["/users"].controller == "List"
        users = table.dynamic["GET"].children["users"]
        assert users.patterns["^(?P<id>[^/]+)$"].leaf.controller == "Item"

    def test_derived_controller(self, builder):
        """Test controllers are derived from the normalized path."""
        table = builder.build(["GET /api/users--up/{id}/some.controller"])

        api = table.dynamic["GET"].children["api"]
        branch = api.children["users--up"].patterns["^(?P<id>[^/]+)$"]
        leaf = branch.children["some.controller"].leaf
        assert leaf.controller == "api.users_up._id_.some_controller"

    def test_namespace_separator(self):
        """Test a custom namespace separator for derived controllers."""
        table = RouteTableBuilder(namespace_separator="\\").build(["GET /api/contracts"])
        assert table.static["GET"]["/api/contracts"].controller == "api\\contracts"

    def test_later_declaration_wins(self, builder):
        """Test a duplicate key in one source keeps the last declaration."""
        table = builder.build([{"GET /a": "First"}, {"GET /a": "Second"}])
        assert table.static["GET"]["/a"].controller == "Second"

    def test_merge_overwrites_and_keeps_siblings(self, builder):
        """Test merging twice keeps unrelated keys and replaces shared ones."""
        table = builder.build(
            [
                {"GET /a": "A"},
                {"GET /items/{id}": {"controller": "Item", "filters": {"id": "int"}}},
                {"GET /items/{id}/parts": "Parts"},
            ]
        )
        builder.merge(
            table,
            [
                {"GET /b": "B"},
                {"GET /items/{id}": "ItemV2"},
            ],
        )

        assert table.static["GET"]["/a"].controller == "A"
        assert table.static["GET"]["/b"].controller == "B"
        branch = table.dynamic["GET"].children["items"].patterns["^(?P<id>[^/]+)$"]
        assert branch.leaf == Leaf(controller="ItemV2")
        assert branch.children["parts"].leaf.controller == "Parts"

    def test_malformed_source_leaves_table_untouched(self, builder):
        """Test a failing merge does not leave a partial table behind."""
        table = builder.build([{"GET /a": "A"}])

        with pytest.raises(MalformedTableError):
            builder.merge(table, [{"GET /b": "B"}, 42])

        assert "/b" not in table.static["GET"]

    def test_bad_pattern_reports_source(self, builder):
        """Test pattern errors carry the source identifier."""
        with pytest.raises(PatternError) as exc_info:
            builder.build(["GET /items/{1id}"], source="routes.yaml")
        assert exc_info.value.source == "routes.yaml"

    def test_duplicate_variable_warning(self, builder, caplog):
        """Test a variable bound twice in one route is logged."""
        with caplog.at_level(logging.WARNING, logger="routetable.core.builder"):
            builder.build(["GET /{id}/x/{id}"])

        assert any("bound twice" in record.message for record in caplog.records)


class TestRouteFiles:
    """Tests for file based route loading."""

    def test_load_yaml(self, tmp_path: Path):
        path = tmp_path / "routes.yaml"
        path.write_text(yaml.dump([{"GET /a": "A"}, "GET /b"]))

        assert load_route_file(path) == [{"GET /a": "A"}, "GET /b"]

    def test_load_json(self, tmp_path: Path):
        path = tmp_path / "routes.json"
        path.write_text(json.dumps({"GET /a": "A"}))

        assert load_route_file(path) == {"GET /a": "A"}

    @pytest.mark.parametrize("content", ["just a string", "42", ""])
    def test_non_table_file(self, tmp_path: Path, content: str):
        path = tmp_path / "routes.yaml"
        path.write_text(content)

        with pytest.raises(MalformedTableError) as exc_info:
            load_route_file(path)
        assert exc_info.value.source == str(path)

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "routes.yaml"
        path.write_text("GET /a: [unclosed")

        with pytest.raises(MalformedTableError):
            load_route_file(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(MalformedTableError, match="Cannot load"):
            load_route_file(tmp_path / "missing.yaml")

    def test_build_from_files_in_order(self, tmp_path: Path):
        first = tmp_path / "first.yaml"
        first.write_text(yaml.dump({"GET /a": "A", "GET /b": "B"}))
        second = tmp_path / "second.json"
        second.write_text(json.dumps({"GET /b": "B2"}))

        table = build_from_files([first, second])

        assert table.static["GET"]["/a"].controller == "A"
        assert table.static["GET"]["/b"].controller == "B2"

    def test_build_from_files_aborts_on_malformed_file(self, tmp_path: Path):
        good = tmp_path / "good.yaml"
        good.write_text(yaml.dump({"GET /a": "A"}))
        bad = tmp_path / "bad.yaml"
        bad.write_text("nope")

        with pytest.raises(MalformedTableError) as exc_info:
            build_from_files([good, bad])
        assert exc_info.value.source == str(bad)


class TestCompiledTableFiles:
    """Tests for compiled table export to and import from files."""

    def test_save_and_load(self, tmp_path: Path, builder: RouteTableBuilder):
        table = builder.build(
            [{"GET /a": "A"}, {"GET /v{ver}/x": {"controller": "X", "filters": {"ver": "int"}}}]
        )
        path = tmp_path / "table.json"

        save_compiled_table(table, path)
        loaded = load_compiled_table(path)

        assert loaded.to_dict() == table.to_dict()

    def test_load_non_mapping(self, tmp_path: Path):
        path = tmp_path / "table.json"
        path.write_text("[]")

        with pytest.raises(MalformedTableError) as exc_info:
            load_compiled_table(path)
        assert exc_info.value.source == str(path)

    def test_load_invalid_json(self, tmp_path: Path):
        path = tmp_path / "table.json"
        path.write_text("{")

        with pytest.raises(MalformedTableError):
            load_compiled_table(path)


def test_empty_table() -> None:
    """Test a fresh table is empty."""
    assert RoutingTable().is_empty()
