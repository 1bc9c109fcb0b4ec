"""Unit tests for the command line interface."""

import json
from pathlib import Path

import pytest
import yaml

from routetable.__main__ import main


@pytest.fixture
def routes_file(tmp_path: Path, sample_routes) -> Path:
    path = tmp_path / "routes.yaml"
    path.write_text(yaml.dump(sample_routes))
    return path


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


def test_compile_to_stdout(routes_file: Path, capsys: pytest.CaptureFixture) -> None:
    """Test compiling route files prints the table."""
    assert _run(["compile", str(routes_file)]) == 0

    table = json.loads(capsys.readouterr().out)
    assert table["static"]["GET"]["/api/contracts"] == {"controller": "api.contracts"}
    assert "GET" in table["dynamic"]


def test_compile_to_file(
    routes_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture
) -> None:
    """Test compiling into a table file reusable by resolve."""
    output = tmp_path / "table.json"

    assert _run(["compile", str(routes_file), "-o", str(output)]) == 0
    assert "dynamic routes" in capsys.readouterr().out

    assert _run(["resolve", "GET", "/v1/orders/15", "--table", str(output)]) == 0
    leaf = json.loads(capsys.readouterr().out)
    assert leaf["controller"] == "OrdersController"
    assert leaf["parameters"] == {"ver": "1", "id": "15"}


def test_resolve_with_mime(routes_file: Path, capsys: pytest.CaptureFixture) -> None:
    """Test the content type option."""
    argv = ["resolve", "POST", "/v1/orders", "--mime", "application/json"]

    assert _run([*argv, "--routes", str(routes_file)]) == 0
    assert json.loads(capsys.readouterr().out)["controller"] == "OrdersJsonController"


def test_resolve_not_found(routes_file: Path, capsys: pytest.CaptureFixture) -> None:
    """Test the exit code when nothing matches."""
    assert _run(["resolve", "GET", "/nowhere/x", "--routes", str(routes_file)]) == 1
    assert json.loads(capsys.readouterr().out) == {"controller": None}

    argv = ["resolve", "GET", "/nowhere/x", "--default", "Fallback", "--routes"]
    assert _run([*argv, str(routes_file)]) == 0
    assert json.loads(capsys.readouterr().out) == {"controller": "Fallback"}


def test_resolve_separator(routes_file: Path, capsys: pytest.CaptureFixture) -> None:
    """Test the namespace separator option."""
    argv = ["resolve", "GET", "/api/contracts", "--separator", "\\", "--routes"]

    assert _run([*argv, str(routes_file)]) == 0
    assert json.loads(capsys.readouterr().out)["controller"] == "api\\contracts"


def test_malformed_routes_file(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    """Test malformed sources exit with an error naming the file."""
    path = tmp_path / "bad.yaml"
    path.write_text("just a string")

    assert _run(["compile", str(path)]) == 2
    assert str(path) in capsys.readouterr().err


def test_no_command(capsys: pytest.CaptureFixture) -> None:
    """Test running without a command prints help."""
    assert _run([]) == 0
    assert "usage: routetable" in capsys.readouterr().out
