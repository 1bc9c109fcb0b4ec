"""Unit tests for path normalization."""

import pytest

from routetable.core.paths import normalize_path, split_path

SAMPLE_PATHS = [
    "",
    "/",
    "///",
    ".",
    "..",
    "./..",
    "/etc/hosts",
    "/index.php",
    "//b/../a//b/c/./d//",
    "//b/../a//b/c/./d//index.php",
    ".././/tmp/../home//admin/./.ssh",
    "/a/../../../b",
    "a/b/c/../../..",
    "/v2///products/123//./../456",
    "/.hidden/..dots../x",
]


@pytest.mark.parametrize(
    "path,expected",
    [
        ("", ""),
        ("/", ""),
        ("///", ""),
        ("./.", ""),
        ("/etc/hosts", "etc/hosts"),
        ("/index.php", "index.php"),
        ("//b/../a//b/c/./d//", "a/b/c/d"),
        ("//b/../a//b/c/./d//index.php", "a/b/c/d/index.php"),
        (".././/tmp/../home//admin/./.ssh", "home/admin/.ssh"),
        ("/a/../../../b", "b"),
        ("/v2///products/123//./../456", "v2/products/456"),
    ],
)
def test_normalize_path(path: str, expected: str) -> None:
    """Test normalization of representative paths."""
    assert normalize_path(path) == expected


@pytest.mark.parametrize("path", SAMPLE_PATHS)
def test_normalized_path_shape(path: str) -> None:
    """Normalized paths have no empty or dot segments and no leading slash."""
    normalized = normalize_path(path)

    assert not normalized.startswith("/")
    if normalized:
        for segment in normalized.split("/"):
            assert segment not in ("", ".", "..")


@pytest.mark.parametrize("path", SAMPLE_PATHS)
def test_normalize_path_idempotent(path: str) -> None:
    """Normalizing twice gives the same result."""
    assert normalize_path(normalize_path(path)) == normalize_path(path)


def test_dot_prefixed_names_are_kept() -> None:
    """Only exact ``.`` and ``..`` segments are special."""
    assert normalize_path("/.hidden/..dots../x") == ".hidden/..dots../x"


def test_split_path() -> None:
    """Test splitting normalized paths into segments."""
    assert split_path("") == []
    assert split_path("a") == ["a"]
    assert split_path("a/b/c") == ["a", "b", "c"]
