"""Tests for content resolution."""

import pytest

from dsearch.content import ContentResolver
from dsearch.errors import ContentNotFoundError
from dsearch.models import SearchResult


def test_resolve_uses_loader_of_result_source() -> None:
    """Test a result is resolved through its own source's loader."""
    resolver = ContentResolver(
        {
            "react": lambda path: f"<p>react {path}</p>".encode(),
            "vue": lambda path: f"<p>vue {path}</p>".encode(),
        }
    )
    result = SearchResult(name="useState", path="a/b", type="Hook", source_id="react", score=0.5)

    assert resolver.resolve(result) == b"<p>react a/b</p>"


def test_unknown_source_raises() -> None:
    """Test resolving content of a source without a loader."""
    resolver = ContentResolver({})

    with pytest.raises(ContentNotFoundError, match="react"):
        resolver.load("react", "a/b")


def test_os_errors_are_wrapped() -> None:
    """Test file system errors surface as ContentNotFoundError."""

    def failing_loader(path: str) -> bytes:
        raise FileNotFoundError(path)

    resolver = ContentResolver({"react": failing_loader})

    with pytest.raises(ContentNotFoundError):
        resolver.load("react", "missing")
