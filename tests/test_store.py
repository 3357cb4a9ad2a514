"""Tests for the filesystem document store."""

import json
from pathlib import Path

import pytest

from dsearch.errors import ContentNotFoundError, StoreError
from dsearch.models import Doc, Entry, Index
from dsearch.store import DocumentStore


@pytest.fixture
def store(tmp_path: Path) -> DocumentStore:
    """Create a store in a temporary directory.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        DocumentStore instance.
    """
    return DocumentStore(tmp_path / "docs", tmp_path / "cache")


@pytest.fixture
def manifest() -> list[Doc]:
    """Create a catalog manifest.

    Returns:
        List with one React doc.
    """
    return [Doc(name="React", slug="react", release="18.2.0", mtime=1700000000, db_size=2048)]


@pytest.fixture
def index() -> Index:
    """Create a small search index.

    Returns:
        Index with two entries.
    """
    return Index(
        entries=(
            Entry(name="useState", path="reference/react/usestate", type="Hooks"),
            Entry(name="useEffect", path="reference/react/useeffect#usage", type="Hooks"),
        )
    )


@pytest.fixture
def installed(store: DocumentStore, manifest: list[Doc], index: Index) -> DocumentStore:
    """Install the React doc into the store.

    Returns:
        The store with React installed.
    """
    db = {
        "reference/react/usestate": "<h1>useState</h1>",
        "reference/react/useeffect": "<h1>useEffect</h1>",
    }
    store.install("react", index, db, manifest)
    return store


def test_install_writes_layout(installed: DocumentStore) -> None:
    """Test installing writes index, metadata and content files."""
    doc_dir = installed.docs_dir / "react"

    assert (doc_dir / "index.json").is_file()
    assert (doc_dir / "meta.json").is_file()
    assert (doc_dir / "content" / "reference" / "react" / "usestate.html").is_file()
    assert json.loads((doc_dir / "meta.json").read_text())["mtime"] == 1700000000


def test_load_index(installed: DocumentStore, index: Index) -> None:
    """Test the stored index loads back unchanged."""
    assert installed.load_index("react") == index


def test_load_meta(installed: DocumentStore) -> None:
    """Test install metadata is recorded from the manifest."""
    meta = installed.load_meta("react")

    assert meta is not None
    assert meta.slug == "react"
    assert meta.db_size == 2048


def test_load_meta_missing(store: DocumentStore) -> None:
    """Test metadata of a doc that isn't installed."""
    assert store.load_meta("react") is None


def test_load_content(installed: DocumentStore) -> None:
    """Test loading stored HTML by entry path."""
    assert installed.load_content("react", "reference/react/usestate") == b"<h1>useState</h1>"


def test_load_content_ignores_fragment(installed: DocumentStore) -> None:
    """Test the anchor of an entry path is dropped when loading content."""
    assert installed.load_content("react", "reference/react/useeffect#usage") == b"<h1>useEffect</h1>"


def test_load_content_missing(installed: DocumentStore) -> None:
    """Test loading a page that was never stored."""
    with pytest.raises(ContentNotFoundError):
        installed.load_content("react", "reference/react/missing")


@pytest.mark.parametrize("path", ["../../etc/passwd", "/etc/passwd", "a\\b", ""])
def test_load_content_rejects_unsafe_paths(installed: DocumentStore, path: str) -> None:
    """Test paths escaping the content directory are refused."""
    with pytest.raises(ContentNotFoundError):
        installed.load_content("react", path)


def test_install_skips_unsafe_content_paths(store: DocumentStore, manifest: list[Doc], index: Index) -> None:
    """Test unsafe keys in the content database are not written."""
    store.install("react", index, {"../escape": "<p>bad</p>", "ok": "<p>ok</p>"}, manifest)

    assert not (store.docs_dir / "react" / "escape.html").exists()
    assert store.load_content("react", "ok") == b"<p>ok</p>"


def test_install_unknown_slug(store: DocumentStore, manifest: list[Doc], index: Index) -> None:
    """Test installing a doc missing from the manifest."""
    with pytest.raises(StoreError, match="vue"):
        store.install("vue", index, {}, manifest)


def test_load_index_missing(store: DocumentStore) -> None:
    """Test loading the index of a doc that isn't installed."""
    with pytest.raises(StoreError):
        store.load_index("react")


@pytest.mark.parametrize("content", ["[]", '"index"', '{"entries": 5}', '{"types": [1]}'])
def test_load_index_unexpected_shape(installed: DocumentStore, content: str) -> None:
    """Test an index.json that isn't an index object raises StoreError."""
    (installed.docs_dir / "react" / "index.json").write_text(content, encoding="utf-8")

    with pytest.raises(StoreError, match="Failed to load index for react"):
        installed.load_index("react")


def test_list_installed_sorted(store: DocumentStore, manifest: list[Doc], index: Index) -> None:
    """Test installed slugs are listed alphabetically."""
    manifest = [*manifest, Doc(name="Go", slug="go", mtime=1)]
    store.install("react", index, {}, manifest)
    store.install("go", index, {}, manifest)

    assert store.list_installed() == ["go", "react"]
    assert store.is_installed("go")
    assert not store.is_installed("vue")


def test_list_installed_without_docs_dir(store: DocumentStore) -> None:
    """Test listing before anything has been installed."""
    assert store.list_installed() == []


def test_uninstall(installed: DocumentStore) -> None:
    """Test removing an installed doc."""
    installed.uninstall("react")

    assert not installed.is_installed("react")
    assert installed.list_installed() == []


def test_uninstall_not_installed(store: DocumentStore) -> None:
    """Test removing a doc that isn't installed."""
    with pytest.raises(StoreError, match="not installed"):
        store.uninstall("react")


def test_manifest_cache(store: DocumentStore, manifest: list[Doc]) -> None:
    """Test the catalog manifest is cached and read back."""
    assert store.load_manifest() is None

    store.save_manifest(manifest)

    assert store.load_manifest() == manifest


def test_corrupt_manifest_cache(store: DocumentStore) -> None:
    """Test an unreadable cache counts as no cache."""
    store.cache_dir.mkdir(parents=True)
    store.manifest_path.write_text("{not json")

    assert store.load_manifest() is None
