"""Tests for installing DevDocs documentation."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from dsearch.client import DevDocsClient
from dsearch.errors import CatalogError
from dsearch.installer import DevDocsInstaller, parse_doc_slug
from dsearch.models import Doc, Entry, Index
from dsearch.store import DocumentStore


@pytest.fixture
def client() -> Mock:
    """Create a fake catalog client.

    Returns:
        Mock with the DevDocsClient interface.
    """
    client = Mock(spec=DevDocsClient)
    client.fetch_manifest.return_value = [
        Doc(name="React", slug="react", release="18.2.0", mtime=100, db_size=10),
        Doc(name="React", slug="react~17", release="17.0.2", version="17", mtime=50, db_size=8),
    ]
    client.fetch_index.return_value = Index(entries=(Entry(name="useState", path="usestate", type="Hooks"),))
    client.fetch_db.return_value = {"usestate": "<h1>useState</h1>"}
    return client


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
def installer(client: Mock, store: DocumentStore) -> DevDocsInstaller:
    """Create an installer wired to the fake client.

    Returns:
        DevDocsInstaller instance.
    """
    return DevDocsInstaller(client, store)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("react", "react"), ("react@18", "react~18"), ("python~3.12", "python~3.12")],
)
def test_parse_doc_slug(value: str, expected: str) -> None:
    """Test user input is converted to catalog slugs."""
    assert parse_doc_slug(value) == expected


def test_manifest_is_cached(installer: DevDocsInstaller, client: Mock) -> None:
    """Test the manifest is only fetched again on refresh."""
    installer.get_manifest()
    installer.get_manifest()
    assert client.fetch_manifest.call_count == 1

    installer.get_manifest(refresh=True)
    assert client.fetch_manifest.call_count == 2


def test_install(installer: DevDocsInstaller, store: DocumentStore) -> None:
    """Test installing a doc stores its index and content."""
    report = installer.install(["react"])

    assert report.ok
    assert report.installed == ["react"]
    assert store.load_content("react", "usestate") == b"<h1>useState</h1>"


def test_install_versioned_doc(installer: DevDocsInstaller, client: Mock) -> None:
    """Test name@version selects the versioned slug."""
    report = installer.install(["react@17"])

    assert report.installed == ["react~17"]
    client.fetch_index.assert_called_once_with("react~17")


def test_install_skips_up_to_date(installer: DevDocsInstaller, client: Mock) -> None:
    """Test a doc installed from the same catalog revision is skipped."""
    installer.install(["react"])

    report = installer.install(["react"])

    assert report.skipped == ["react"]
    assert client.fetch_db.call_count == 1


def test_install_force(installer: DevDocsInstaller, client: Mock) -> None:
    """Test force reinstalls an up to date doc."""
    installer.install(["react"])

    report = installer.install(["react"], force=True)

    assert report.installed == ["react"]
    assert client.fetch_db.call_count == 2


def test_install_unknown_doc(installer: DevDocsInstaller) -> None:
    """Test unknown docs are reported without stopping other installs."""
    report = installer.install(["vue", "react"])

    assert not report.ok
    assert report.installed == ["react"]
    assert "doc 'vue' not found" in report.failures[0]


def test_install_download_failure(installer: DevDocsInstaller, client: Mock, store: DocumentStore) -> None:
    """Test download errors are recorded as failures."""
    client.fetch_db.side_effect = CatalogError("Failed to fetch db for react: timeout")

    report = installer.install(["react"])

    assert report.installed == []
    assert "timeout" in report.failures[0]
    assert not store.is_installed("react")


def test_uninstall(installer: DevDocsInstaller, store: DocumentStore) -> None:
    """Test removing installed docs."""
    installer.install(["react"])

    report = installer.uninstall(["react", "vue"])

    assert report.removed == ["react"]
    assert report.failures == ["doc 'vue' is not installed"]
    assert not store.is_installed("react")
