"""Tests for the DevDocs catalog client."""

from typing import Any
from unittest.mock import Mock

import pytest
import requests

from dsearch.client import DevDocsClient
from dsearch.errors import CatalogError


def make_session(payload: Any) -> Mock:
    """Create a fake requests session returning a JSON payload.

    Args:
        payload: Value returned by ``response.json()``.

    Returns:
        Mock standing in for requests.Session.
    """
    response = Mock()
    response.json.return_value = payload
    session = Mock()
    session.headers = {}
    session.get.return_value = response
    return session


def test_fetch_manifest() -> None:
    """Test the manifest is parsed into Doc records."""
    session = make_session(
        [
            {"name": "React", "slug": "react", "release": "18.2.0", "mtime": 1700000000, "db_size": 1024},
            {"name": "Python", "slug": "python~3.12", "version": "3.12", "release": "3.12.1"},
        ]
    )
    client = DevDocsClient(session=session)

    docs = client.fetch_manifest()

    assert [doc.slug for doc in docs] == ["react", "python~3.12"]
    assert docs[0].mtime == 1700000000
    session.get.assert_called_once_with("https://devdocs.io/docs.json", timeout=60.0)


def test_fetch_index() -> None:
    """Test a doc's search index is fetched from the content host."""
    session = make_session({"entries": [{"name": "useState", "path": "usestate", "type": "Hooks"}], "types": []})
    client = DevDocsClient(content_url="https://docs.example.com/", session=session)

    index = client.fetch_index("react")

    assert [entry.name for entry in index.entries] == ["useState"]
    session.get.assert_called_once_with("https://docs.example.com/react/index.json", timeout=60.0)


def test_fetch_db() -> None:
    """Test a doc's content database is fetched."""
    session = make_session({"usestate": "<h1>useState</h1>"})
    client = DevDocsClient(session=session, timeout=5)

    db = client.fetch_db("react")

    assert db == {"usestate": "<h1>useState</h1>"}
    session.get.assert_called_once_with("https://documents.devdocs.io/react/db.json", timeout=5)


def test_user_agent_header() -> None:
    """Test the configured User-Agent is sent."""
    session = make_session([])

    DevDocsClient(session=session, user_agent="dsearch/1.0")

    assert session.headers["User-Agent"] == "dsearch/1.0"


def test_transport_error() -> None:
    """Test connection errors surface as CatalogError."""
    session = make_session([])
    session.get.side_effect = requests.exceptions.ConnectionError("connection refused")
    client = DevDocsClient(session=session)

    with pytest.raises(CatalogError, match="manifest"):
        client.fetch_manifest()


def test_http_error() -> None:
    """Test non-success status codes surface as CatalogError."""
    session = make_session({})
    session.get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Not Found")
    client = DevDocsClient(session=session)

    with pytest.raises(CatalogError, match="404"):
        client.fetch_index("missing")


def test_invalid_json() -> None:
    """Test undecodable bodies surface as CatalogError."""
    session = make_session(None)
    session.get.return_value.json.side_effect = ValueError("Expecting value")
    client = DevDocsClient(session=session)

    with pytest.raises(CatalogError, match="Invalid JSON"):
        client.fetch_db("react")


@pytest.mark.parametrize(
    ("method", "payload"),
    [("fetch_manifest", {}), ("fetch_index", []), ("fetch_db", [])],
)
def test_unexpected_payload_shape(method: str, payload: Any) -> None:
    """Test JSON of the wrong type is rejected."""
    client = DevDocsClient(session=make_session(payload))
    args = () if method == "fetch_manifest" else ("react",)

    with pytest.raises(CatalogError, match="Unexpected"):
        getattr(client, method)(*args)
