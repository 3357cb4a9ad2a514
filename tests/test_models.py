"""Tests for data models."""

from datetime import datetime

import pytest

from dsearch.models import Candidate, Doc, Entry, Index, Meta, SearchResult


def test_entry_requires_name_and_path() -> None:
    """Test entries without a name or path are rejected."""
    with pytest.raises(ValueError, match="name"):
        Entry(name="", path="a/b")
    with pytest.raises(ValueError, match="path"):
        Entry(name="useState", path="")


def test_index_from_dict_skips_invalid_entries() -> None:
    """Test parsing index.json drops entries missing required fields."""
    data = {
        "entries": [
            {"name": "useState", "path": "reference/react/usestate", "type": "Hooks"},
            {"name": "", "path": "nowhere"},
            {"name": "broken"},
            "not-a-dict",
        ],
        "types": [{"name": "Hooks", "count": 1, "slug": "hooks"}],
    }

    index = Index.from_dict(data)

    assert [entry.name for entry in index.entries] == ["useState"]
    assert index.types[0].count == 1


def test_index_to_dict_round_trip() -> None:
    """Test an index survives serialisation."""
    index = Index(entries=(Entry(name="map", path="array#map", type="Array"),))

    assert Index.from_dict(index.to_dict()) == index


def test_search_result_from_candidate() -> None:
    """Test a result copies the entry and source of its candidate."""
    candidate = Candidate(entry=Entry(name="useState", path="a/b", type="Hook"), source_id="react")

    result = SearchResult.from_candidate(candidate, 0.42)

    assert result.to_dict() == {
        "name": "useState",
        "path": "a/b",
        "type": "Hook",
        "source_id": "react",
        "score": 0.42,
    }
    assert result.entry == candidate.entry


def test_doc_display_version() -> None:
    """Test the release is combined with the version label."""
    assert Doc(name="React", slug="react~18", release="18.2.0", version="18").display_version == "18.2.0 (18)"
    assert Doc(name="Go", slug="go", release="1.22").display_version == "1.22"


def test_doc_from_dict_tolerates_missing_fields() -> None:
    """Test optional manifest fields default to empty values."""
    doc = Doc.from_dict({"name": "Python", "slug": "python~3.12", "mtime": 1700000000})

    assert doc.slug == "python~3.12"
    assert doc.mtime == 1700000000
    assert doc.db_size == 0
    assert doc.alias == ""


def test_meta_round_trip() -> None:
    """Test install metadata survives serialisation."""
    meta = Meta(slug="react", mtime=123, db_size=456, installed=datetime(2024, 5, 1, 12, 30))

    restored = Meta.from_dict(meta.to_dict())

    assert restored == meta
