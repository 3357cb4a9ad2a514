"""Data models for installed documentation and search results."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entry:
    """A single searchable unit within one document's index."""

    name: str
    path: str
    type: str = ""

    def __post_init__(self) -> None:
        """Validate required fields.

        Raises:
            ValueError: If name or path is empty.
        """
        if not self.name:
            msg = "Entry name must not be empty"
            raise ValueError(msg)
        if not self.path:
            msg = f"Entry path must not be empty (entry {self.name!r})"
            raise ValueError(msg)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        """Build an entry from its JSON representation.

        Args:
            data: Mapping with ``name``, ``path`` and ``type`` keys.

        Returns:
            Entry instance.
        """
        return cls(
            name=str(data.get("name") or ""),
            path=str(data.get("path") or ""),
            type=str(data.get("type") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        """Return the JSON representation."""
        return {"name": self.name, "path": self.path, "type": self.type}


@dataclass(frozen=True)
class EntryType:
    """Category summary of an index (informational only)."""

    name: str
    count: int
    slug: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntryType":
        """Build an entry type from its JSON representation.

        Args:
            data: Mapping with ``name``, ``count`` and ``slug`` keys.

        Returns:
            EntryType instance.
        """
        return cls(
            name=str(data.get("name") or ""),
            count=int(data.get("count") or 0),
            slug=str(data.get("slug") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        return {"name": self.name, "count": self.count, "slug": self.slug}


@dataclass(frozen=True)
class Index:
    """Searchable contents of one installed document."""

    entries: tuple[Entry, ...] = ()
    types: tuple[EntryType, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Index":
        """Parse the ``index.json`` structure.

        Entries without a name or path are skipped.

        Args:
            data: Decoded ``index.json`` content.

        Returns:
            Index instance.
        """
        entries = []
        skipped = 0
        for raw in data.get("entries") or []:
            try:
                entries.append(Entry.from_dict(raw))
            except (ValueError, AttributeError):
                skipped += 1
        if skipped:
            logger.warning("Skipped %d invalid index entries", skipped)

        types = tuple(EntryType.from_dict(raw) for raw in data.get("types") or [])
        return cls(entries=tuple(entries), types=types)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "types": [entry_type.to_dict() for entry_type in self.types],
        }


@dataclass(frozen=True)
class Candidate:
    """An entry tagged with the source it was loaded from."""

    entry: Entry
    source_id: str


@dataclass(frozen=True)
class SearchResult:
    """A ranked search hit."""

    name: str
    path: str
    type: str
    source_id: str
    score: float

    @classmethod
    def from_candidate(cls, candidate: Candidate, score: float) -> "SearchResult":
        """Create a result for a matched candidate.

        Args:
            candidate: The matched candidate.
            score: Normalised relevance score.

        Returns:
            SearchResult instance.
        """
        entry = candidate.entry
        return cls(
            name=entry.name,
            path=entry.path,
            type=entry.type,
            source_id=candidate.source_id,
            score=score,
        )

    @property
    def entry(self) -> Entry:
        """The index entry this result was ranked from."""
        return Entry(name=self.name, path=self.path, type=self.type)

    def to_dict(self) -> dict[str, Any]:
        """Return the machine-readable representation used for JSON output."""
        return {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "source_id": self.source_id,
            "score": self.score,
        }


@dataclass
class Doc:
    """A documentation set listed in the DevDocs manifest."""

    name: str
    slug: str
    type: str = ""
    version: str = ""
    release: str = ""
    mtime: int = 0
    db_size: int = 0
    attribution: str = ""
    alias: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Doc":
        """Build a catalog entry from the DevDocs manifest.

        Args:
            data: One element of ``docs.json``.

        Returns:
            Doc instance.
        """
        return cls(
            name=str(data.get("name") or ""),
            slug=str(data.get("slug") or ""),
            type=str(data.get("type") or ""),
            version=str(data.get("version") or ""),
            release=str(data.get("release") or ""),
            mtime=int(data.get("mtime") or 0),
            db_size=int(data.get("db_size") or 0),
            attribution=str(data.get("attribution") or ""),
            alias=str(data.get("alias") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        return {
            "name": self.name,
            "slug": self.slug,
            "type": self.type,
            "version": self.version,
            "release": self.release,
            "mtime": self.mtime,
            "db_size": self.db_size,
            "attribution": self.attribution,
            "alias": self.alias,
        }

    @property
    def display_version(self) -> str:
        """Release with the version label in parentheses, if any."""
        if self.version:
            return f"{self.release} ({self.version})"
        return self.release


@dataclass
class Meta:
    """Local metadata recorded when a documentation set is installed."""

    slug: str
    mtime: int
    db_size: int
    installed: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Meta":
        """Build install metadata from ``meta.json``.

        A missing install time defaults to now.

        Args:
            data: Decoded ``meta.json`` content.

        Returns:
            Meta instance.
        """
        installed = data.get("installed")
        return cls(
            slug=str(data.get("slug") or ""),
            mtime=int(data.get("mtime") or 0),
            db_size=int(data.get("db_size") or 0),
            installed=datetime.fromisoformat(installed) if installed else datetime.now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation."""
        return {
            "slug": self.slug,
            "mtime": self.mtime,
            "installed": self.installed.isoformat(),
            "db_size": self.db_size,
        }
