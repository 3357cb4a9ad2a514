"""Read-only access to Dash docsets as an additional search source."""

import logging
import plistlib
import re
import sqlite3
from collections.abc import Callable, Generator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from dsearch.errors import ContentNotFoundError
from dsearch.models import Candidate, Entry

logger = logging.getLogger(__name__)

# Core Data indexes with fewer searchable nodes are treated as incomplete.
MIN_COREDATA_ENTRIES = 10

COREDATA_TYPES = {
    0: "Guide",
    1: "Package",
    2: "Topic",
    3: "Class",
    4: "Method",
    5: "Property",
    6: "Function",
}

DASH_ENTRY_PREFIX = re.compile(r"<dash_entry_[^>]*>")


class SchemaKind(str, Enum):
    """How a docset's entries are enumerated."""

    STANDARD = "standard"
    COREDATA = "coredata"
    FILES = "files"


@dataclass
class Docset:
    """A Dash documentation bundle (``*.docset``)."""

    path: Path
    name: str
    identifier: str = ""
    version: str = "-"
    schema: SchemaKind = SchemaKind.FILES
    _candidates: tuple[Candidate, ...] = field(default=(), init=False, repr=False, compare=False)

    @property
    def source_id(self) -> str:
        """Identifier used in search filters: the folder name without ``.docset``."""
        return self.path.name.removesuffix(".docset")

    @property
    def index_path(self) -> Path:
        """Location of the SQLite search index."""
        return self.path / "Contents" / "Resources" / "docSet.dsidx"

    @property
    def documents_path(self) -> Path:
        """Folder holding the HTML pages."""
        return self.path / "Contents" / "Resources" / "Documents"

    @classmethod
    def load(cls, path: Path) -> "Docset":
        """Read a docset's metadata, detect its index schema and load its entries.

        Args:
            path: Path to the ``.docset`` folder.

        Returns:
            Docset instance.
        """
        docset = cls(path=path, name=path.name.removesuffix(".docset"))
        docset._read_info_plist()
        docset.schema = docset._detect_schema()
        docset._candidates = docset._load_candidates()
        logger.debug(
            "Loaded docset %s (%s schema, %d entries)", docset.name, docset.schema.value, len(docset._candidates)
        )
        return docset

    def _read_info_plist(self) -> None:
        """Fill name, identifier and version from ``Info.plist`` when present."""
        plist_path = self.path / "Contents" / "Info.plist"
        try:
            info = plistlib.loads(plist_path.read_bytes())
        except (OSError, plistlib.InvalidFileException, ValueError) as e:
            logger.debug("No usable Info.plist in %s: %s", self.path, e)
            return

        self.name = str(info.get("CFBundleName") or info.get("DocSetPlatformFamily") or self.name)
        self.identifier = str(info.get("CFBundleIdentifier") or "")
        self.version = str(info.get("CFBundleVersion") or info.get("CFBundleShortVersionString") or "-")

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for read-only index connections.

        Yields:
            SQLite connection.
        """
        conn = sqlite3.connect(f"{self.index_path.resolve().as_uri()}?mode=ro", uri=True)
        try:
            yield conn
        finally:
            conn.close()

    def _detect_schema(self) -> SchemaKind:
        """Pick how entries are enumerated.

        Returns:
            STANDARD for a ``searchIndex`` table, COREDATA for a populated
            ``ZNODE`` table, FILES otherwise.
        """
        if not self.index_path.is_file():
            return SchemaKind.FILES

        try:
            with self._get_connection() as conn:
                tables = {
                    row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
                }
                if "searchIndex" in tables:
                    return SchemaKind.STANDARD
                if "ZNODE" in tables:
                    row = conn.execute("SELECT COUNT(*) FROM ZNODE WHERE ZKISSEARCHABLE=1").fetchone()
                    count = int(row[0]) if row else 0
                    if count >= MIN_COREDATA_ENTRIES:
                        return SchemaKind.COREDATA
                    logger.warning(
                        "%s has only %d indexed entries, scanning the file system instead", self.name, count
                    )
        except sqlite3.Error as e:
            logger.warning("Could not read index of %s: %s", self.name, e)

        return SchemaKind.FILES

    def _load_candidates(self) -> tuple[Candidate, ...]:
        """Read every entry of the docset.

        Returns:
            Entries tagged with the source id; empty if the index is unreadable.
        """
        handlers: dict[SchemaKind, Callable[[], list[Entry]]] = {
            SchemaKind.STANDARD: self._standard_entries,
            SchemaKind.COREDATA: self._coredata_entries,
            SchemaKind.FILES: self._file_entries,
        }
        try:
            entries = handlers[self.schema]()
        except sqlite3.Error as e:
            logger.warning("Could not read entries of %s: %s", self.name, e)
            entries = []
        return tuple(Candidate(entry=entry, source_id=self.source_id) for entry in entries)

    def list_candidates(self) -> Sequence[Candidate]:
        """Return every entry of the docset, tagged with its source id."""
        return self._candidates

    @property
    def entry_count(self) -> int:
        """Number of searchable entries."""
        return len(self._candidates)

    def _standard_entries(self) -> list[Entry]:
        """Read the ``searchIndex`` table, dropping ``<dash_entry_*>`` path prefixes."""
        entries = []
        with self._get_connection() as conn:
            for name, entry_type, raw_path in conn.execute("SELECT name, type, path FROM searchIndex"):
                path = DASH_ENTRY_PREFIX.sub("", raw_path or "")
                if name and path:
                    entries.append(Entry(name=name, path=path, type=entry_type or ""))
        return entries

    def _coredata_entries(self) -> list[Entry]:
        """Read searchable ``ZNODE`` rows of a Core Data index."""
        entries = []
        with self._get_connection() as conn:
            rows = conn.execute("SELECT Z_PK, ZKNAME, ZKDOCUMENTTYPE FROM ZNODE WHERE ZKISSEARCHABLE=1")
            for pk, name, doc_type in rows:
                if name:
                    entries.append(
                        Entry(
                            name=name,
                            path=f"index.html#node-{pk}",
                            type=COREDATA_TYPES.get(doc_type, "Unknown"),
                        )
                    )
        return entries

    def _file_entries(self) -> list[Entry]:
        """List the HTML pages under Documents, named by file stem."""
        if not self.documents_path.is_dir():
            return []
        return [
            Entry(
                name=file_path.stem,
                path=file_path.relative_to(self.documents_path).as_posix(),
                type="File",
            )
            for file_path in sorted(self.documents_path.rglob("*.html"))
            if file_path.is_file()
        ]

    def load_content(self, path: str) -> bytes:
        """Read the HTML page an entry points to.

        Args:
            path: Entry path relative to the Documents folder.

        Returns:
            Raw HTML bytes.

        Raises:
            ContentNotFoundError: If the page does not exist inside the docset.
        """
        page = path.split("#", 1)[0]
        documents = self.documents_path.resolve()
        file_path = (documents / page).resolve()
        if not file_path.is_relative_to(documents) or not file_path.is_file():
            msg = f"Documentation file not found: {page}"
            raise ContentNotFoundError(msg)
        return file_path.read_bytes()


def discover(base_dir: Path) -> list[Docset]:
    """Find all docsets in a directory.

    Args:
        base_dir: Directory containing ``*.docset`` folders.

    Returns:
        List of loaded docsets; unreadable ones are skipped.
    """
    if not base_dir.is_dir():
        return []

    docsets = []
    for path in sorted(base_dir.iterdir()):
        if not path.is_dir() or path.suffix != ".docset":
            continue
        try:
            docsets.append(Docset.load(path))
        except OSError as e:
            logger.warning("Skipping %s: %s", path.name, e)
    return docsets
