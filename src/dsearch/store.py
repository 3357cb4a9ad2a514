"""Filesystem storage of installed DevDocs documentation."""

import json
import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Any

from dsearch.errors import ContentNotFoundError, StoreError
from dsearch.models import Doc, Index, Meta

logger = logging.getLogger(__name__)


def _is_safe_path(path: str) -> bool:
    """Return True if a content key stays inside the content directory."""
    if not path or "\\" in path:
        return False
    pure = PurePosixPath(path)
    return not pure.is_absolute() and ".." not in pure.parts


def _strip_fragment(path: str) -> str:
    """Drop a trailing #fragment from an entry path."""
    return path.split("#", 1)[0]


class DocumentStore:
    """Manages installed documentation under a data directory.

    Each installed doc lives in ``<docs_dir>/<slug>/`` as ``index.json``,
    ``meta.json`` and one ``content/<path>.html`` file per page. The catalog
    manifest is cached in ``<cache_dir>/manifest.json``.
    """

    def __init__(self, docs_dir: Path, cache_dir: Path) -> None:
        """Initialise the store.

        Args:
            docs_dir: Directory holding one sub-directory per installed doc.
            cache_dir: Directory for the cached manifest.
        """
        self.docs_dir = docs_dir
        self.cache_dir = cache_dir

    @property
    def manifest_path(self) -> Path:
        """Location of the cached catalog manifest."""
        return self.cache_dir / "manifest.json"

    def _doc_dir(self, slug: str) -> Path:
        """Directory of an installed doc.

        Args:
            slug: Doc slug.

        Returns:
            Path below the docs directory.

        Raises:
            StoreError: If the slug is not a single safe path component.
        """
        if not _is_safe_path(slug) or "/" in slug:
            msg = f"Invalid doc slug: {slug!r}"
            raise StoreError(msg)
        return self.docs_dir / slug

    @staticmethod
    def _write_json(path: Path, data: Any) -> None:
        """Write data as indented JSON.

        Args:
            path: Target file.
            data: JSON serialisable value.
        """
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    @staticmethod
    def _read_json(path: Path) -> Any:
        """Read and decode a JSON file.

        Args:
            path: Source file.

        Returns:
            Decoded value.
        """
        return json.loads(path.read_text(encoding="utf-8"))

    def install(self, slug: str, index: Index, db: dict[str, str], manifest: list[Doc]) -> Meta:
        """Write a documentation set to disk.

        Args:
            slug: Doc slug, e.g. ``react~18``.
            index: Search index of the doc.
            db: Mapping of content path to HTML.
            manifest: Catalog manifest, used for mtime and size.

        Returns:
            Meta record of the installed doc.

        Raises:
            StoreError: If the slug is not in the manifest or writing fails.
        """
        doc = next((item for item in manifest if item.slug == slug), None)
        if doc is None:
            msg = f"Doc {slug} not found in manifest"
            raise StoreError(msg)

        doc_dir = self._doc_dir(slug)
        content_dir = doc_dir / "content"
        try:
            content_dir.mkdir(parents=True, exist_ok=True)
            self._write_json(doc_dir / "index.json", index.to_dict())

            written = 0
            for path, html in db.items():
                if not _is_safe_path(path):
                    logger.warning("Skipping unsafe content path in %s: %s", slug, path)
                    continue
                content_file = content_dir / f"{path}.html"
                content_file.parent.mkdir(parents=True, exist_ok=True)
                content_file.write_text(html, encoding="utf-8")
                written += 1

            meta = Meta(slug=slug, mtime=doc.mtime, db_size=doc.db_size)
            self._write_json(doc_dir / "meta.json", meta.to_dict())
        except OSError as e:
            msg = f"Failed to install {slug}: {e}"
            raise StoreError(msg) from e

        logger.info("Stored %s: %d entries, %d pages", slug, len(index.entries), written)
        return meta

    def load_index(self, slug: str) -> Index:
        """Load the search index of an installed doc.

        Args:
            slug: Doc slug.

        Returns:
            Index instance.

        Raises:
            StoreError: If the index is missing or cannot be decoded.
        """
        index_path = self._doc_dir(slug) / "index.json"
        try:
            data = self._read_json(index_path)
            if not isinstance(data, dict):
                msg = f"Failed to load index for {slug}: expected a JSON object"
                raise StoreError(msg)
            return Index.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            msg = f"Failed to load index for {slug}: {e}"
            raise StoreError(msg) from e

    def load_meta(self, slug: str) -> Meta | None:
        """Load the install metadata of a doc.

        Args:
            slug: Doc slug.

        Returns:
            Meta instance or None if missing or unreadable.
        """
        meta_path = self._doc_dir(slug) / "meta.json"
        try:
            return Meta.from_dict(self._read_json(meta_path))
        except (OSError, ValueError, TypeError):
            return None

    def load_content(self, slug: str, path: str) -> bytes:
        """Load the stored HTML for an entry path.

        Args:
            slug: Doc slug.
            path: Entry path; an anchor fragment is ignored.

        Returns:
            Raw HTML bytes.

        Raises:
            ContentNotFoundError: If no content is stored at the path.
        """
        page = _strip_fragment(path)
        if not _is_safe_path(page):
            msg = f"Invalid content path: {path!r}"
            raise ContentNotFoundError(msg)

        content_path = self._doc_dir(slug) / "content" / f"{page}.html"
        try:
            return content_path.read_bytes()
        except OSError as e:
            msg = f"No content for {path!r} in {slug}"
            raise ContentNotFoundError(msg) from e

    def is_installed(self, slug: str) -> bool:
        """Check whether a doc is installed.

        Args:
            slug: Doc slug.

        Returns:
            True if the doc directory exists.
        """
        try:
            return self._doc_dir(slug).is_dir()
        except StoreError:
            return False

    def list_installed(self) -> list[str]:
        """Return the slugs of all installed docs, sorted."""
        if not self.docs_dir.is_dir():
            return []
        return sorted(path.name for path in self.docs_dir.iterdir() if path.is_dir())

    def uninstall(self, slug: str) -> None:
        """Remove an installed doc.

        Args:
            slug: Doc slug.

        Raises:
            StoreError: If the doc is not installed or cannot be removed.
        """
        doc_dir = self._doc_dir(slug)
        if not doc_dir.is_dir():
            msg = f"Doc '{slug}' is not installed"
            raise StoreError(msg)
        try:
            shutil.rmtree(doc_dir)
        except OSError as e:
            msg = f"Failed to uninstall {slug}: {e}"
            raise StoreError(msg) from e

    def save_manifest(self, manifest: list[Doc]) -> None:
        """Cache the catalog manifest.

        Args:
            manifest: Docs listed by the catalog.
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._write_json(self.manifest_path, [doc.to_dict() for doc in manifest])

    def load_manifest(self) -> list[Doc] | None:
        """Load the cached catalog manifest.

        Returns:
            List of Doc instances, or None if nothing usable is cached.
        """
        try:
            data = self._read_json(self.manifest_path)
        except (OSError, ValueError):
            return None
        if not isinstance(data, list):
            return None
        return [Doc.from_dict(item) for item in data if isinstance(item, dict)]
