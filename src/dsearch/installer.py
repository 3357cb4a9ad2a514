"""Installation of DevDocs documentation into the local store."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from dsearch.client import DevDocsClient
from dsearch.errors import DsearchError
from dsearch.models import Doc, Meta
from dsearch.store import DocumentStore

logger = logging.getLogger(__name__)


def parse_doc_slug(value: str) -> str:
    """Convert user input such as ``react@18`` to the DevDocs slug ``react~18``.

    Args:
        value: Doc name, optionally with an ``@version`` suffix.

    Returns:
        DevDocs slug.
    """
    parts = value.split("@")
    if len(parts) == 2:
        return f"{parts[0]}~{parts[1]}"
    return value


@dataclass
class InstallReport:
    """Outcome of installing or uninstalling several docs."""

    installed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether every doc was handled without failure."""
        return not self.failures


class DevDocsInstaller:
    """Downloads docs from the DevDocs catalog and stores them locally."""

    def __init__(self, client: DevDocsClient, store: DocumentStore) -> None:
        """Initialise installer with catalog client and store.

        Args:
            client: DevDocsClient used to download docs.
            store: DocumentStore receiving the installed docs.
        """
        self.client = client
        self.store = store

    def get_manifest(self, refresh: bool = False) -> list[Doc]:
        """Return the catalog manifest, fetching and caching it when needed.

        Args:
            refresh: Ignore the cached manifest.

        Returns:
            List of Doc instances.
        """
        if not refresh:
            manifest = self.store.load_manifest()
            if manifest is not None:
                return manifest

        logger.info("Fetching DevDocs manifest...")
        manifest = self.client.fetch_manifest()
        self.store.save_manifest(manifest)
        return manifest

    def install(self, inputs: Iterable[str], force: bool = False) -> InstallReport:
        """Install several docs, continuing past individual failures.

        Args:
            inputs: Doc names as typed by the user (``name`` or ``name@version``).
            force: Reinstall docs that are already up to date.

        Returns:
            InstallReport listing installed, skipped and failed docs.
        """
        report = InstallReport()
        manifest = self.get_manifest()
        docs_by_slug = {doc.slug: doc for doc in manifest}

        for value in inputs:
            slug = parse_doc_slug(value)
            doc = docs_by_slug.get(slug)
            if doc is None:
                report.failures.append(f"doc '{value}' not found in DevDocs catalog")
                continue

            if not force and self.is_up_to_date(doc):
                logger.info("%s is already up to date", slug)
                report.skipped.append(slug)
                continue

            try:
                self.install_doc(doc, manifest)
            except DsearchError as e:
                report.failures.append(f"failed to install {value}: {e}")
                continue
            report.installed.append(slug)

        return report

    def install_doc(self, doc: Doc, manifest: list[Doc]) -> Meta:
        """Download and store one doc.

        Args:
            doc: Manifest record of the doc.
            manifest: Full manifest, passed on to the store.

        Returns:
            Meta record of the installed doc.
        """
        logger.info("Installing %s (%s)...", doc.name, doc.release)
        index = self.client.fetch_index(doc.slug)
        db = self.client.fetch_db(doc.slug)
        meta = self.store.install(doc.slug, index, db, manifest)
        logger.info("Installed %s (%d entries)", doc.name, len(index.entries))
        return meta

    def is_up_to_date(self, doc: Doc) -> bool:
        """Return True if the doc is installed from the same catalog revision."""
        if not self.store.is_installed(doc.slug):
            return False
        meta = self.store.load_meta(doc.slug)
        return meta is not None and meta.mtime == doc.mtime

    def uninstall(self, inputs: Iterable[str]) -> InstallReport:
        """Remove several installed docs.

        Args:
            inputs: Doc names as typed by the user.

        Returns:
            InstallReport listing removed and failed docs.
        """
        report = InstallReport()
        for value in inputs:
            slug = parse_doc_slug(value)
            if not self.store.is_installed(slug):
                report.failures.append(f"doc '{value}' is not installed")
                continue
            try:
                self.store.uninstall(slug)
            except DsearchError as e:
                report.failures.append(f"failed to uninstall {value}: {e}")
                continue
            logger.info("Uninstalled %s", slug)
            report.removed.append(slug)
        return report
