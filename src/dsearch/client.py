"""HTTP client for the DevDocs documentation catalog."""

import logging
from typing import Any

import requests

from dsearch.errors import CatalogError
from dsearch.models import Doc, Index

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_URL = "https://devdocs.io"
DEFAULT_CONTENT_URL = "https://documents.devdocs.io"
DEFAULT_TIMEOUT = 60.0


class DevDocsClient:
    """Fetches the manifest, search indices and content databases from DevDocs."""

    def __init__(
        self,
        manifest_url: str = DEFAULT_MANIFEST_URL,
        content_url: str = DEFAULT_CONTENT_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = "dsearch",
        session: requests.Session | None = None,
    ) -> None:
        """Initialise the client.

        Args:
            manifest_url: Base URL serving ``docs.json``.
            content_url: Base URL serving ``<slug>/index.json`` and ``<slug>/db.json``.
            timeout: Request timeout in seconds.
            user_agent: User-Agent header sent with every request.
            session: Optional requests session to reuse.
        """
        self.manifest_url = manifest_url.rstrip("/")
        self.content_url = content_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _get_json(self, url: str, what: str) -> Any:
        """GET a URL and decode its JSON body.

        Args:
            url: URL to fetch.
            what: Description used in error messages.

        Returns:
            Decoded JSON value.

        Raises:
            CatalogError: On transport errors, non-200 status or invalid JSON.
        """
        logger.debug("Fetching %s from %s", what, url)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            msg = f"Failed to fetch {what}: {e}"
            raise CatalogError(msg) from e
        except ValueError as e:
            msg = f"Invalid JSON in {what}: {e}"
            raise CatalogError(msg) from e

    def fetch_manifest(self) -> list[Doc]:
        """Fetch the list of all available documentation.

        Returns:
            List of Doc instances.
        """
        data = self._get_json(f"{self.manifest_url}/docs.json", "manifest")
        if not isinstance(data, list):
            msg = "Unexpected manifest format"
            raise CatalogError(msg)
        return [Doc.from_dict(item) for item in data if isinstance(item, dict)]

    def fetch_index(self, slug: str) -> Index:
        """Fetch the search index of a doc.

        Args:
            slug: Doc slug.

        Returns:
            Index instance.
        """
        data = self._get_json(f"{self.content_url}/{slug}/index.json", f"index for {slug}")
        if not isinstance(data, dict):
            msg = f"Unexpected index format for {slug}"
            raise CatalogError(msg)
        return Index.from_dict(data)

    def fetch_db(self, slug: str) -> dict[str, str]:
        """Fetch the content database of a doc.

        Args:
            slug: Doc slug.

        Returns:
            Mapping of content path to HTML.
        """
        data = self._get_json(f"{self.content_url}/{slug}/db.json", f"db for {slug}")
        if not isinstance(data, dict):
            msg = f"Unexpected db format for {slug}"
            raise CatalogError(msg)
        return {str(path): str(html) for path, html in data.items()}
