"""Resolution of search results to their stored HTML content."""

from collections.abc import Callable, Mapping

from dsearch.errors import ContentNotFoundError
from dsearch.models import SearchResult

ContentLoader = Callable[[str], bytes]


class ContentResolver:
    """Maps a (source id, path) pair to raw HTML using per-source loaders."""

    def __init__(self, loaders: Mapping[str, ContentLoader]) -> None:
        """Initialise the resolver.

        Args:
            loaders: Mapping of source id to a callable returning the raw
                HTML stored at a path of that source.
        """
        self._loaders = dict(loaders)

    def load(self, source_id: str, path: str) -> bytes:
        """Load the raw HTML stored for a source and path.

        Args:
            source_id: Source the entry came from.
            path: Entry path, possibly with an anchor fragment.

        Returns:
            Raw HTML bytes.

        Raises:
            ContentNotFoundError: If the source is unknown or holds no
                content at the path.
        """
        loader = self._loaders.get(source_id)
        if loader is None:
            msg = f"No content source registered for {source_id!r}"
            raise ContentNotFoundError(msg)
        try:
            return loader(path)
        except ContentNotFoundError:
            raise
        except OSError as e:
            msg = f"Could not read content {path!r} of {source_id!r}: {e}"
            raise ContentNotFoundError(msg) from e

    def resolve(self, result: SearchResult) -> bytes:
        """Load the page a search result points to.

        Args:
            result: Search result.

        Returns:
            Raw HTML bytes.

        Raises:
            ContentNotFoundError: If the page cannot be loaded.
        """
        return self.load(result.source_id, result.path)
