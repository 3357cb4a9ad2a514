"""Exception hierarchy for dsearch."""


class DsearchError(Exception):
    """Base class for errors reported to the user."""


class SearchError(DsearchError):
    """Raised when a search cannot produce results."""


class NoMatchingSourcesError(SearchError):
    """Raised when a source filter matches none of the loaded sources."""


class NoResultsError(SearchError):
    """Raised when the candidate pool is empty or nothing matches the query."""


class StoreError(DsearchError):
    """Raised for failures reading or writing installed documentation."""


class ContentNotFoundError(StoreError):
    """Raised when no stored content exists for a source and path."""


class CatalogError(DsearchError):
    """Raised when the remote documentation catalog cannot be read."""
