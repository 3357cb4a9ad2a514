"""Fuzzy search across multiple documentation sources."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import NamedTuple, Protocol, runtime_checkable

from dsearch import fuzzy
from dsearch.errors import NoMatchingSourcesError, NoResultsError
from dsearch.models import Candidate, Index, SearchResult

logger = logging.getLogger(__name__)

# Searching more sources than this without a filter produces an advisory warning.
WARN_SOURCE_THRESHOLD = 10

# Raw fuzzy scores are divided by this to get the reported score.
SCORE_SCALE = 100.0


@runtime_checkable
class CandidateSource(Protocol):
    """Anything that can supply searchable entries tagged with its id."""

    @property
    def source_id(self) -> str:
        """Identifier used in search filters and results."""
        ...

    def list_candidates(self) -> Sequence[Candidate]:
        """Return every searchable entry of the source."""
        ...


class IndexSource:
    """Candidate source backed by a DevDocs index."""

    def __init__(self, source_id: str, index: Index) -> None:
        """Initialise the source.

        Args:
            source_id: Slug of the installed document.
            index: Loaded search index.
        """
        self._source_id = source_id
        self._index = index
        self._candidates = tuple(Candidate(entry=entry, source_id=source_id) for entry in index.entries)

    @property
    def source_id(self) -> str:
        """Slug of the installed document."""
        return self._source_id

    @property
    def index(self) -> Index:
        """Index the candidates were built from."""
        return self._index

    def list_candidates(self) -> Sequence[Candidate]:
        """Return the index entries tagged with the slug."""
        return self._candidates


class SearchResponse(NamedTuple):
    """Ranked results of one search plus an optional advisory warning."""

    results: list[SearchResult]
    warning: str | None = None


class SearchEngine:
    """Ranks entries from a fixed set of sources against fuzzy queries.

    The engine never changes after construction, so ``search`` can be called
    concurrently without locking.
    """

    def __init__(self, sources: Iterable[CandidateSource], limit: int = 10) -> None:
        """Initialise the engine.

        Args:
            sources: Candidate sources; their ids must be unique.
            limit: Maximum number of results per search. Zero or less makes
                every search return no results.

        Raises:
            ValueError: If two sources share an id.
        """
        sources_by_id: dict[str, CandidateSource] = {}
        for source in sources:
            if source.source_id in sources_by_id:
                msg = f"Duplicate source id: {source.source_id}"
                raise ValueError(msg)
            sources_by_id[source.source_id] = source
        self._sources = sources_by_id
        self.limit = limit

    @classmethod
    def from_indices(cls, indices: Mapping[str, Index], limit: int = 10) -> "SearchEngine":
        """Build an engine from loaded DevDocs indices keyed by slug.

        Args:
            indices: Mapping of slug to index.
            limit: Maximum number of results per search.

        Returns:
            SearchEngine instance.
        """
        return cls((IndexSource(slug, index) for slug, index in indices.items()), limit=limit)

    @property
    def source_ids(self) -> list[str]:
        """Ids of all sources, in load order."""
        return list(self._sources)

    def get_source(self, source_id: str) -> CandidateSource | None:
        """Look up a source by id.

        Args:
            source_id: Source identifier.

        Returns:
            The source, or None if it isn't loaded.
        """
        return self._sources.get(source_id)

    def search(self, query: str, source_filter: Iterable[str] | None = None) -> SearchResponse:
        """Search all sources, or only the filtered ones, for a query.

        Args:
            query: Fuzzy query matched against entry names.
            source_filter: Optional source ids to restrict the search to.

        Returns:
            SearchResponse with results sorted by score (descending) then name.

        Raises:
            NoMatchingSourcesError: If no loaded source matches the filter.
            NoResultsError: If there are no candidates or none match the query.
        """
        requested = list(dict.fromkeys(source_filter or ()))
        working_set = self._select_sources(requested)
        if not working_set:
            if requested:
                msg = f"no matching docs found for: {', '.join(requested)}"
            else:
                msg = "no matching docs found"
            raise NoMatchingSourcesError(msg)

        warning = None
        if len(working_set) > WARN_SOURCE_THRESHOLD and not requested:
            warning = f"Searching across {len(working_set)} docs. Use -d <doc> for faster results."

        if self.limit <= 0:
            return SearchResponse(results=[], warning=warning)

        candidates = [candidate for source in working_set for candidate in source.list_candidates()]
        if not candidates:
            msg = f"no results found for {query!r}"
            raise NoResultsError(msg)

        matches = fuzzy.find(query, (candidate.entry.name for candidate in candidates))
        if not matches:
            msg = f"no results found for {query!r}"
            raise NoResultsError(msg)

        results = [SearchResult.from_candidate(candidates[m.index], m.score / SCORE_SCALE) for m in matches]
        results.sort(key=lambda result: (-result.score, result.name))

        logger.debug(
            "Query %r matched %d of %d entries across %d sources",
            query,
            len(results),
            len(candidates),
            len(working_set),
        )
        return SearchResponse(results=results[: self.limit], warning=warning)

    def _select_sources(self, requested: list[str]) -> list[CandidateSource]:
        """Resolve filter ids to sources.

        Args:
            requested: Deduplicated filter ids, empty for no filter.

        Returns:
            All sources without a filter, else the known ones in filter order.
        """
        if not requested:
            return list(self._sources.values())
        return [self._sources[source_id] for source_id in requested if source_id in self._sources]
