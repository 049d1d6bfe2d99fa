"""Search orchestration.

``SearchOrchestrator`` owns the filter state and decides, for every change,
whether to re-filter what is already loaded or to go back to the remote
catalog. Remote searches are debounced, identical in-flight requests are not
repeated, and each request carries a generation number so that only the
newest one can change what the user sees.

All state lives on one asyncio event loop. Setters are plain synchronous
methods; they must be called from the loop's thread, and in remote mode from
inside a running loop, because they schedule debounce timers on it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from podsearch.core.composer import ResultComposer
from podsearch.core.config import Config, SearchSettings
from podsearch.core.errors import CatalogError, FilterError
from podsearch.core.matching import (
    apply_episode_filters,
    apply_podcast_filters,
    filter_episodes_by_query,
    filter_podcasts_by_query,
    search_all,
    sort_episodes,
    sort_podcasts,
)
from podsearch.core.models import (
    DateParts,
    DiscoveryMode,
    Episode,
    EpisodeWithPodcast,
    Podcast,
    ResultTab,
    SearchCache,
    SearchFilters,
    SearchResultsState,
    SortBy,
)
from podsearch.core.query import parse_query, remote_terms
from podsearch.services.catalog import CatalogClient, PersonSearchOptions, SearchOptions
from podsearch.services.transform import language_code, transform_episodes, transform_feeds

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = "Search failed. Please try again."


class SearchPhase(str, Enum):
    """Where the orchestrator is in its request cycle."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"
    SETTLED = "settled"
    ERRORED = "errored"


class SearchEvent(str, Enum):
    """Kinds of state change fed into the transition function."""

    QUERY_CHANGED = "query_changed"
    REMOTE_FILTERS_CHANGED = "remote_filters_changed"
    LOCAL_FILTERS_CHANGED = "local_filters_changed"
    TAB_CHANGED = "tab_changed"
    FILTERS_CLEARED = "filters_cleared"


@dataclass(frozen=True)
class RemoteRequest:
    """Everything that determines the outcome of one remote search."""

    terms: str
    categories: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    clean: bool = False


def _toggle(values: tuple[str, ...], value: str) -> tuple[str, ...]:
    if value in values:
        return tuple(v for v in values if v != value)
    return (*values, value)


class SearchOrchestrator:
    """Search state machine behind the search screen.

    Args:
        client: Remote catalog. When None or not configured, every search runs
            against the local dataset instead.
        podcasts: Local podcasts for the offline search.
        episodes: Local episodes for the offline search.
        settings: Debounce delays, thresholds and result caps.
        composer: Builds episode projections; defaults to one without
            category labels.
    """

    def __init__(
        self,
        client: CatalogClient | None = None,
        *,
        podcasts: Iterable[Podcast] = (),
        episodes: Iterable[Episode] = (),
        settings: SearchSettings | None = None,
        composer: ResultComposer | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or SearchSettings()
        self._composer = composer or ResultComposer()
        self._local_podcasts = tuple(podcasts)
        self._local_episodes = tuple(
            self._composer.with_podcasts(episodes, self._local_podcasts)
        )

        self._filters = SearchFilters()
        self._active_tab = ResultTab.PODCASTS
        self._results = SearchResultsState()
        self._cache = SearchCache()
        self._cached_request: RemoteRequest | None = None
        self._remote_podcasts: tuple[Podcast, ...] = ()
        self._remote_episodes: tuple[EpisodeWithPodcast, ...] = ()

        self._generation = 0
        self._in_flight: RemoteRequest | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._is_loading = False
        self._error: str | None = None
        self._closed = False

    @classmethod
    def from_config(
        cls, config: Config, client: CatalogClient | None = None, **kwargs: Any
    ) -> SearchOrchestrator:
        """Create an orchestrator with settings and category labels from config."""
        kwargs.setdefault("settings", config.search)
        kwargs.setdefault("composer", ResultComposer(config.categories.labels))
        return cls(client, **kwargs)

    async def __aenter__(self) -> SearchOrchestrator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read-only facade

    @property
    def filters(self) -> SearchFilters:
        return self._filters

    @property
    def results(self) -> SearchResultsState:
        return self._results

    @property
    def active_tab(self) -> ResultTab:
        return self._active_tab

    @property
    def error(self) -> str | None:
        """User-facing message for the last failed search, if any."""
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_pending(self) -> bool:
        """True while a search is waiting out its debounce or in flight."""
        return self._timer is not None or self._is_loading

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cache(self) -> SearchCache:
        return self._cache

    @property
    def is_remote(self) -> bool:
        """True when searches go to the remote catalog."""
        return self._client is not None and self._client.is_configured()

    @property
    def phase(self) -> SearchPhase:
        if self._timer is not None:
            return SearchPhase.DEBOUNCING
        if self._is_loading:
            return SearchPhase.FETCHING
        if self._error:
            return SearchPhase.ERRORED
        if not self._filters.query.strip():
            return SearchPhase.IDLE
        return SearchPhase.SETTLED

    @property
    def active_filter_count(self) -> int:
        """Number of filter groups that differ from their defaults."""
        f = self._filters
        return sum(
            [
                bool(f.categories),
                bool(f.languages),
                f.min_rating > 0,
                f.explicit is not None,
                f.date_from is not None or f.date_to is not None,
                f.discovery_mode is not DiscoveryMode.ALL,
            ]
        )

    # ------------------------------------------------------------------
    # Mutators

    def set_query(self, query: str) -> None:
        if query == self._filters.query:
            return
        self._filters = replace(self._filters, query=query)
        self._transition(SearchEvent.QUERY_CHANGED)

    def submit_query(self, query: str) -> None:
        """Set a finished query.

        Unlike ``set_query``, which follows the user typing, every word counts
        as complete, including the last one.
        """
        stripped = query.strip()
        self.set_query(f"{stripped} " if stripped else "")

    def toggle_category(self, category: str) -> None:
        categories = _toggle(self._filters.categories, category)
        self._filters = replace(self._filters, categories=categories)
        self._transition(SearchEvent.REMOTE_FILTERS_CHANGED)

    def toggle_language(self, language: str) -> None:
        languages = _toggle(self._filters.languages, language)
        self._filters = replace(self._filters, languages=languages)
        self._transition(SearchEvent.REMOTE_FILTERS_CHANGED)

    def set_date_from(self, value: DateParts | None) -> None:
        """Set the start of the date range.

        Raises:
            FilterError: If the value is after the current end date.
        """
        self._filters = replace(self._filters, date_from=value)
        self._transition(SearchEvent.LOCAL_FILTERS_CHANGED)

    def set_date_to(self, value: DateParts | None) -> None:
        """Set the end of the date range.

        Raises:
            FilterError: If the value is before the current start date.
        """
        self._filters = replace(self._filters, date_to=value)
        self._transition(SearchEvent.LOCAL_FILTERS_CHANGED)

    def set_sort_by(self, sort_by: SortBy | str) -> None:
        self._filters = replace(self._filters, sort_by=SortBy(sort_by))
        self._transition(SearchEvent.LOCAL_FILTERS_CHANGED)

    def set_discovery_mode(self, mode: DiscoveryMode | str) -> None:
        self._filters = replace(self._filters, discovery_mode=DiscoveryMode(mode))
        self._transition(SearchEvent.LOCAL_FILTERS_CHANGED)

    def set_explicit(self, explicit: bool | None) -> None:
        """Filter on the explicit flag; None shows everything.

        ``False`` also asks the catalog for family-friendly feeds on the next
        fetch.
        """
        self._filters = replace(self._filters, explicit=explicit)
        self._transition(SearchEvent.LOCAL_FILTERS_CHANGED)

    def set_min_rating(self, rating: float) -> None:
        if rating < 0:
            raise FilterError(f"Minimum rating must not be negative, got {rating}")
        self._filters = replace(self._filters, min_rating=rating)
        self._transition(SearchEvent.LOCAL_FILTERS_CHANGED)

    def set_active_tab(self, tab: ResultTab | str) -> None:
        self._active_tab = ResultTab(tab)
        self._transition(SearchEvent.TAB_CHANGED)

    def clear_filters(self) -> None:
        """Reset all filters to defaults and forget cached remote results."""
        self._filters = SearchFilters()
        self._transition(SearchEvent.FILTERS_CLEARED)

    # ------------------------------------------------------------------
    # Lifecycle

    async def wait_until_settled(self) -> SearchResultsState:
        """Wait until no debounce timer is pending and no request is running."""
        loop = asyncio.get_running_loop()
        while self._timer is not None or self._tasks:
            if self._timer is not None:
                await asyncio.sleep(max(0.0, self._timer.when() - loop.time()))
            else:
                await asyncio.wait(set(self._tasks))
        return self._results

    def close(self) -> None:
        """Stop all pending work. Later responses are ignored."""
        self._closed = True
        self._cancel_timer()
        self._generation += 1
        self._in_flight = None
        self._is_loading = False
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------------------------------------------
    # Transition function

    def _transition(self, event: SearchEvent) -> None:
        """Apply the consequences of one state change.

        Every mutator ends here, so the ordering of side effects is decided in
        one place.
        """
        query = self._filters.query
        logger.debug("Search event %s, query=%r", event.value, query)

        if event is SearchEvent.FILTERS_CLEARED or not query.strip():
            self._reset_remote_state()
            self._recompose()
            return

        if self.is_remote and not self._closed:
            if event in (SearchEvent.QUERY_CHANGED, SearchEvent.REMOTE_FILTERS_CHANGED):
                self._drop_superseded_request()
            if event is SearchEvent.QUERY_CHANGED:
                self._cancel_timer()
                if self._needs_fetch():
                    self._schedule(self._settings.query_debounce_ms)
            elif event is SearchEvent.REMOTE_FILTERS_CHANGED:
                self._cancel_timer()
                self._cache = SearchCache()
                self._cached_request = None
                if self._needs_fetch():
                    self._schedule(self._settings.filter_debounce_ms)

        self._recompose()

    def _reset_remote_state(self) -> None:
        self._cancel_timer()
        # Advancing the generation drops any response still on its way.
        self._generation += 1
        self._in_flight = None
        self._is_loading = False
        self._error = None
        self._cache = SearchCache()
        self._cached_request = None
        self._remote_podcasts = ()
        self._remote_episodes = ()

    def _drop_superseded_request(self) -> None:
        """Forget an in-flight request that no longer matches the query or filters.

        Its response must not land in the cache, whether or not the new state
        needs a fetch of its own.
        """
        in_flight = self._in_flight
        if in_flight is None:
            return
        request = self._current_request()
        # The explicit flag filters locally and does not supersede a request.
        if (in_flight.terms, in_flight.categories, in_flight.languages) == (
            request.terms,
            request.categories,
            request.languages,
        ):
            return
        logger.debug("Dropping superseded search %r", in_flight.terms)
        self._generation += 1
        self._in_flight = None
        self._is_loading = False

    def _current_request(self) -> RemoteRequest:
        return RemoteRequest(
            terms=remote_terms(self._filters.query),
            categories=self._filters.categories,
            languages=self._filters.languages,
            clean=self._filters.explicit is False,
        )

    def _needs_fetch(self) -> bool:
        """Decide whether the current state calls for a remote search."""
        min_length = self._settings.min_query_length
        if len(self._filters.query.strip()) < min_length:
            return False

        request = self._current_request()
        if len(request.terms) < min_length:
            return False
        if request == self._in_flight:
            return False
        cached = self._cached_request
        if self._cache.is_empty or cached is None:
            return True
        # The explicit flag is applied locally; only terms and remote filters
        # invalidate the cache.
        return (
            request.terms != self._cache.last_complete_query
            or request.categories != cached.categories
            or request.languages != cached.languages
        )

    def _schedule(self, delay_ms: int) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay_ms / 1000, self._fire)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if self._closed or not self._needs_fetch():
            return

        request = self._current_request()
        self._generation += 1
        self._in_flight = request
        self._is_loading = True
        self._error = None
        logger.debug("Remote search %r (generation %d)", request.terms, self._generation)

        task = asyncio.get_running_loop().create_task(
            self._run_search(request, self._generation)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # ------------------------------------------------------------------
    # Remote search

    async def _run_search(self, request: RemoteRequest, generation: int) -> None:
        assert self._client is not None
        try:
            feeds = await self._client.search_podcasts(
                request.terms,
                SearchOptions(
                    max_results=self._settings.max_results,
                    similar=True,
                    fulltext=True,
                    clean=request.clean,
                    categories=request.categories,
                ),
            )
            if not self._is_current(generation):
                logger.debug("Discarding stale podcast results for %r", request.terms)
                return

            podcasts = transform_feeds(f for f in feeds if self._language_allowed(f))
            self._remote_podcasts = tuple(podcasts)
            self._cache = SearchCache(request.terms, tuple(podcasts))
            self._cached_request = request
            self._recompose()

            episodes = await self._search_episodes(request.terms)
            if not self._is_current(generation):
                logger.debug("Discarding stale episode results for %r", request.terms)
                return
            self._remote_episodes = tuple(episodes)
        except CatalogError:
            if self._is_current(generation):
                logger.exception("Remote search failed for %r", request.terms)
                self._error = SEARCH_FAILED_MESSAGE
        finally:
            if self._is_current(generation):
                self._in_flight = None
                self._is_loading = False
                self._recompose()

    async def _search_episodes(self, terms: str) -> list[EpisodeWithPodcast]:
        assert self._client is not None
        try:
            items = await self._client.search_episodes_by_person(
                terms,
                PersonSearchOptions(
                    max_results=self._settings.episode_max_results, fulltext=True
                ),
            )
        except CatalogError:
            logger.warning(
                "Episode search failed for %r, using episodes of matched podcasts",
                terms,
                exc_info=True,
            )
            return await self._fallback_episodes()
        return self._composer.from_remote_items(items)

    async def _fallback_episodes(self) -> list[EpisodeWithPodcast]:
        """Collect recent episodes of the best matching podcasts."""
        top = self._compose_podcasts(self._remote_podcasts)[: self._settings.fallback_podcasts]
        batches = await asyncio.gather(*(self._episodes_of(podcast) for podcast in top))
        return [item for batch in batches for item in batch]

    async def _episodes_of(self, podcast: Podcast) -> list[EpisodeWithPodcast]:
        assert self._client is not None
        try:
            items = await self._client.get_episodes_by_feed_id(
                podcast.id, self._settings.fallback_episodes
            )
        except CatalogError as e:
            logger.debug("No fallback episodes for podcast %s: %s", podcast.id, e)
            return []
        return self._composer.with_parent(transform_episodes(items), podcast)

    def _language_allowed(self, feed: dict[str, Any]) -> bool:
        allowed = self._settings.allowed_languages
        code = language_code(feed.get("language"))
        return not allowed or not code or code in allowed

    # ------------------------------------------------------------------
    # Composition

    def _compose_podcasts(self, podcasts: Iterable[Podcast]) -> list[Podcast]:
        parsed = parse_query(self._filters.query)
        matched = filter_podcasts_by_query(podcasts, parsed)
        matched = apply_podcast_filters(matched, self._filters)
        return sort_podcasts(matched, self._filters.sort_by)

    def _compose_episodes(
        self, episodes: Iterable[EpisodeWithPodcast]
    ) -> list[EpisodeWithPodcast]:
        parsed = parse_query(self._filters.query)
        matched = filter_episodes_by_query(episodes, parsed, syntax_only=True)
        matched = apply_episode_filters(matched, self._filters)
        return sort_episodes(matched, self._filters.sort_by)

    def _recompose(self) -> None:
        """Rebuild the visible results from the current state."""
        if not self._filters.query.strip():
            self._results = SearchResultsState()
        elif not self.is_remote:
            self._results = search_all(
                self._local_podcasts, self._local_episodes, self._filters
            )
        elif len(self._filters.query.strip()) < self._settings.min_query_length:
            self._results = SearchResultsState()
        else:
            self._results = SearchResultsState(
                podcasts=tuple(self._compose_podcasts(self._remote_podcasts)),
                episodes=tuple(self._compose_episodes(self._remote_episodes)),
            )
