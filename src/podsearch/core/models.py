"""Data models for podsearch."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from podsearch.core.errors import FilterError


class SortBy(str, Enum):
    """Result ordering."""

    RELEVANCE = "relevance"
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"
    RATING = "rating"  # legacy


class DiscoveryMode(str, Enum):
    """Catalog provenance filter."""

    ALL = "all"
    INDIE = "indie"
    VALUE4VALUE = "value4value"


class ResultTab(str, Enum):
    """Result list currently shown to the user."""

    PODCASTS = "podcasts"
    EPISODES = "episodes"


@dataclass(frozen=True, order=True)
class DateParts:
    """A calendar day picked in a date filter.

    Field order is year, month, day so that instances compare chronologically.
    """

    year: int
    month: int
    day: int

    def __post_init__(self) -> None:
        try:
            date(self.year, self.month, self.day)
        except (TypeError, ValueError) as e:
            raise FilterError(
                f"Invalid date {self.day}.{self.month}.{self.year}: {e}"
            ) from e

    def as_date(self) -> date:
        """Return the value as a ``datetime.date``."""
        return date(self.year, self.month, self.day)

    @classmethod
    def from_date(cls, value: date) -> DateParts:
        return cls(year=value.year, month=value.month, day=value.day)


@dataclass(frozen=True)
class SearchFilters:
    """User-controlled search state.

    Instances are immutable; the orchestrator replaces them on every change.
    """

    query: str = ""
    categories: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    date_from: DateParts | None = None
    date_to: DateParts | None = None
    sort_by: SortBy = SortBy.RELEVANCE
    discovery_mode: DiscoveryMode = DiscoveryMode.ALL
    min_rating: float = 0.0
    explicit: bool | None = None

    def __post_init__(self) -> None:
        if len(set(self.categories)) != len(self.categories):
            raise FilterError("Duplicate category in filters")
        if len(set(self.languages)) != len(self.languages):
            raise FilterError("Duplicate language in filters")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise FilterError("date_from must not be after date_to")


@dataclass(frozen=True)
class ParsedQuery:
    """Structured form of a raw query string.

    Attributes:
        exact_phrases: Quoted phrases, in the order they appeared.
        must_exclude: Terms prefixed with ``-``, without the prefix.
        should_include: One set per ``OR`` chain; any member satisfies it.
        required_terms: Plain words that must all match.
    """

    exact_phrases: tuple[str, ...] = ()
    must_exclude: frozenset[str] = frozenset()
    should_include: tuple[frozenset[str], ...] = ()
    required_terms: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (
            self.exact_phrases
            or self.must_exclude
            or self.should_include
            or self.required_terms
        )

    @property
    def has_syntax(self) -> bool:
        """True when the query uses phrases, exclusions or OR groups."""
        return bool(self.exact_phrases or self.must_exclude or self.should_include)


@dataclass(frozen=True)
class Podcast:
    """A podcast (a "feed" in catalog terms)."""

    id: str
    title: str
    author: str = ""
    description: str = ""
    image_url: str = ""
    feed_url: str = ""
    categories: tuple[str, ...] = ()
    language: str = ""
    language_code: str = ""
    episode_count: int = 0
    last_updated: datetime | None = None
    rating: float = 0.0
    explicit: bool = False
    itunes_id: int | None = None
    has_value: bool = False


@dataclass(frozen=True)
class Episode:
    """A single podcast episode."""

    id: str
    podcast_id: str
    title: str
    description: str = ""
    audio_url: str = ""
    image_url: str = ""
    duration: int = 0  # seconds
    published_at: datetime | None = None
    feed_language: str = ""
    feed_language_code: str = ""
    transcript_url: str = ""
    chapters_url: str = ""


@dataclass(frozen=True)
class PodcastSnapshot:
    """Parent podcast metadata shown next to an episode."""

    id: str
    title: str
    author: str = ""
    image_url: str = ""


@dataclass(frozen=True)
class EpisodeWithPodcast:
    """An episode with optional parent podcast metadata attached.

    ``podcast`` is None when the catalog did not say which feed the episode
    belongs to; callers must not assume it is present.
    """

    episode: Episode
    podcast: PodcastSnapshot | None = None


@dataclass(frozen=True)
class SearchResultsState:
    """The visible outcome of a search."""

    podcasts: tuple[Podcast, ...] = ()
    episodes: tuple[EpisodeWithPodcast, ...] = ()


@dataclass(frozen=True)
class SearchCache:
    """The most recent successful remote fetch."""

    last_complete_query: str = ""
    last_results: tuple[Podcast, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.last_complete_query
