"""Local matching, filtering and sorting of search results.

Everything here is synchronous and side-effect free. The same functions filter
remote results after a fetch and drive the offline search over a local
dataset, so both paths share one set of semantics.
"""

from __future__ import annotations

import string
import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from podsearch.core.models import (
    DiscoveryMode,
    EpisodeWithPodcast,
    ParsedQuery,
    Podcast,
    SearchFilters,
    SearchResultsState,
    SortBy,
)
from podsearch.core.query import parse_query

_EDGE_PUNCTUATION = string.punctuation + "«»“”‘’–—…"


def normalize_text(text: str) -> str:
    """Lowercase text and strip diacritics.

    >>> normalize_text("Blåbær Café")
    'blabær cafe'
    """
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _normalize_term(term: str) -> str:
    return normalize_text(term).strip(_EDGE_PUNCTUATION)


@dataclass(frozen=True)
class SearchableText:
    """Normalized text of a record, plus its words for prefix matching.

    ``fields`` keeps each part separate so a phrase never spans two fields.
    """

    text: str
    words: tuple[str, ...]
    fields: tuple[str, ...] = ()

    @classmethod
    def from_parts(cls, *parts: str) -> SearchableText:
        fields = tuple(" ".join(normalize_text(part).split()) for part in parts if part)
        text = " ".join(fields)
        words = tuple(
            word
            for word in (token.strip(_EDGE_PUNCTUATION) for token in text.split())
            if word
        )
        return cls(text=text, words=words, fields=fields)

    def has_prefix(self, term: str) -> bool:
        """Return True if the term is a prefix of some word."""
        normalized = _normalize_term(term)
        if not normalized:
            return True
        return any(word.startswith(normalized) for word in self.words)

    def contains(self, fragment: str) -> bool:
        """Return True if the fragment occurs within a single field."""
        normalized = " ".join(normalize_text(fragment).split())
        if not normalized:
            return True
        return any(normalized in field for field in self.fields)


def podcast_text(podcast: Podcast) -> SearchableText:
    # Categories are part of the searchable text so that exclusions such as
    # "-sport" also reject podcasts that only carry the term as a category.
    return SearchableText.from_parts(
        podcast.title, podcast.author, podcast.description, *podcast.categories
    )


def episode_text(item: EpisodeWithPodcast) -> SearchableText:
    return SearchableText.from_parts(item.episode.title, item.episode.description)


def matches_required_terms(parsed: ParsedQuery, text: SearchableText) -> bool:
    """Every required term must prefix-match some word."""
    return all(text.has_prefix(term) for term in parsed.required_terms)


def matches_syntax(parsed: ParsedQuery, text: SearchableText) -> bool:
    """Check phrases, exclusions and OR groups."""
    for phrase in parsed.exact_phrases:
        if not text.contains(phrase):
            return False
    for term in parsed.must_exclude:
        if text.contains(term):
            return False
    for group in parsed.should_include:
        if not any(text.has_prefix(member) for member in group):
            return False
    return True


def matches_query(parsed: ParsedQuery, text: SearchableText) -> bool:
    return matches_required_terms(parsed, text) and matches_syntax(parsed, text)


def filter_podcasts_by_query(
    podcasts: Iterable[Podcast], parsed: ParsedQuery
) -> list[Podcast]:
    if parsed.is_empty:
        return list(podcasts)
    return [p for p in podcasts if matches_query(parsed, podcast_text(p))]


def filter_episodes_by_query(
    episodes: Iterable[EpisodeWithPodcast],
    parsed: ParsedQuery,
    *,
    syntax_only: bool = False,
) -> list[EpisodeWithPodcast]:
    """Filter episodes by a parsed query.

    Args:
        episodes: Episodes to filter.
        parsed: The parsed query.
        syntax_only: Skip required terms. Used for catalog episode results,
            which the catalog matched on fields we do not have locally
            (person tags, feed owner).
    """
    if parsed.is_empty or (syntax_only and not parsed.has_syntax):
        return list(episodes)
    check = matches_syntax if syntax_only else matches_query
    return [e for e in episodes if check(parsed, episode_text(e))]


def _contains_any(value: str, needles: Sequence[str]) -> bool:
    lowered = value.lower()
    return any(needle.lower() in lowered for needle in needles)


def _matches_language(name: str, code: str, selected: Sequence[str]) -> bool:
    """Return True if a selected language equals the code or the display name.

    Codes compare on their primary subtag (``en-GB`` selects ``en``).
    """
    normalized_name = normalize_text(name.strip())
    for wanted in selected:
        wanted = wanted.strip().lower()
        if code and wanted.split("-")[0] == code:
            return True
        if normalized_name and normalize_text(wanted) == normalized_name:
            return True
    return False


def _within_dates(moment: datetime | None, filters: SearchFilters) -> bool:
    if filters.date_from is None and filters.date_to is None:
        return True
    if moment is None:
        return False
    day = moment.date()
    if filters.date_from is not None and day < filters.date_from.as_date():
        return False
    if filters.date_to is not None and day > filters.date_to.as_date():
        return False
    return True


def _matches_discovery_mode(podcast: Podcast, mode: DiscoveryMode) -> bool:
    if mode is DiscoveryMode.INDIE:
        return podcast.itunes_id is None
    if mode is DiscoveryMode.VALUE4VALUE:
        return podcast.has_value
    return True


def apply_podcast_filters(
    podcasts: Iterable[Podcast], filters: SearchFilters
) -> list[Podcast]:
    """Apply the structured (non-text) filters to podcasts."""
    results = []
    for podcast in podcasts:
        if filters.categories and not any(
            _contains_any(category, filters.categories) for category in podcast.categories
        ):
            continue
        if filters.languages and not _matches_language(
            podcast.language, podcast.language_code, filters.languages
        ):
            continue
        if filters.min_rating > 0 and podcast.rating < filters.min_rating:
            continue
        if filters.explicit is not None and podcast.explicit != filters.explicit:
            continue
        if not _matches_discovery_mode(podcast, filters.discovery_mode):
            continue
        if not _within_dates(podcast.last_updated, filters):
            continue
        results.append(podcast)
    return results


def apply_episode_filters(
    episodes: Iterable[EpisodeWithPodcast], filters: SearchFilters
) -> list[EpisodeWithPodcast]:
    """Apply language and date filters to episodes.

    Episodes without a known feed language pass the language filter.
    """
    results = []
    for item in episodes:
        episode = item.episode
        known = episode.feed_language or episode.feed_language_code
        if (
            filters.languages
            and known
            and not _matches_language(
                episode.feed_language, episode.feed_language_code, filters.languages
            )
        ):
            continue
        if not _within_dates(item.episode.published_at, filters):
            continue
        results.append(item)
    return results


def _sort_by_moment(items: list, moment_of, *, newest_first: bool) -> list:
    dated = [item for item in items if moment_of(item) is not None]
    undated = [item for item in items if moment_of(item) is None]
    dated = sorted(dated, key=moment_of, reverse=newest_first)
    return dated + undated


def sort_podcasts(podcasts: Iterable[Podcast], sort_by: SortBy) -> list[Podcast]:
    """Sort podcasts. The sort is stable; relevance keeps the incoming order."""
    items = list(podcasts)
    if sort_by is SortBy.RATING:
        return sorted(items, key=lambda p: p.rating, reverse=True)
    if sort_by is SortBy.POPULAR:
        return sorted(items, key=lambda p: p.episode_count, reverse=True)
    if sort_by is SortBy.NEWEST:
        return _sort_by_moment(items, lambda p: p.last_updated, newest_first=True)
    if sort_by is SortBy.OLDEST:
        return _sort_by_moment(items, lambda p: p.last_updated, newest_first=False)
    return items


def sort_episodes(
    episodes: Iterable[EpisodeWithPodcast], sort_by: SortBy
) -> list[EpisodeWithPodcast]:
    """Sort episodes by publication date; other orders keep the incoming order."""
    items = list(episodes)
    if sort_by is SortBy.NEWEST:
        return _sort_by_moment(items, lambda e: e.episode.published_at, newest_first=True)
    if sort_by is SortBy.OLDEST:
        return _sort_by_moment(items, lambda e: e.episode.published_at, newest_first=False)
    return items


def search_all(
    podcasts: Iterable[Podcast],
    episodes: Iterable[EpisodeWithPodcast],
    filters: SearchFilters,
) -> SearchResultsState:
    """Search an in-memory dataset with the full filter and sort semantics."""
    parsed = parse_query(filters.query)

    matched_podcasts = filter_podcasts_by_query(podcasts, parsed)
    matched_podcasts = apply_podcast_filters(matched_podcasts, filters)

    matched_episodes = filter_episodes_by_query(episodes, parsed)
    matched_episodes = apply_episode_filters(matched_episodes, filters)

    return SearchResultsState(
        podcasts=tuple(sort_podcasts(matched_podcasts, filters.sort_by)),
        episodes=tuple(sort_episodes(matched_episodes, filters.sort_by)),
    )
