"""Conversion of Podcast Index JSON records into podsearch models."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from podsearch.core.models import Episode, Podcast
from podsearch.utils.text import strip_html

# Display names for feed language codes
LANGUAGE_NAMES: dict[str, str] = {
    "no": "Norsk",
    "nb": "Norsk",
    "nn": "Nynorsk",
    "en": "English",
    "sv": "Svenska",
    "da": "Dansk",
    "de": "Deutsch",
    "fr": "Français",
    "es": "Español",
    "fi": "Suomi",
    "is": "Íslenska",
}

UNKNOWN_LANGUAGE = "Unknown"


def language_code(raw: str | None) -> str:
    """Return the primary subtag of a language code, lowercased (``en-US`` -> ``en``)."""
    if not raw:
        return ""
    return raw.strip().lower().split("-")[0]


def normalize_language(raw: str | None) -> str:
    """Map a feed language code to a display name."""
    if not raw:
        return UNKNOWN_LANGUAGE
    return LANGUAGE_NAMES.get(language_code(raw), raw.upper())


def _timestamp(value: Any) -> datetime | None:
    """Convert a unix timestamp to an aware datetime, or None if unusable."""
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def estimate_rating(feed: dict[str, Any], now: datetime | None = None) -> float:
    """Estimate a 1-5 rating from feed activity.

    The catalog has no ratings, so busy, recently updated feeds without
    crawl or parse errors score higher.
    """
    now = now or datetime.now(UTC)
    score = 3.0

    episode_count = feed.get("episodeCount") or 0
    if episode_count > 100:
        score += 0.5
    elif episode_count > 50:
        score += 0.3
    elif episode_count > 20:
        score += 0.1

    updated = _timestamp(feed.get("lastUpdateTime"))
    if updated is not None:
        days_since_update = (now - updated).total_seconds() / 86400
        if days_since_update < 7:
            score += 0.5
        elif days_since_update < 30:
            score += 0.3
        elif days_since_update < 90:
            score += 0.1

    if (feed.get("crawlErrors") or 0) > 0 or (feed.get("parseErrors") or 0) > 0:
        score -= 0.3

    return max(1.0, min(5.0, round(score, 1)))


def _categories(raw: Any) -> tuple[str, ...]:
    # The catalog sends categories as {"id": "name"}
    if isinstance(raw, dict):
        return tuple(str(name) for name in raw.values() if name)
    if isinstance(raw, list):
        return tuple(str(name) for name in raw if name)
    return ()


def transform_feed(feed: dict[str, Any], now: datetime | None = None) -> Podcast:
    """Convert a catalog feed record into a Podcast."""
    itunes_id = feed.get("itunesId")
    return Podcast(
        id=str(feed.get("id", "")),
        title=feed.get("title") or "Untitled",
        author=feed.get("author") or feed.get("ownerName") or "Unknown",
        description=strip_html(feed.get("description") or ""),
        image_url=feed.get("artwork") or feed.get("image") or "",
        feed_url=feed.get("url") or feed.get("originalUrl") or "",
        categories=_categories(feed.get("categories")),
        language=normalize_language(feed.get("language")),
        language_code=language_code(feed.get("language")),
        episode_count=feed.get("episodeCount") or 0,
        last_updated=_timestamp(feed.get("lastUpdateTime")),
        rating=estimate_rating(feed, now),
        explicit=bool(feed.get("explicit")),
        itunes_id=int(itunes_id) if itunes_id else None,
        has_value=bool(feed.get("value") or feed.get("funding")),
    )


def transform_feeds(feeds: Iterable[dict[str, Any]], now: datetime | None = None) -> list[Podcast]:
    """Convert catalog feeds, dropping feeds the catalog marks as dead."""
    return [transform_feed(feed, now) for feed in feeds if not feed.get("dead")]


def transform_episode(item: dict[str, Any]) -> Episode:
    """Convert a catalog episode item into an Episode."""
    feed_language = item.get("feedLanguage")
    return Episode(
        id=str(item.get("id", "")),
        podcast_id=str(item.get("feedId", "")),
        title=item.get("title") or "Untitled Episode",
        description=strip_html(item.get("description") or ""),
        audio_url=item.get("enclosureUrl") or "",
        image_url=item.get("image") or item.get("feedImage") or "",
        duration=item.get("duration") or 0,
        published_at=_timestamp(item.get("datePublished")),
        feed_language=normalize_language(feed_language) if feed_language else "",
        feed_language_code=language_code(feed_language),
        transcript_url=item.get("transcriptUrl") or "",
        chapters_url=item.get("chaptersUrl") or "",
    )


def transform_episodes(items: Iterable[dict[str, Any]]) -> list[Episode]:
    return [transform_episode(item) for item in items]
