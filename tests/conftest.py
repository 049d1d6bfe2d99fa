"""Pytest fixtures for podsearch tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from podsearch.core.config import SearchSettings
from podsearch.core.errors import CatalogError
from podsearch.core.models import Episode, Podcast
from podsearch.services.catalog import PersonSearchOptions, SearchOptions


def make_feed(feed_id: int, title: str, **extra: Any) -> dict[str, Any]:
    """Build a Podcast Index feed record."""
    feed: dict[str, Any] = {
        "id": feed_id,
        "title": title,
        "author": "Test Author",
        "description": f"<p>{title} description</p>",
        "url": f"https://example.com/{feed_id}.xml",
        "artwork": f"https://example.com/{feed_id}.jpg",
        "language": "en",
        "categories": {"1": "History"},
        "episodeCount": 10,
        "lastUpdateTime": 1_700_000_000,
    }
    feed.update(extra)
    return feed


def make_item(item_id: int, feed_id: int, title: str, **extra: Any) -> dict[str, Any]:
    """Build a Podcast Index episode item."""
    item: dict[str, Any] = {
        "id": item_id,
        "feedId": feed_id,
        "title": title,
        "description": f"{title} notes",
        "enclosureUrl": f"https://example.com/{item_id}.mp3",
        "duration": 1800,
        "datePublished": 1_700_000_000,
        "feedLanguage": "en",
    }
    item.update(extra)
    return item


class FakeCatalogClient:
    """In-memory catalog that records calls.

    Responses for a query can be held back by registering an ``asyncio.Event``
    in ``gates``; the call completes once the event is set.
    """

    def __init__(self, configured: bool = True) -> None:
        self.configured = configured
        self.feeds: dict[str, list[dict[str, Any]]] = {}
        self.default_feeds: list[dict[str, Any]] = []
        self.episode_items: list[dict[str, Any]] = []
        self.feed_episodes: dict[str, list[dict[str, Any]]] = {}
        self.podcast_error: Exception | None = None
        self.episode_error: Exception | None = None
        self.failing_feeds: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.podcast_calls: list[tuple[str, SearchOptions | None]] = []
        self.episode_calls: list[tuple[str, PersonSearchOptions | None]] = []
        self.feed_calls: list[tuple[str, int]] = []

    @property
    def podcast_queries(self) -> list[str]:
        return [query for query, _ in self.podcast_calls]

    def is_configured(self) -> bool:
        return self.configured

    async def search_podcasts(
        self, query: str, options: SearchOptions | None = None
    ) -> list[dict[str, Any]]:
        self.podcast_calls.append((query, options))
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        if self.podcast_error is not None:
            raise self.podcast_error
        return list(self.feeds.get(query, self.default_feeds))

    async def search_episodes_by_person(
        self, query: str, options: PersonSearchOptions | None = None
    ) -> list[dict[str, Any]]:
        self.episode_calls.append((query, options))
        if self.episode_error is not None:
            raise self.episode_error
        return list(self.episode_items)

    async def get_episodes_by_feed_id(
        self, feed_id: int | str, limit: int = 20
    ) -> list[dict[str, Any]]:
        self.feed_calls.append((str(feed_id), limit))
        if str(feed_id) in self.failing_feeds:
            raise CatalogError(f"feed {feed_id} unavailable")
        return list(self.feed_episodes.get(str(feed_id), []))[:limit]


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until the predicate holds or fail after the timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def fake_client() -> FakeCatalogClient:
    """Create a configured fake catalog client."""
    return FakeCatalogClient()


@pytest.fixture
def fast_settings() -> SearchSettings:
    """Search settings with short debounce delays."""
    return SearchSettings(query_debounce_ms=20, filter_debounce_ms=10)


@pytest.fixture
def sample_podcasts() -> list[Podcast]:
    """Create a small local podcast catalog."""
    return [
        Podcast(
            id="1",
            title="Norges historie",
            author="NRK",
            description="Fortellinger fra norsk fortid",
            categories=("Sport",),
            language="Norsk",
            episode_count=120,
            last_updated=datetime(2024, 3, 1, tzinfo=UTC),
            rating=4.5,
            itunes_id=111,
        ),
        Podcast(
            id="2",
            title="Verdens historie",
            author="Historielaget",
            description="Store hendelser i verden",
            categories=("Kultur",),
            language="Norsk",
            episode_count=40,
            last_updated=datetime(2024, 5, 1, tzinfo=UTC),
            rating=3.8,
            has_value=True,
        ),
        Podcast(
            id="3",
            title="Café Science",
            author="Ada Lovelace",
            description="Conversations about research",
            categories=("Science",),
            language="English",
            episode_count=5,
            last_updated=None,
            rating=3.0,
            explicit=True,
        ),
    ]


@pytest.fixture
def sample_episodes() -> list[Episode]:
    """Create local episodes belonging to the sample podcasts."""
    return [
        Episode(
            id="10",
            podcast_id="1",
            title="Vikingtiden",
            description="Om vikinger og historie",
            duration=3600,
            published_at=datetime(2024, 2, 1, tzinfo=UTC),
        ),
        Episode(
            id="20",
            podcast_id="2",
            title="Romerriket",
            description="Historie om Roma",
            duration=2400,
            published_at=datetime(2024, 4, 1, tzinfo=UTC),
        ),
        Episode(
            id="30",
            podcast_id="3",
            title="Coffee chemistry",
            description="Why espresso tastes the way it does",
            duration=1500,
            published_at=None,
        ),
    ]
