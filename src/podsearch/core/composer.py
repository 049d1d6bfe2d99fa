"""Episode result composition.

Attaches parent podcast metadata to episodes for display and translates
category names through a lookup table supplied at construction time.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from podsearch.core.models import (
    Episode,
    EpisodeWithPodcast,
    Podcast,
    PodcastSnapshot,
)
from podsearch.services.transform import transform_episode


class ResultComposer:
    """Builds EpisodeWithPodcast projections.

    Args:
        category_labels: Mapping from catalog category name to display label.
            Names without an entry are shown unchanged.
    """

    def __init__(self, category_labels: Mapping[str, str] | None = None) -> None:
        self._category_labels: dict[str, str] = dict(category_labels or {})

    def translate_category(self, name: str) -> str:
        return self._category_labels.get(name, name)

    def category_labels(self, podcast: Podcast) -> list[str]:
        """Return the podcast's categories as display labels, without duplicates."""
        labels: list[str] = []
        for category in podcast.categories:
            label = self.translate_category(category)
            if label not in labels:
                labels.append(label)
        return labels

    @staticmethod
    def snapshot(podcast: Podcast) -> PodcastSnapshot:
        return PodcastSnapshot(
            id=podcast.id,
            title=podcast.title,
            author=podcast.author,
            image_url=podcast.image_url,
        )

    def from_remote_items(self, items: Iterable[dict[str, Any]]) -> list[EpisodeWithPodcast]:
        """Compose catalog episode items using the feed fields sent along with them.

        The catalog includes ``feedTitle``, ``feedAuthor`` and ``feedImage`` on
        some endpoints only. Without a feed title no snapshot is attached.
        """
        composed = []
        for item in items:
            episode = transform_episode(item)
            feed_title = item.get("feedTitle") or ""
            podcast = None
            if feed_title:
                podcast = PodcastSnapshot(
                    id=episode.podcast_id,
                    title=feed_title,
                    author=item.get("feedAuthor") or "",
                    image_url=item.get("feedImage") or "",
                )
            composed.append(EpisodeWithPodcast(episode=episode, podcast=podcast))
        return composed

    def with_parent(
        self, episodes: Iterable[Episode], podcast: Podcast
    ) -> list[EpisodeWithPodcast]:
        """Attach one known podcast to all of its episodes."""
        parent = self.snapshot(podcast)
        return [EpisodeWithPodcast(episode=episode, podcast=parent) for episode in episodes]

    def with_podcasts(
        self, episodes: Iterable[Episode], podcasts: Iterable[Podcast]
    ) -> list[EpisodeWithPodcast]:
        """Attach parents by ``podcast_id``; episodes with no known parent get none.

        Episodes without a feed language inherit their parent's language so
        the language filter applies to them.
        """
        by_id = {podcast.id: podcast for podcast in podcasts}
        composed = []
        for episode in episodes:
            parent = by_id.get(episode.podcast_id)
            if parent is None:
                composed.append(EpisodeWithPodcast(episode=episode))
                continue
            if not episode.feed_language and parent.language:
                episode = replace(
                    episode,
                    feed_language=parent.language,
                    feed_language_code=parent.language_code,
                )
            composed.append(EpisodeWithPodcast(episode=episode, podcast=self.snapshot(parent)))
        return composed
