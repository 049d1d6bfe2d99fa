"""Service modules for podsearch."""

from podsearch.services.catalog import (
    CatalogClient,
    PersonSearchOptions,
    SearchOptions,
)
from podsearch.services.dataset import load_dataset, parse_dataset
from podsearch.services.podcastindex import PodcastIndexClient, parse_feed_id
from podsearch.services.transform import (
    estimate_rating,
    normalize_language,
    transform_episode,
    transform_episodes,
    transform_feed,
    transform_feeds,
)

__all__ = [
    "CatalogClient",
    "PersonSearchOptions",
    "PodcastIndexClient",
    "SearchOptions",
    "estimate_rating",
    "load_dataset",
    "normalize_language",
    "parse_dataset",
    "parse_feed_id",
    "transform_episode",
    "transform_episodes",
    "transform_feed",
    "transform_feeds",
]
