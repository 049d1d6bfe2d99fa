"""Local dataset used when the remote catalog is not configured.

A dataset is a JSON document with two lists:

    {
      "podcasts": [{"id": "1", "title": "...", "categories": ["History"], ...}],
      "episodes": [{"id": "10", "podcast_id": "1", "title": "...", ...}]
    }

Field names follow the Podcast and Episode models. Timestamps are ISO 8601
strings; naive timestamps are taken as UTC.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from podsearch.core.errors import DatasetError
from podsearch.core.models import Episode, Podcast


def _parse_datetime(value: Any, field_name: str) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError as e:
        raise DatasetError(f"Invalid {field_name} timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _podcast_from_dict(data: dict[str, Any]) -> Podcast:
    try:
        return Podcast(
            id=str(data["id"]),
            title=data["title"],
            author=data.get("author", ""),
            description=data.get("description", ""),
            image_url=data.get("image_url", ""),
            feed_url=data.get("feed_url", ""),
            categories=tuple(data.get("categories", ())),
            language=data.get("language", ""),
            language_code=data.get("language_code", ""),
            episode_count=int(data.get("episode_count", 0)),
            last_updated=_parse_datetime(data.get("last_updated"), "last_updated"),
            rating=float(data.get("rating", 0.0)),
            explicit=bool(data.get("explicit", False)),
            itunes_id=data.get("itunes_id"),
            has_value=bool(data.get("has_value", False)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DatasetError(f"Invalid podcast record {data!r}: {e}") from e


def _episode_from_dict(data: dict[str, Any]) -> Episode:
    try:
        return Episode(
            id=str(data["id"]),
            podcast_id=str(data["podcast_id"]),
            title=data["title"],
            description=data.get("description", ""),
            audio_url=data.get("audio_url", ""),
            image_url=data.get("image_url", ""),
            duration=int(data.get("duration", 0)),
            published_at=_parse_datetime(data.get("published_at"), "published_at"),
            feed_language=data.get("feed_language", ""),
            feed_language_code=data.get("feed_language_code", ""),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise DatasetError(f"Invalid episode record {data!r}: {e}") from e


def parse_dataset(data: dict[str, Any]) -> tuple[list[Podcast], list[Episode]]:
    """Build models from an already decoded dataset document.

    Raises:
        DatasetError: If the document does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise DatasetError("Dataset must be a JSON object")
    podcasts = data.get("podcasts", [])
    episodes = data.get("episodes", [])
    if not isinstance(podcasts, list) or not isinstance(episodes, list):
        raise DatasetError("Dataset 'podcasts' and 'episodes' must be lists")
    return (
        [_podcast_from_dict(item) for item in podcasts],
        [_episode_from_dict(item) for item in episodes],
    )


def load_dataset(path: Path) -> tuple[list[Podcast], list[Episode]]:
    """Load podcasts and episodes from a JSON file.

    Raises:
        DatasetError: If the file cannot be read or parsed.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DatasetError(f"Cannot read dataset {path}: {e}") from e
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise DatasetError(f"Invalid JSON in dataset {path}: {e}") from e
    return parse_dataset(data)
