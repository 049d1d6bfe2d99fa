"""Remote catalog contract consumed by the search orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class SearchOptions:
    """Options for a podcast search.

    Attributes:
        max_results: Maximum number of feeds to return.
        similar: Include fuzzy matches.
        fulltext: Return full descriptions instead of truncated ones.
        clean: Only return feeds not marked explicit.
        lang: Comma-separated language codes.
        categories: Category names the feeds must carry.
    """

    max_results: int = 30
    similar: bool = True
    fulltext: bool = True
    clean: bool = False
    lang: str | None = None
    categories: tuple[str, ...] = ()


@dataclass(frozen=True)
class PersonSearchOptions:
    """Options for an episode search by person."""

    max_results: int = 30
    fulltext: bool = True


class CatalogClient(Protocol):
    """What the orchestrator needs from a remote podcast catalog.

    Implementations raise ``CatalogError`` for any remote failure and
    ``InvalidIdentifierError`` for feed ids they cannot look up.
    """

    def is_configured(self) -> bool: ...

    async def search_podcasts(
        self, query: str, options: SearchOptions | None = None
    ) -> list[dict[str, Any]]: ...

    async def search_episodes_by_person(
        self, query: str, options: PersonSearchOptions | None = None
    ) -> list[dict[str, Any]]: ...

    async def get_episodes_by_feed_id(
        self, feed_id: int | str, limit: int = 20
    ) -> list[dict[str, Any]]: ...
