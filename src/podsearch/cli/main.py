"""Main CLI application for podsearch."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from podsearch.core.config import Config, Verbosity, get_config, load_config
from podsearch.core.errors import ConfigError, PodsearchError
from podsearch.core.models import (
    DateParts,
    DiscoveryMode,
    EpisodeWithPodcast,
    SearchResultsState,
    SortBy,
)

app = typer.Typer(
    name="podsearch",
    help="Search podcasts and episodes in the Podcast Index catalog.",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


class State:
    """Global CLI state."""

    def __init__(self) -> None:
        self.verbosity: Verbosity = Verbosity.NORMAL
        self.config: Config | None = None


state = State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from podsearch import __version__

        console.print(f"podsearch version {__version__}")
        raise typer.Exit()


def configure_logging(verbosity: Verbosity) -> None:
    """Route library logging to stderr when verbose, silence it otherwise."""
    package_logger = logging.getLogger("podsearch")
    if verbosity == Verbosity.VERBOSE:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=error_console, show_path=False)],
            force=True,
        )
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        package_logger.setLevel(logging.DEBUG)
    elif not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress all output except errors"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration file"),
    ] = None,
    version: Annotated[  # noqa: ARG001
        bool,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """podsearch - Podcast and episode search."""
    if quiet:
        state.verbosity = Verbosity.QUIET
    elif verbose:
        state.verbosity = Verbosity.VERBOSE
    else:
        state.verbosity = Verbosity.NORMAL

    configure_logging(state.verbosity)

    try:
        state.config = load_config(local_path=config_path) if config_path else get_config()
    except ConfigError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from None


def _date_parts(value: datetime | None) -> DateParts | None:
    return DateParts.from_date(value.date()) if value else None


async def _run_search(
    config: Config,
    query: str,
    *,
    categories: list[str],
    languages: list[str],
    sort_by: SortBy,
    mode: DiscoveryMode,
    family_friendly: bool,
    date_from: DateParts | None,
    date_to: DateParts | None,
    dataset: Path | None,
) -> tuple[SearchResultsState, str | None]:
    from podsearch.core.orchestrator import SearchOrchestrator
    from podsearch.services.dataset import load_dataset
    from podsearch.services.podcastindex import PodcastIndexClient

    if dataset is not None:
        podcasts, episodes = load_dataset(dataset)
        client = None
    else:
        podcasts, episodes = [], []
        client = PodcastIndexClient.from_config(config)

    try:
        async with SearchOrchestrator.from_config(
            config, client, podcasts=podcasts, episodes=episodes
        ) as search:
            for category in categories:
                search.toggle_category(category)
            for language in languages:
                search.toggle_language(language)
            search.set_sort_by(sort_by)
            search.set_discovery_mode(mode)
            if family_friendly:
                search.set_explicit(False)
            search.set_date_from(date_from)
            search.set_date_to(date_to)
            search.submit_query(query)
            results = await search.wait_until_settled()
            return results, search.error
    finally:
        if client is not None:
            await client.aclose()


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search query; supports \"phrases\", -exclude and OR")],
    category: Annotated[
        list[str] | None,
        typer.Option("--category", "-c", help="Only podcasts in this category (repeatable)"),
    ] = None,
    language: Annotated[
        list[str] | None,
        typer.Option("--language", "-l", help="Only podcasts in this language (repeatable)"),
    ] = None,
    sort: Annotated[
        SortBy,
        typer.Option("--sort", help="Result ordering"),
    ] = SortBy.RELEVANCE,
    mode: Annotated[
        DiscoveryMode,
        typer.Option("--mode", help="Discovery mode"),
    ] = DiscoveryMode.ALL,
    family_friendly: Annotated[
        bool,
        typer.Option("--family-friendly", help="Hide explicit podcasts"),
    ] = False,
    date_from: Annotated[
        datetime | None,
        typer.Option("--from", formats=["%Y-%m-%d"], help="Earliest date (YYYY-MM-DD)"),
    ] = None,
    date_to: Annotated[
        datetime | None,
        typer.Option("--to", formats=["%Y-%m-%d"], help="Latest date (YYYY-MM-DD)"),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", help="Maximum number of results per table"),
    ] = 10,
    show_episodes: Annotated[
        bool,
        typer.Option("--episodes", help="Also show matching episodes"),
    ] = False,
    dataset: Annotated[
        Path | None,
        typer.Option("--dataset", help="Search a local JSON dataset instead of the catalog"),
    ] = None,
) -> None:
    """Search podcasts and episodes."""
    from podsearch.cli.output import display_episodes, display_podcasts
    from podsearch.core.composer import ResultComposer

    assert state.config is not None

    if dataset is None and not state.config.is_configured():
        error_console.print(
            "[red]Error:[/red] Podcast Index credentials are not configured. "
            "Set PODCASTINDEX_API_KEY and PODCASTINDEX_API_SECRET or use --dataset."
        )
        raise typer.Exit(1)

    if state.verbosity != Verbosity.QUIET:
        console.print(f"Searching for: [bold]{query}[/bold]")

    try:
        results, error = asyncio.run(
            _run_search(
                state.config,
                query,
                categories=category or [],
                languages=language or [],
                sort_by=sort,
                mode=mode,
                family_friendly=family_friendly,
                date_from=_date_parts(date_from),
                date_to=_date_parts(date_to),
                dataset=dataset,
            )
        )
    except PodsearchError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if error:
        error_console.print(f"[red]{error}[/red]")
        raise typer.Exit(1)

    if state.verbosity != Verbosity.QUIET:
        composer = ResultComposer(state.config.categories.labels)
        display_podcasts(results.podcasts[:limit], console, composer)
        if show_episodes:
            display_episodes(results.episodes[:limit], console)


@app.command()
def episodes(
    feed_id: Annotated[str, typer.Argument(help="Podcast Index feed id")],
    limit: Annotated[
        int,
        typer.Option("--limit", help="Maximum number of episodes to show"),
    ] = 10,
) -> None:
    """List the most recent episodes of a podcast."""
    from podsearch.cli.output import display_episodes
    from podsearch.services.podcastindex import PodcastIndexClient
    from podsearch.services.transform import transform_episodes

    assert state.config is not None

    if not state.config.is_configured():
        error_console.print(
            "[red]Error:[/red] Podcast Index credentials are not configured. "
            "Set PODCASTINDEX_API_KEY and PODCASTINDEX_API_SECRET."
        )
        raise typer.Exit(1)

    async def fetch() -> list[dict]:
        async with PodcastIndexClient.from_config(state.config) as client:
            return await client.get_episodes_by_feed_id(feed_id, limit)

    if state.verbosity != Verbosity.QUIET:
        console.print(f"Fetching episodes of feed: [bold]{feed_id}[/bold]")

    try:
        items = asyncio.run(fetch())
    except PodsearchError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if state.verbosity != Verbosity.QUIET:
        display_episodes(
            [EpisodeWithPodcast(episode=e) for e in transform_episodes(items)], console
        )


if __name__ == "__main__":
    app()
