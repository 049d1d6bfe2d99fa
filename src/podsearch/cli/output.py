"""CLI output formatting utilities."""

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from podsearch.core.composer import ResultComposer
from podsearch.core.models import EpisodeWithPodcast, Podcast
from podsearch.utils.text import format_duration, truncate_text

TITLE_WIDTH = 60


def display_podcasts(
    podcasts: Sequence[Podcast],
    console: Console,
    composer: ResultComposer | None = None,
) -> None:
    """Display podcast search results in a table."""
    if not podcasts:
        console.print("[yellow]No podcasts found.[/yellow]")
        return

    composer = composer or ResultComposer()

    table = Table(title="Podcasts")
    table.add_column("#", style="dim", width=4)
    table.add_column("ID", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Author", style="dim")
    table.add_column("Categories")
    table.add_column("Language", style="green")
    table.add_column("Episodes", justify="right")
    table.add_column("Rating", justify="right")

    for i, podcast in enumerate(podcasts, 1):
        table.add_row(
            str(i),
            podcast.id,
            truncate_text(podcast.title, TITLE_WIDTH),
            podcast.author or "-",
            ", ".join(composer.category_labels(podcast)) or "-",
            podcast.language or "-",
            str(podcast.episode_count),
            f"{podcast.rating:.1f}",
        )

    console.print(table)


def display_episodes(episodes: Sequence[EpisodeWithPodcast], console: Console) -> None:
    """Display episodes with their podcast in a table."""
    if not episodes:
        console.print("[yellow]No episodes found.[/yellow]")
        return

    table = Table(title="Episodes")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Podcast", style="dim")
    table.add_column("Published", style="green")
    table.add_column("Duration", style="cyan")

    for i, item in enumerate(episodes, 1):
        episode = item.episode
        published = episode.published_at.strftime("%Y-%m-%d") if episode.published_at else "-"
        duration_str = format_duration(episode.duration) if episode.duration else "-"
        table.add_row(
            str(i),
            truncate_text(episode.title, TITLE_WIDTH),
            item.podcast.title if item.podcast else "-",
            published,
            duration_str,
        )

    console.print(table)
