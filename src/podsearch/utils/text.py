"""Text processing utilities."""

import html
import re

_TAG_PATTERN = re.compile(r"<[^>]*>")


def strip_html(text: str) -> str:
    """
    Remove HTML tags and decode entities.

    Args:
        text: HTML fragment, as found in feed descriptions

    Returns:
        Plain text with surrounding whitespace removed
    """
    if not text:
        return ""
    text = _TAG_PATTERN.sub("", text)
    return html.unescape(text).replace("\xa0", " ").strip()


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix


def format_duration(seconds: int) -> str:
    """Format duration in seconds to HH:MM:SS or MM:SS."""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
