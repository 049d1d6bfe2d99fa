"""Configuration management for podsearch.

Handles TOML configuration loading from local and global paths,
with environment variable precedence for API credentials.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from podsearch.core.errors import ConfigError

# Configuration file paths
LOCAL_CONFIG_PATH = Path(".podsearch/config")
GLOBAL_CONFIG_PATH = Path.home() / ".podsearch" / "config"

API_KEY_ENV = "PODCASTINDEX_API_KEY"
API_SECRET_ENV = "PODCASTINDEX_API_SECRET"

# Value shipped in example configuration files
PLACEHOLDER_API_KEY = "your_api_key_here"

DEFAULT_ALLOWED_LANGUAGES = ["no", "nb", "nn", "da", "sv", "en"]


class Verbosity(str, Enum):
    """CLI output verbosity level."""

    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"


# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "podcastindex": {
        "api_key": "",
        "api_secret": "",
        "base_url": "https://api.podcastindex.org/api/1.0",
        "timeout": 30.0,
        "user_agent": "",
    },
    "search": {
        "query_debounce_ms": 300,
        "filter_debounce_ms": 200,
        "min_query_length": 2,
        "max_results": 100,
        "episode_max_results": 50,
        "fallback_podcasts": 5,
        "fallback_episodes": 10,
        "allowed_languages": DEFAULT_ALLOWED_LANGUAGES,
    },
    "categories": {
        "labels": {},
    },
}

_SEARCH_INT_KEYS = (
    "query_debounce_ms",
    "filter_debounce_ms",
    "min_query_length",
    "max_results",
    "episode_max_results",
    "fallback_podcasts",
    "fallback_episodes",
)


@dataclass
class PodcastIndexConfig:
    """Podcast Index API settings."""

    api_key: str = ""
    api_secret: str = ""
    base_url: str = "https://api.podcastindex.org/api/1.0"
    timeout: float = 30.0
    user_agent: str = ""


@dataclass
class SearchSettings:
    """Search orchestration tuning.

    The debounce delays and the minimum query length are user-experience
    heuristics, not correctness requirements.
    """

    query_debounce_ms: int = 300
    filter_debounce_ms: int = 200
    min_query_length: int = 2
    max_results: int = 100
    episode_max_results: int = 50
    fallback_podcasts: int = 5
    fallback_episodes: int = 10
    allowed_languages: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_LANGUAGES)
    )


@dataclass
class CategoryConfig:
    """Category display labels, keyed by catalog category name."""

    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class Config:
    """Main configuration container.

    Holds all configuration settings for podsearch, loaded from
    local and global config files with environment variable overrides.
    """

    podcastindex: PodcastIndexConfig = field(default_factory=PodcastIndexConfig)
    search: SearchSettings = field(default_factory=SearchSettings)
    categories: CategoryConfig = field(default_factory=CategoryConfig)

    def get_api_key(self) -> str:
        """Get the API key, preferring the PODCASTINDEX_API_KEY env var."""
        return os.environ.get(API_KEY_ENV, "") or self.podcastindex.api_key

    def get_api_secret(self) -> str:
        """Get the API secret, preferring the PODCASTINDEX_API_SECRET env var."""
        return os.environ.get(API_SECRET_ENV, "") or self.podcastindex.api_secret

    def is_configured(self) -> bool:
        """Check whether remote catalog credentials are available."""
        api_key = self.get_api_key()
        return bool(api_key and self.get_api_secret() and api_key != PLACEHOLDER_API_KEY)


def _generate_default_config_toml() -> str:
    """Generate default configuration as TOML string.

    Returns:
        TOML-formatted string with default configuration values.
    """
    return """# podsearch configuration file

[podcastindex]
# Podcast Index API credentials (https://api.podcastindex.org)
# Environment variables PODCASTINDEX_API_KEY and PODCASTINDEX_API_SECRET take precedence
api_key = ""
api_secret = ""

[search]
# Quiet time before a typed query is sent to the catalog
query_debounce_ms = 300
# Quiet time before a category or language change refreshes results
filter_debounce_ms = 200
# Shorter queries are not sent to the catalog
min_query_length = 2
max_results = 100
episode_max_results = 50
# Episodes are taken from this many top podcasts when episode search fails
fallback_podcasts = 5
fallback_episodes = 10
# Catalog results in other languages are dropped; empty list keeps all
allowed_languages = ["no", "nb", "nn", "da", "sv", "en"]

[categories.labels]
# Display labels for catalog categories, e.g.
# History = "Historie"
"""


def _ensure_local_config_exists(local_path: Path) -> None:
    """Create local config file with defaults if it doesn't exist.

    Args:
        local_path: Path to the local config file.
    """
    if not local_path.exists():
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_text(_generate_default_config_toml())


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load and parse a TOML configuration file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    if not path.exists():
        return {}

    try:
        content = path.read_text()
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file {path}: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary.
        override: Dictionary with values that override base.

    Returns:
        Merged dictionary with override values taking precedence.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values.

    Args:
        config_dict: Configuration dictionary to validate.

    Raises:
        ConfigError: If configuration values are invalid.
    """
    api_config = config_dict.get("podcastindex", {})
    for key in ["api_key", "api_secret", "base_url", "user_agent"]:
        value = api_config.get(key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(
                f"podcastindex.{key} must be a string, got {type(value).__name__}"
            )

    timeout = api_config.get("timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
        raise ConfigError(f"podcastindex.timeout must be a positive number, got {timeout!r}")

    search_config = config_dict.get("search", {})
    for key in _SEARCH_INT_KEYS:
        value = search_config.get(key)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"search.{key} must be a non-negative integer, got {value!r}")

    languages = search_config.get("allowed_languages")
    if not isinstance(languages, list) or not all(isinstance(x, str) for x in languages):
        raise ConfigError("search.allowed_languages must be a list of strings")

    labels = config_dict.get("categories", {}).get("labels", {})
    if not isinstance(labels, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in labels.items()
    ):
        raise ConfigError("categories.labels must map category names to strings")


def _dict_to_config(config_dict: dict[str, Any]) -> Config:
    """Convert configuration dictionary to Config dataclass.

    Args:
        config_dict: Configuration dictionary.

    Returns:
        Config object with values from dictionary.
    """
    api_dict = config_dict.get("podcastindex", {})
    search_dict = config_dict.get("search", {})
    categories_dict = config_dict.get("categories", {})

    return Config(
        podcastindex=PodcastIndexConfig(
            api_key=api_dict.get("api_key", ""),
            api_secret=api_dict.get("api_secret", ""),
            base_url=api_dict.get("base_url", PodcastIndexConfig.base_url),
            timeout=float(api_dict.get("timeout", 30.0)),
            user_agent=api_dict.get("user_agent", ""),
        ),
        search=SearchSettings(
            **{key: search_dict[key] for key in _SEARCH_INT_KEYS if key in search_dict},
            allowed_languages=[
                lang.lower() for lang in search_dict.get("allowed_languages", [])
            ],
        ),
        categories=CategoryConfig(labels=dict(categories_dict.get("labels", {}))),
    )


def load_config(
    local_path: Path | None = None,
    global_path: Path | None = None,
    auto_create_local: bool = True,
) -> Config:
    """Load configuration from local and global config files.

    Configuration priority (highest to lowest):
    1. Local config file (.podsearch/config in current directory)
    2. Global config file ($HOME/.podsearch/config)
    3. Default values

    If no configuration exists, creates local config with defaults.
    Global config is never auto-created.

    Args:
        local_path: Override path for local config file.
        global_path: Override path for global config file.
        auto_create_local: If True, create local config with defaults if no config exists.

    Returns:
        Config object with merged configuration values.

    Raises:
        ConfigError: If configuration files are invalid.
    """
    local_path = local_path or LOCAL_CONFIG_PATH
    global_path = global_path or GLOBAL_CONFIG_PATH

    merged_config = _deep_merge({}, DEFAULT_CONFIG)

    global_config = _load_toml_file(global_path)
    if global_config:
        merged_config = _deep_merge(merged_config, global_config)

    local_config = _load_toml_file(local_path)
    if local_config:
        merged_config = _deep_merge(merged_config, local_config)

    if auto_create_local and not local_config and not global_config:
        _ensure_local_config_exists(local_path)

    _validate_config(merged_config)

    return _dict_to_config(merged_config)


def get_config() -> Config:
    """Get the application configuration using default paths.

    Returns:
        Config object with merged configuration values.

    Raises:
        ConfigError: If configuration files are invalid.
    """
    return load_config()
