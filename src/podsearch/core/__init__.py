"""Core modules for podsearch."""

from podsearch.core.config import (
    CategoryConfig,
    Config,
    PodcastIndexConfig,
    SearchSettings,
    get_config,
    load_config,
)
from podsearch.core.errors import (
    CatalogError,
    ConfigError,
    DatasetError,
    FilterError,
    InvalidIdentifierError,
    PodsearchError,
)
from podsearch.core.matching import normalize_text, search_all
from podsearch.core.orchestrator import (
    SEARCH_FAILED_MESSAGE,
    SearchEvent,
    SearchOrchestrator,
    SearchPhase,
)
from podsearch.core.query import complete_words, parse_query, remote_terms

__all__ = [
    "CategoryConfig",
    "Config",
    "PodcastIndexConfig",
    "SearchSettings",
    "get_config",
    "load_config",
    "CatalogError",
    "ConfigError",
    "DatasetError",
    "FilterError",
    "InvalidIdentifierError",
    "PodsearchError",
    "normalize_text",
    "search_all",
    "SEARCH_FAILED_MESSAGE",
    "SearchEvent",
    "SearchOrchestrator",
    "SearchPhase",
    "complete_words",
    "parse_query",
    "remote_terms",
]
