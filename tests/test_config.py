"""Tests for configuration loading.

Covers file layering, environment variable precedence, validation and the
generated default file.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
import tomli_w
from hypothesis import given, settings
from hypothesis import strategies as st

from podsearch.core.config import (
    API_KEY_ENV,
    API_SECRET_ENV,
    DEFAULT_ALLOWED_LANGUAGES,
    DEFAULT_CONFIG,
    PLACEHOLDER_API_KEY,
    Config,
    PodcastIndexConfig,
    _deep_merge,
    _generate_default_config_toml,
    load_config,
)
from podsearch.core.errors import ConfigError


def write_toml(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove credential variables from the environment."""
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    monkeypatch.delenv(API_SECRET_ENV, raising=False)


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, tmp_path: Path) -> None:
        """Test that missing files yield default values."""
        config = load_config(
            local_path=tmp_path / "local",
            global_path=tmp_path / "global",
            auto_create_local=False,
        )

        assert config.search.query_debounce_ms == 300
        assert config.search.filter_debounce_ms == 200
        assert config.search.min_query_length == 2
        assert config.search.allowed_languages == DEFAULT_ALLOWED_LANGUAGES
        assert config.categories.labels == {}
        assert not config.is_configured()
        assert not (tmp_path / "local").exists()

    def test_creates_local_config(self, tmp_path: Path) -> None:
        local = tmp_path / ".podsearch" / "config"

        load_config(local_path=local, global_path=tmp_path / "global")

        assert local.exists()
        assert tomllib.loads(local.read_text())["search"]["min_query_length"] == 2

    def test_local_overrides_global(self, tmp_path: Path) -> None:
        global_path = write_toml(
            tmp_path / "global",
            {
                "podcastindex": {"api_key": "global-key", "api_secret": "global-secret"},
                "search": {"max_results": 40},
            },
        )
        local_path = write_toml(tmp_path / "local", {"podcastindex": {"api_key": "local-key"}})

        config = load_config(local_path=local_path, global_path=global_path)

        assert config.podcastindex.api_key == "local-key"
        assert config.podcastindex.api_secret == "global-secret"
        assert config.search.max_results == 40
        assert config.is_configured()

    def test_category_labels(self, tmp_path: Path) -> None:
        local_path = write_toml(
            tmp_path / "local", {"categories": {"labels": {"History": "Historie"}}}
        )

        config = load_config(local_path=local_path, global_path=tmp_path / "global")

        assert config.categories.labels == {"History": "Historie"}

    def test_languages_lowercased(self, tmp_path: Path) -> None:
        local_path = write_toml(tmp_path / "local", {"search": {"allowed_languages": ["NO", "En"]}})

        config = load_config(local_path=local_path, global_path=tmp_path / "global")

        assert config.search.allowed_languages == ["no", "en"]

    def test_invalid_toml(self, tmp_path: Path) -> None:
        local_path = tmp_path / "local"
        local_path.write_text("[search\nmax_results = ")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(local_path=local_path, global_path=tmp_path / "global")

    @pytest.mark.parametrize(
        "override",
        [
            {"search": {"min_query_length": "two"}},
            {"search": {"query_debounce_ms": -1}},
            {"search": {"max_results": True}},
            {"search": {"allowed_languages": "no"}},
            {"podcastindex": {"timeout": 0}},
            {"podcastindex": {"api_key": 123}},
            {"categories": {"labels": {"History": 1}}},
        ],
    )
    def test_invalid_values(self, tmp_path: Path, override: dict[str, Any]) -> None:
        local_path = write_toml(tmp_path / "local", override)

        with pytest.raises(ConfigError):
            load_config(local_path=local_path, global_path=tmp_path / "global")


class TestCredentials:
    """Tests for credential resolution."""

    def test_env_takes_precedence(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(API_KEY_ENV, "env-key")
        monkeypatch.setenv(API_SECRET_ENV, "env-secret")
        config = Config(podcastindex=PodcastIndexConfig(api_key="file-key", api_secret="x"))

        assert config.get_api_key() == "env-key"
        assert config.get_api_secret() == "env-secret"

    def test_empty_env_falls_back_to_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(API_KEY_ENV, "")
        config = Config(podcastindex=PodcastIndexConfig(api_key="file-key"))

        assert config.get_api_key() == "file-key"

    def test_placeholder_is_not_configured(self) -> None:
        config = Config(
            podcastindex=PodcastIndexConfig(api_key=PLACEHOLDER_API_KEY, api_secret="secret")
        )

        assert not config.is_configured()

    @given(
        env_key=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=30),
        file_key=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", max_size=30),
    )
    @settings(max_examples=50)
    def test_env_key_always_wins(self, env_key: str, file_key: str) -> None:
        """Property: a non-empty environment key overrides any file key."""
        config = Config(podcastindex=PodcastIndexConfig(api_key=file_key))

        with patch.dict(os.environ, {API_KEY_ENV: env_key}):
            assert config.get_api_key() == env_key


class TestHelpers:
    """Tests for configuration helpers."""

    def test_generated_defaults_match(self) -> None:
        """Test that the generated file carries the built-in search defaults."""
        parsed = tomllib.loads(_generate_default_config_toml())

        assert parsed["search"] == DEFAULT_CONFIG["search"]
        assert parsed["categories"] == {"labels": {}}

    def test_deep_merge(self) -> None:
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = _deep_merge(base, {"a": {"y": 3}, "c": 4})

        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base == {"a": {"x": 1, "y": 2}, "b": 1}
