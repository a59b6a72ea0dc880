"""Unit tests for TOML configuration loader."""

import tomllib
from pathlib import Path

import pytest

from leadrouter.config.loader import (
    deep_merge,
    get_config_dir,
    get_environment,
    load_config,
    load_toml,
)


class TestDeepMerge:
    """Tests for deep_merge function."""

    def test_merge_nested_dicts(self) -> None:
        """Nested dictionaries are merged recursively."""
        base = {"dispatch": {"selection_strategy": "round_robin", "max_bulk_size": 200}}
        override = {"dispatch": {"max_bulk_size": 50}}

        result = deep_merge(base, override)

        assert result == {"dispatch": {"selection_strategy": "round_robin", "max_bulk_size": 50}}

    def test_override_replaces_non_dict(self) -> None:
        """Non-dict values in override replace base values."""
        assert deep_merge({"a": {"x": 1}}, {"a": "replaced"}) == {"a": "replaced"}

    def test_base_unmodified(self) -> None:
        """Original base dictionary is not modified."""
        base = {"a": 1}
        deep_merge(base, {"b": 2})
        assert base == {"a": 1}


class TestLoadToml:
    """Tests for load_toml function."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_toml(tmp_path / "missing.toml")

    def test_invalid_syntax(self, tmp_path: Path) -> None:
        """Invalid TOML raises TOMLDecodeError."""
        path = tmp_path / "bad.toml"
        path.write_text("[rules\nmin_priority = ")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml(path)


class TestEnvironment:
    """Tests for environment and directory resolution."""

    def test_default_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment defaults to development."""
        monkeypatch.delenv("LEADROUTER_ENV", raising=False)
        assert get_environment() == "development"

    def test_config_dir_from_env(self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """LEADROUTER_CONFIG_DIR overrides discovery."""
        monkeypatch.setenv("LEADROUTER_CONFIG_DIR", str(test_config_dir))
        assert get_config_dir() == test_config_dir

    def test_config_dir_missing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A configured directory that does not exist raises."""
        monkeypatch.setenv("LEADROUTER_CONFIG_DIR", str(tmp_path / "nope"))
        with pytest.raises(FileNotFoundError):
            get_config_dir()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_environment_file_overrides_default(
        self,
        test_config_dir: Path,
        mock_toml_files,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Environment TOML is merged over default.toml."""
        mock_toml_files(
            {
                "default.toml": "[rules]\nmin_priority = 1\nmax_priority = 100\n",
                "staging.toml": "[rules]\nmax_priority = 500\n",
            }
        )
        monkeypatch.setenv("LEADROUTER_CONFIG_DIR", str(test_config_dir))
        monkeypatch.setenv("LEADROUTER_ENV", "staging")

        config = load_config()

        assert config["rules"] == {"min_priority": 1, "max_priority": 500}

    def test_missing_default(self, test_config_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A config directory without default.toml raises."""
        monkeypatch.setenv("LEADROUTER_CONFIG_DIR", str(test_config_dir))
        with pytest.raises(FileNotFoundError):
            load_config()

    def test_explicit_environment_and_directory(self, test_config_dir: Path, mock_toml_files) -> None:
        """Arguments take precedence over LEADROUTER_ENV and discovery."""
        mock_toml_files(
            {
                "default.toml": "[dispatch]\nselection_strategy = 'round_robin'\n",
                "production.toml": "[dispatch]\nselection_strategy = 'least_loaded'\n",
            }
        )

        config = load_config(environment="production", config_dir=test_config_dir)

        assert config["dispatch"]["selection_strategy"] == "least_loaded"

    def test_discovers_config_in_parent(
        self, test_config_dir: Path, mock_toml_files, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A config/ folder with default.toml is found from a subdirectory."""
        mock_toml_files({"default.toml": "app_name = 'found'\n"})
        nested = test_config_dir.parent / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.delenv("LEADROUTER_CONFIG_DIR", raising=False)
        monkeypatch.chdir(nested)

        assert get_config_dir() == test_config_dir
