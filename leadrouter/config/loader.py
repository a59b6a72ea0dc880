"""Layered TOML loading: config/default.toml, then config/{env}.toml."""

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "LEADROUTER_CONFIG_DIR"
ENVIRONMENT_ENV = "LEADROUTER_ENV"
DEFAULT_FILE = "default.toml"


def get_config_dir() -> Path:
    """Locate the directory holding default.toml.

    LEADROUTER_CONFIG_DIR wins when set and must exist. Otherwise the
    working directory and its parents are searched for a config/ folder
    that contains default.toml, so commands run from a subdirectory of
    the checkout (alembic, pytest) still find it.
    """
    configured = os.environ.get(CONFIG_DIR_ENV)
    if configured:
        path = Path(configured)
        if not path.is_dir():
            raise FileNotFoundError(f"Config directory not found: {configured}")
        return path

    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        candidate = directory / "config"
        if (candidate / DEFAULT_FILE).is_file():
            return candidate
    return cwd / "config"


def get_environment() -> str:
    return os.environ.get(ENVIRONMENT_ENV, "development")


def load_toml(file_path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the TOML syntax is invalid; the
            offending path is attached as a note
    """
    try:
        raw = file_path.read_bytes()
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {file_path}") from None

    try:
        return tomllib.loads(raw.decode("utf-8"))
    except tomllib.TOMLDecodeError as e:
        e.add_note(f"while reading {file_path}")
        raise


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return base with override laid over it; tables merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = deep_merge(current, value)
        merged[key] = value
    return merged


def load_config(
    environment: str | None = None,
    config_dir: Path | None = None,
) -> dict[str, Any]:
    """Load default.toml and merge the environment file over it.

    Args:
        environment: Environment name; defaults to LEADROUTER_ENV
        config_dir: Directory to read from; defaults to get_config_dir()

    Raises:
        FileNotFoundError: If default.toml is missing. The environment
            file is optional.
    """
    directory = config_dir or get_config_dir()
    environment = environment or get_environment()

    default_path = directory / DEFAULT_FILE
    if not default_path.is_file():
        raise FileNotFoundError(
            f"Default configuration file not found: {default_path}. "
            f"Create it or point {CONFIG_DIR_ENV} at a directory that has one."
        )

    layers = [default_path, directory / f"{environment}.toml"]
    config: dict[str, Any] = {}
    for path in layers:
        if path.is_file():
            config = deep_merge(config, load_toml(path))
    return config
