"""Shared test fixtures for the leadrouter test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.config import get_settings
from leadrouter.membership import InMemoryOfficeDirectory, MembershipIndex
from leadrouter.routing.dispatcher import Dispatcher
from leadrouter.routing.selection import RoundRobinSelectionStrategy
from leadrouter.routing.stores import InMemoryLeadStore, InMemoryRuleStore
from leadrouter.routing.validation import RuleValidator
from tests.factories import OfficeFactory


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            toml_file = test_config_dir / filename
            toml_file.write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            if self.original_env[key] is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = self.original_env[key]


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"LEADROUTER_DEBUG": "true"}):
                # test code here
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# Routing fixtures: offices O1 (c-1, c-2), O2 (c-3, Y), O3 (X)


@pytest.fixture
def directory() -> InMemoryOfficeDirectory:
    """Office directory seeded with three offices."""
    return InMemoryOfficeDirectory(
        [
            OfficeFactory.create(id="O1", consultant_ids={"c-1", "c-2"}),
            OfficeFactory.create(id="O2", consultant_ids={"c-3", "Y"}),
            OfficeFactory.create(id="O3", consultant_ids={"X"}),
        ]
    )


@pytest.fixture
def membership(directory: InMemoryOfficeDirectory) -> MembershipIndex:
    return MembershipIndex(directory)


@pytest.fixture
def validator(membership: MembershipIndex) -> RuleValidator:
    return RuleValidator(membership)


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def rule_store(validator: RuleValidator, audit_log: InMemoryAuditLog) -> InMemoryRuleStore:
    return InMemoryRuleStore(validator, audit_log)


@pytest.fixture
def lead_store(audit_log: InMemoryAuditLog) -> InMemoryLeadStore:
    return InMemoryLeadStore(audit_log)


@pytest.fixture
def dispatcher(
    rule_store: InMemoryRuleStore,
    lead_store: InMemoryLeadStore,
    audit_log: InMemoryAuditLog,
    membership: MembershipIndex,
) -> Dispatcher:
    return Dispatcher(
        rule_store=rule_store,
        lead_store=lead_store,
        audit_log=audit_log,
        membership=membership,
        selection=RoundRobinSelectionStrategy(),
    )
