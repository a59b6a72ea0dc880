"""Fixtures for API tests: an app wired to in-memory stores and a signed token."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from leadrouter.api.app import create_app
from leadrouter.api.dependencies import (
    get_audit_log,
    get_dispatcher,
    get_lead_store,
    get_membership_index,
    get_rule_store,
)
from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.membership import MembershipIndex
from leadrouter.routing.dispatcher import Dispatcher
from leadrouter.routing.stores import InMemoryLeadStore, InMemoryRuleStore
from tests.factories import JWT_SECRET, TokenFactory


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    rule_store: InMemoryRuleStore,
    lead_store: InMemoryLeadStore,
    audit_log: InMemoryAuditLog,
    membership: MembershipIndex,
    dispatcher: Dispatcher,
) -> Generator[TestClient, None, None]:
    """TestClient over an app whose stores are the shared test fixtures."""
    monkeypatch.setenv("LEADROUTER_JWT_SECRET", JWT_SECRET)
    app = create_app()
    app.dependency_overrides[get_rule_store] = lambda: rule_store
    app.dependency_overrides[get_lead_store] = lambda: lead_store
    app.dependency_overrides[get_audit_log] = lambda: audit_log
    app.dependency_overrides[get_membership_index] = lambda: membership
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return TokenFactory.headers()
