"""Tests for Prometheus metrics."""

import pytest
from prometheus_client import REGISTRY

from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.routing.dispatcher import Dispatcher
from leadrouter.routing.errors import LeadNotFoundError
from leadrouter.routing.models import ManualMode
from leadrouter.routing.stores import InMemoryLeadStore, InMemoryRuleStore
from tests.factories import LeadFactory, RuleFactory


def _value(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestDispatchMetrics:
    """Tests for dispatch counters."""

    @pytest.mark.asyncio
    async def test_counts_outcomes(
        self, dispatcher: Dispatcher, lead_store: InMemoryLeadStore
    ) -> None:
        """Should count dispatches by mode and outcome."""
        labels = {"mode": "manual", "outcome": "assigned"}
        before = _value("leadrouter_dispatch_total", labels)
        await lead_store.save_lead(LeadFactory.create(id="l1"))

        await dispatcher.dispatch("l1", ManualMode(office_id="O1"), actor_id="op")

        assert _value("leadrouter_dispatch_total", labels) == before + 1

    @pytest.mark.asyncio
    async def test_counts_errors(self, dispatcher: Dispatcher) -> None:
        """Should count rejected dispatches by error code."""
        labels = {"mode": "manual", "error_type": "LEAD_NOT_FOUND"}
        before = _value("leadrouter_dispatch_errors_total", labels)

        with pytest.raises(LeadNotFoundError):
            await dispatcher.dispatch("missing", ManualMode(office_id="O1"), actor_id="op")

        assert _value("leadrouter_dispatch_errors_total", labels) == before + 1


class TestStoreMetrics:
    """Tests for rule and audit counters."""

    @pytest.mark.asyncio
    async def test_rule_and_audit_counters(
        self, rule_store: InMemoryRuleStore, audit_log: InMemoryAuditLog  # noqa: ARG002
    ) -> None:
        """Should count rule mutations and the audit entries they append."""
        rules_before = _value("leadrouter_rule_mutations_total", {"action": "created"})
        audit_before = _value("leadrouter_audit_entries_total", {"action": "rule_created"})

        await rule_store.create(RuleFactory.draft(), actor_id="op")

        assert _value("leadrouter_rule_mutations_total", {"action": "created"}) == rules_before + 1
        assert (
            _value("leadrouter_audit_entries_total", {"action": "rule_created"})
            == audit_before + 1
        )
