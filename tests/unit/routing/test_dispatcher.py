"""Tests for the Dispatcher."""

import asyncio

import pytest
import pytest_asyncio

from leadrouter.audit.models import AuditAction
from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.db.errors import ConflictError, ConnectionError
from leadrouter.membership import InMemoryOfficeDirectory, MembershipIndex
from leadrouter.routing.dispatcher import Dispatcher
from leadrouter.routing.errors import (
    ConcurrentModificationError,
    InvalidMembershipError,
    LeadNotFoundError,
)
from leadrouter.routing.models import AutomaticMode, DispatchOutcome, Lead, ManualMode
from leadrouter.routing.selection import ManualPickSelectionStrategy
from leadrouter.routing.stores import InMemoryLeadStore, InMemoryRuleStore
from tests.factories import LeadFactory, RuleFactory


class FlakyLeadStore(InMemoryLeadStore):
    """Lead store whose backend fails for chosen leads."""

    def __init__(self, audit_log: InMemoryAuditLog, failures: dict[str, Exception]) -> None:
        super().__init__(audit_log)
        self._failures = failures

    async def get_lead(self, lead_id: str) -> Lead | None:
        if lead_id in self._failures:
            raise self._failures[lead_id]
        return await super().get_lead(lead_id)


@pytest_asyncio.fixture
async def uk_and_catch_all(rule_store: InMemoryRuleStore) -> tuple:
    """Rule A (priority 5, UK -> O1) and rule B (priority 20, catch-all -> O2)."""
    rule_a = await rule_store.create(
        RuleFactory.draft(priority=5, study_destination="UK", target_office_id="O1"),
        actor_id="op",
    )
    rule_b = await rule_store.create(
        RuleFactory.draft(priority=20, target_office_id="O2"), actor_id="op"
    )
    return rule_a, rule_b


class TestAutomaticDispatch:
    """Tests for rule-driven dispatch."""

    @pytest.mark.asyncio
    async def test_matching_rule_selects_office(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should route a UK lead through rule A to O1."""
        rule_a, _ = uk_and_catch_all
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="UK"))

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert result.outcome == DispatchOutcome.ASSIGNED
        assert result.rule_id == rule_a.id
        assert result.office_id == "O1"
        assert result.consultant_id in {"c-1", "c-2"}

    @pytest.mark.asyncio
    async def test_falls_through_to_catch_all(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should route a Canada lead through rule B to O2."""
        _, rule_b = uk_and_catch_all
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="Canada"))

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert result.rule_id == rule_b.id
        assert result.office_id == "O2"

    @pytest.mark.asyncio
    async def test_tie_goes_to_first_created(
        self,
        dispatcher: Dispatcher,
        rule_store: InMemoryRuleStore,
        lead_store: InMemoryLeadStore,
    ) -> None:
        """Should pick the earlier of two equal-priority matching rules."""
        first = await rule_store.create(
            RuleFactory.draft(priority=10, target_office_id="O1"), actor_id="op"
        )
        await rule_store.create(RuleFactory.draft(priority=10, target_office_id="O2"), actor_id="op")
        await lead_store.save_lead(LeadFactory.create(id="l1"))

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert result.rule_id == first.id

    @pytest.mark.asyncio
    async def test_commit_writes_one_matching_entry(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should append exactly one entry whose new values equal the stored lead."""
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="UK"))

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        lead = await lead_store.get_lead("l1")
        entries = await audit_log.for_lead("l1")
        assert lead is not None
        assert len(entries) == 1
        entry = entries[0]
        assert entry.id == result.audit_entry_id
        assert entry.action == AuditAction.AUTO_ASSIGNED
        assert entry.actor_id == "system"
        assert entry.details["new"] == {
            "office_id": lead.office_id,
            "consultant_id": lead.assigned_consultant_id,
        }
        assert entry.details["previous"] == {"office_id": None, "consultant_id": None}
        assert entry.details["selection_strategy"] == "round_robin"
        assert result.lead_version == lead.version == 2

    @pytest.mark.asyncio
    async def test_no_match_writes_nothing(
        self,
        dispatcher: Dispatcher,
        rule_store: InMemoryRuleStore,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should return UNASSIGNED and leave lead and log unchanged."""
        await rule_store.create(
            RuleFactory.draft(priority=5, study_destination="UK"), actor_id="op"
        )
        saved = await lead_store.save_lead(LeadFactory.create(id="l1", destination="Canada"))

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert result.outcome == DispatchOutcome.UNASSIGNED
        assert result.rule_id is None
        assert await lead_store.get_lead("l1") == saved
        assert await audit_log.for_lead("l1") == []

    @pytest.mark.asyncio
    async def test_removed_consultant_is_invalid_membership(
        self,
        dispatcher: Dispatcher,
        rule_store: InMemoryRuleStore,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
        directory: InMemoryOfficeDirectory,
    ) -> None:
        """Should refuse a rule whose consultant left the office since creation."""
        await rule_store.create(
            RuleFactory.draft(priority=1, target_office_id="O3", target_consultant_id="X"),
            actor_id="op",
        )
        saved = await lead_store.save_lead(LeadFactory.create(id="l1"))
        await directory.remove_member("O3", "X")

        with pytest.raises(InvalidMembershipError) as exc_info:
            await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert exc_info.value.consultant_id == "X"
        assert exc_info.value.office_id == "O3"
        assert await lead_store.get_lead("l1") == saved
        assert await audit_log.for_lead("l1") == []

    @pytest.mark.asyncio
    async def test_removed_office_is_invalid_membership(
        self,
        dispatcher: Dispatcher,
        rule_store: InMemoryRuleStore,
        lead_store: InMemoryLeadStore,
        directory: InMemoryOfficeDirectory,
    ) -> None:
        """Should refuse a rule whose target office no longer exists."""
        await rule_store.create(RuleFactory.draft(target_office_id="O2"), actor_id="op")
        await lead_store.save_lead(LeadFactory.create(id="l1"))
        await directory.delete_office("O2")

        with pytest.raises(InvalidMembershipError):
            await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

    @pytest.mark.asyncio
    async def test_assigned_lead_is_not_overwritten(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should report ALREADY_ASSIGNED unless rerun is requested."""
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="Canada"))
        await dispatcher.dispatch("l1", ManualMode(office_id="O1", consultant_id="c-1"), actor_id="op")

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert result.outcome == DispatchOutcome.ALREADY_ASSIGNED
        assert result.office_id == "O1"
        assert len(await audit_log.for_lead("l1")) == 1

    @pytest.mark.asyncio
    async def test_rerun_reassigns(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should re-evaluate rules for an assigned lead when rerun is set."""
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="Canada"))
        await dispatcher.dispatch("l1", ManualMode(office_id="O1", consultant_id="c-1"), actor_id="op")

        result = await dispatcher.dispatch("l1", AutomaticMode(rerun=True), actor_id="admin")

        assert result.outcome == DispatchOutcome.ASSIGNED
        assert result.office_id == "O2"
        assert result.previous_office_id == "O1"
        assert result.previous_consultant_id == "c-1"

    @pytest.mark.asyncio
    async def test_manual_pick_assigns_office_only(
        self,
        rule_store: InMemoryRuleStore,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
        membership: MembershipIndex,
    ) -> None:
        """Should leave the consultant empty when the strategy declines to pick."""
        dispatcher = Dispatcher(
            rule_store, lead_store, audit_log, membership, ManualPickSelectionStrategy()
        )
        await rule_store.create(RuleFactory.draft(target_office_id="O2"), actor_id="op")
        await lead_store.save_lead(LeadFactory.create(id="l1"))

        result = await dispatcher.dispatch("l1", AutomaticMode(), actor_id="system")

        assert result.outcome == DispatchOutcome.ASSIGNED
        assert (result.office_id, result.consultant_id) == ("O2", None)

    @pytest.mark.asyncio
    async def test_unknown_lead(self, dispatcher: Dispatcher) -> None:
        """Should raise LeadNotFoundError."""
        with pytest.raises(LeadNotFoundError):
            await dispatcher.dispatch("missing", AutomaticMode(), actor_id="system")


class TestManualDispatch:
    """Tests for operator overrides."""

    @pytest.mark.asyncio
    async def test_manual_assignment_records_prior_values(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should assign Y in O2 and append one reassigned entry."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))
        await dispatcher.dispatch("l1", ManualMode(office_id="O1", consultant_id="c-1"), actor_id="op")

        result = await dispatcher.dispatch(
            "l1", ManualMode(office_id="O2", consultant_id="Y"), actor_id="op-2"
        )

        assert result.outcome == DispatchOutcome.ASSIGNED
        assert (result.office_id, result.consultant_id) == ("O2", "Y")
        entries = await audit_log.for_lead("l1")
        assert len(entries) == 2
        last = entries[-1]
        assert last.action == AuditAction.REASSIGNED
        assert last.actor_id == "op-2"
        assert last.details["previous"] == {"office_id": "O1", "consultant_id": "c-1"}
        assert last.details["new"] == {"office_id": "O2", "consultant_id": "Y"}
        assert last.details["rule_id"] is None

    @pytest.mark.asyncio
    async def test_manual_bypasses_rules(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should ignore matching rules in manual mode."""
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="UK"))

        result = await dispatcher.dispatch("l1", ManualMode(office_id="O3"), actor_id="op")

        assert result.rule_id is None
        assert (result.office_id, result.consultant_id) == ("O3", None)

    @pytest.mark.asyncio
    async def test_manual_non_member(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should raise InvalidMembershipError and leave the lead unchanged."""
        saved = await lead_store.save_lead(LeadFactory.create(id="l1"))

        with pytest.raises(InvalidMembershipError):
            await dispatcher.dispatch(
                "l1", ManualMode(office_id="O2", consultant_id="X"), actor_id="op"
            )

        assert await lead_store.get_lead("l1") == saved
        assert await audit_log.for_lead("l1") == []

    @pytest.mark.asyncio
    async def test_same_target_is_unchanged(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should write nothing when the target equals the current assignment."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))
        mode = ManualMode(office_id="O2", consultant_id="Y")
        await dispatcher.dispatch("l1", mode, actor_id="op")

        result = await dispatcher.dispatch("l1", mode, actor_id="op")

        assert result.outcome == DispatchOutcome.UNCHANGED
        assert len(await audit_log.for_lead("l1")) == 1


class TestConcurrency:
    """Tests for version checks, locking and idempotency."""

    @pytest.mark.asyncio
    async def test_expected_version_mismatch(
        self, dispatcher: Dispatcher, lead_store: InMemoryLeadStore
    ) -> None:
        """Should raise ConcurrentModificationError for a stale version."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))

        with pytest.raises(ConcurrentModificationError):
            await dispatcher.dispatch(
                "l1", ManualMode(office_id="O1"), actor_id="op", expected_version=5
            )

    @pytest.mark.asyncio
    async def test_concurrent_dispatches_leave_consistent_history(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should serialise racing dispatches so every commit has one entry."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))
        modes = [
            ManualMode(office_id="O1", consultant_id="c-1"),
            ManualMode(office_id="O2", consultant_id="Y"),
            ManualMode(office_id="O3", consultant_id="X"),
        ]

        results = await asyncio.gather(
            *(dispatcher.dispatch("l1", mode, actor_id="op") for mode in modes)
        )

        entries = await audit_log.for_lead("l1")
        lead = await lead_store.get_lead("l1")
        assert lead is not None
        assert all(r.outcome == DispatchOutcome.ASSIGNED for r in results)
        assert len(entries) == 3
        assert entries[-1].details["new"] == {
            "office_id": lead.office_id,
            "consultant_id": lead.assigned_consultant_id,
        }
        # each entry's previous is the prior entry's new
        for before, after in zip(entries, entries[1:]):
            assert after.details["previous"] == before.details["new"]

    @pytest.mark.asyncio
    async def test_idempotency_key_replays(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should return the recorded result on retry without a second entry."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))
        mode = ManualMode(office_id="O2", consultant_id="Y")

        first = await dispatcher.dispatch("l1", mode, actor_id="op", idempotency_key="k-1")
        retry = await dispatcher.dispatch("l1", mode, actor_id="op", idempotency_key="k-1")

        assert first.replayed is False
        assert retry.replayed is True
        assert retry.audit_entry_id == first.audit_entry_id
        assert (retry.office_id, retry.consultant_id) == ("O2", "Y")
        assert len(await audit_log.for_lead("l1")) == 1

    @pytest.mark.asyncio
    async def test_new_key_dispatches_again(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should treat a different key as a new attempt."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))

        await dispatcher.dispatch(
            "l1", ManualMode(office_id="O1"), actor_id="op", idempotency_key="k-1"
        )
        await dispatcher.dispatch(
            "l1", ManualMode(office_id="O2"), actor_id="op", idempotency_key="k-2"
        )

        assert len(await audit_log.for_lead("l1")) == 2


class TestBulkDispatch:
    """Tests for dispatch_many."""

    @pytest.mark.asyncio
    async def test_failures_are_per_lead(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should report an error for one lead and continue with the rest."""
        await lead_store.save_lead(LeadFactory.create(id="l1", destination="UK"))
        await lead_store.save_lead(LeadFactory.create(id="l2", destination="Canada"))

        items = await dispatcher.dispatch_many(
            ["l1", "missing", "l2", "l1"], AutomaticMode(), actor_id="system"
        )

        assert [item.lead_id for item in items] == ["l1", "missing", "l2"]
        assert items[0].result is not None and items[0].result.office_id == "O1"
        assert items[1].error is not None and items[1].error.code == "LEAD_NOT_FOUND"
        assert items[2].result is not None and items[2].result.office_id == "O2"

    @pytest.mark.asyncio
    async def test_backend_failure_is_per_lead(
        self,
        rule_store: InMemoryRuleStore,
        audit_log: InMemoryAuditLog,
        membership: MembershipIndex,
    ) -> None:
        """Should record a store error for one lead and still dispatch the others."""
        lead_store = FlakyLeadStore(
            audit_log,
            {
                "b": ConnectionError("database down"),
                "c": ConflictError("duplicate idempotency key"),
            },
        )
        for lead_id in ("a", "b", "c", "d"):
            await lead_store.save_lead(LeadFactory.create(id=lead_id))
        dispatcher = Dispatcher(
            rule_store=rule_store,
            lead_store=lead_store,
            audit_log=audit_log,
            membership=membership,
            selection=ManualPickSelectionStrategy(),
        )

        items = await dispatcher.dispatch_many(
            ["a", "b", "c", "d"], ManualMode(office_id="O2", consultant_id="Y"), actor_id="op"
        )

        assert [item.lead_id for item in items] == ["a", "b", "c", "d"]
        assert items[0].result is not None and items[0].result.committed
        assert items[1].error is not None and items[1].error.code == "BACKEND_UNAVAILABLE"
        assert items[1].error.message == "database down"
        assert items[2].error is not None and items[2].error.code == "CONFLICT"
        assert items[3].result is not None and items[3].result.committed
        assert len(await audit_log.for_lead("d")) == 1

    @pytest.mark.asyncio
    async def test_single_dispatch_propagates_store_error(
        self,
        rule_store: InMemoryRuleStore,
        audit_log: InMemoryAuditLog,
        membership: MembershipIndex,
    ) -> None:
        """Should leave store errors to the caller outside a batch."""
        lead_store = FlakyLeadStore(audit_log, {"a": ConnectionError("down")})
        dispatcher = Dispatcher(
            rule_store=rule_store,
            lead_store=lead_store,
            audit_log=audit_log,
            membership=membership,
            selection=ManualPickSelectionStrategy(),
        )

        with pytest.raises(ConnectionError):
            await dispatcher.dispatch("a", AutomaticMode(), actor_id="op")

    @pytest.mark.asyncio
    async def test_bulk_retry_replays_per_lead(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
    ) -> None:
        """Should derive a key per lead so a retried batch writes nothing new."""
        for lead_id in ("l1", "l2"):
            await lead_store.save_lead(LeadFactory.create(id=lead_id))
        mode = ManualMode(office_id="O1")

        await dispatcher.dispatch_many(["l1", "l2"], mode, actor_id="op", idempotency_key="batch")
        items = await dispatcher.dispatch_many(
            ["l1", "l2"], mode, actor_id="op", idempotency_key="batch"
        )

        assert all(item.result is not None and item.result.replayed for item in items)
        assert len(await audit_log.for_lead("l1")) == 1
        assert (await audit_log.for_lead("l2"))[0].idempotency_key == "batch:l2"


class TestPreviewAndHistory:
    """Tests for preview and history."""

    @pytest.mark.asyncio
    async def test_preview_does_not_write(
        self,
        dispatcher: Dispatcher,
        lead_store: InMemoryLeadStore,
        audit_log: InMemoryAuditLog,
        uk_and_catch_all: tuple,
    ) -> None:
        """Should report the matching rule and every evaluation without assigning."""
        rule_a, rule_b = uk_and_catch_all
        saved = await lead_store.save_lead(LeadFactory.create(id="l1", destination="Canada"))

        preview = await dispatcher.preview("l1")

        assert preview.rule is not None and preview.rule.id == rule_b.id
        assert [e.rule_id for e in preview.evaluations] == [rule_a.id, rule_b.id]
        assert await lead_store.get_lead("l1") == saved
        assert await audit_log.for_lead("l1") == []

    @pytest.mark.asyncio
    async def test_history_in_order(
        self, dispatcher: Dispatcher, lead_store: InMemoryLeadStore
    ) -> None:
        """Should list the lead's entries chronologically."""
        await lead_store.save_lead(LeadFactory.create(id="l1"))
        await dispatcher.dispatch("l1", ManualMode(office_id="O1"), actor_id="op")
        await dispatcher.dispatch("l1", ManualMode(office_id="O2"), actor_id="op")

        history = await dispatcher.history("l1")

        assert [e.details["new"]["office_id"] for e in history] == ["O1", "O2"]
