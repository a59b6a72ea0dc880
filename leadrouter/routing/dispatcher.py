"""Lead dispatch: resolve, validate, commit and audit an assignment."""

import time
from collections.abc import Sequence

from leadrouter.audit.models import AuditAction, AuditEntry
from leadrouter.audit.store import AuditLog
from leadrouter.db.errors import StoreError
from leadrouter.membership import MembershipIndex
from leadrouter.observability.logging import get_logger
from leadrouter.observability.metrics import DISPATCH_COUNT, DISPATCH_ERRORS, DISPATCH_LATENCY
from leadrouter.routing.errors import (
    ConcurrentModificationError,
    InvalidMembershipError,
    LeadNotFoundError,
    RoutingError,
)
from leadrouter.routing.locks import LeadLocks
from leadrouter.routing.matcher import explain, match
from leadrouter.routing.models import (
    AssignmentResult,
    AutomaticMode,
    BulkDispatchItem,
    DispatchFailure,
    DispatchMode,
    DispatchOutcome,
    Lead,
    ManualMode,
    MatchPreview,
    Rule,
)
from leadrouter.routing.selection import ConsultantSelectionStrategy
from leadrouter.routing.stores import LeadStore, RuleStore

logger = get_logger(__name__)


class Dispatcher:
    """Assigns leads to an office and consultant.

    Automatic mode routes through the first matching rule; manual mode
    takes the operator's choice. Both re-check membership against the
    directory right before committing, and both commit the lead update
    and its audit entry together.

    Dispatches of one lead are serialised by ``LeadLocks`` in this
    process and by the lead's version across processes. A dispatch that
    carries an idempotency key already recorded for the lead returns the
    recorded result and writes nothing.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        lead_store: LeadStore,
        audit_log: AuditLog,
        membership: MembershipIndex,
        selection: ConsultantSelectionStrategy,
        locks: LeadLocks | None = None,
    ) -> None:
        self._rule_store = rule_store
        self._lead_store = lead_store
        self._audit_log = audit_log
        self._membership = membership
        self._selection = selection
        self._locks = locks or LeadLocks()

    async def dispatch(
        self,
        lead_id: str,
        mode: DispatchMode,
        *,
        actor_id: str,
        idempotency_key: str | None = None,
        expected_version: int | None = None,
    ) -> AssignmentResult:
        """Dispatch one lead.

        Args:
            lead_id: Lead to dispatch
            mode: AutomaticMode or ManualMode
            actor_id: Operator, or a system actor, recorded in the audit entry
            idempotency_key: Key identifying this attempt across retries
            expected_version: Fail unless the lead is at this version

        Raises:
            LeadNotFoundError: Unknown lead
            InvalidMembershipError: Target consultant not in target office
            ConcurrentModificationError: Lead changed under the caller
        """
        start = time.perf_counter()
        try:
            async with self._locks.hold(lead_id):
                result = await self._dispatch_locked(
                    lead_id,
                    mode,
                    actor_id=actor_id,
                    idempotency_key=idempotency_key,
                    expected_version=expected_version,
                )
        except (RoutingError, StoreError) as e:
            DISPATCH_ERRORS.labels(mode=mode.kind, error_type=e.code).inc()
            raise
        finally:
            DISPATCH_LATENCY.labels(mode=mode.kind).observe(time.perf_counter() - start)

        DISPATCH_COUNT.labels(mode=mode.kind, outcome=result.outcome.value).inc()
        logger.info(
            "lead_dispatched",
            lead_id=lead_id,
            mode=mode.kind,
            outcome=result.outcome.value,
            rule_id=str(result.rule_id) if result.rule_id else None,
            office_id=result.office_id,
            consultant_id=result.consultant_id,
            replayed=result.replayed,
            actor_id=actor_id,
        )
        return result

    async def dispatch_many(
        self,
        lead_ids: Sequence[str],
        mode: DispatchMode,
        *,
        actor_id: str,
        idempotency_key: str | None = None,
    ) -> list[BulkDispatchItem]:
        """Dispatch several leads independently.

        A routing or store error on one lead is captured in its item and
        the batch continues; leads already committed stay committed. With an idempotency key, each lead gets the derived key
        ``"{key}:{lead_id}"`` so a retried batch replays per lead.
        """
        items = []
        for lead_id in dict.fromkeys(lead_ids):
            lead_key = f"{idempotency_key}:{lead_id}" if idempotency_key else None
            try:
                result = await self.dispatch(
                    lead_id, mode, actor_id=actor_id, idempotency_key=lead_key
                )
            except (RoutingError, StoreError) as e:
                logger.warning(
                    "bulk_dispatch_item_failed",
                    lead_id=lead_id,
                    error_type=e.code,
                    error=e.message,
                )
                items.append(
                    BulkDispatchItem(
                        lead_id=lead_id,
                        error=DispatchFailure(code=e.code, message=e.message),
                    )
                )
            else:
                items.append(BulkDispatchItem(lead_id=lead_id, result=result))

        logger.info(
            "bulk_dispatch_completed",
            mode=mode.kind,
            total=len(items),
            failed=sum(1 for item in items if item.error is not None),
            actor_id=actor_id,
        )
        return items

    async def preview(self, lead_id: str) -> MatchPreview:
        """Show which rule automatic dispatch would pick, without writing."""
        lead = await self._load(lead_id)
        rules = await self._rule_store.list_rules()
        return MatchPreview(
            lead_id=lead_id,
            rule=match(lead, rules),
            evaluations=explain(lead, rules),
        )

    async def history(self, lead_id: str) -> list[AuditEntry]:
        """The lead's audit entries; available even after the lead is purged."""
        return await self._audit_log.for_lead(lead_id)

    async def _dispatch_locked(
        self,
        lead_id: str,
        mode: DispatchMode,
        *,
        actor_id: str,
        idempotency_key: str | None,
        expected_version: int | None,
    ) -> AssignmentResult:
        if idempotency_key is not None:
            prior = await self._audit_log.find_by_idempotency_key(lead_id, idempotency_key)
            if prior is not None:
                return self._replay(prior)

        lead = await self._load(lead_id)
        if expected_version is not None and lead.version != expected_version:
            raise ConcurrentModificationError(lead_id, expected_version, lead.version)

        rule: Rule | None = None
        if isinstance(mode, AutomaticMode):
            if lead.is_assigned and not mode.rerun:
                return self._without_write(lead, mode, DispatchOutcome.ALREADY_ASSIGNED)
            rule = match(lead, await self._rule_store.list_rules())
            if rule is None:
                return self._without_write(lead, mode, DispatchOutcome.UNASSIGNED)
            office_id, consultant_id = await self._resolve_rule_target(lead, rule)
        else:
            office_id, consultant_id = await self._resolve_manual_target(lead, mode)

        if (office_id, consultant_id) == (lead.office_id, lead.assigned_consultant_id):
            return self._without_write(lead, mode, DispatchOutcome.UNCHANGED, rule=rule)

        entry = self._assignment_entry(
            lead, mode, rule, office_id, consultant_id, actor_id, idempotency_key
        )
        updated, stored = await self._lead_store.commit_assignment(
            lead_id,
            expected_version=lead.version,
            office_id=office_id,
            consultant_id=consultant_id,
            entry=entry,
        )
        return AssignmentResult(
            lead_id=lead_id,
            outcome=DispatchOutcome.ASSIGNED,
            mode=mode.kind,
            rule_id=rule.id if rule else None,
            office_id=updated.office_id,
            consultant_id=updated.assigned_consultant_id,
            previous_office_id=lead.office_id,
            previous_consultant_id=lead.assigned_consultant_id,
            audit_entry_id=stored.id,
            lead_version=updated.version,
        )

    async def _load(self, lead_id: str) -> Lead:
        lead = await self._lead_store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return lead

    async def _resolve_rule_target(self, lead: Lead, rule: Rule) -> tuple[str, str | None]:
        office_id = rule.target_office_id
        await self._require_office(lead, office_id, rule.target_consultant_id)
        if rule.target_consultant_id is not None:
            await self._require_member(lead, rule.target_consultant_id, office_id, rule)
            return office_id, rule.target_consultant_id

        candidates = await self._membership.members_of(office_id)
        consultant_id = await self._selection.select(lead, office_id, candidates)
        logger.debug(
            "consultant_selected",
            lead_id=lead.id,
            office_id=office_id,
            strategy=self._selection.name,
            candidates=len(candidates),
            consultant_id=consultant_id,
        )
        return office_id, consultant_id

    async def _resolve_manual_target(
        self, lead: Lead, mode: ManualMode
    ) -> tuple[str, str | None]:
        await self._require_office(lead, mode.office_id, mode.consultant_id)
        if mode.consultant_id is not None:
            await self._require_member(lead, mode.consultant_id, mode.office_id, None)
        return mode.office_id, mode.consultant_id

    async def _require_office(
        self, lead: Lead, office_id: str, consultant_id: str | None
    ) -> None:
        if not await self._membership.office_exists(office_id):
            logger.warning(
                "dispatch_invalid_membership",
                lead_id=lead.id,
                office_id=office_id,
                reason="office_missing",
            )
            raise InvalidMembershipError(
                consultant_id, office_id, f"Office {office_id} does not exist"
            )

    async def _require_member(
        self, lead: Lead, consultant_id: str, office_id: str, rule: Rule | None
    ) -> None:
        if not await self._membership.is_member(consultant_id, office_id):
            logger.warning(
                "dispatch_invalid_membership",
                lead_id=lead.id,
                office_id=office_id,
                consultant_id=consultant_id,
                rule_id=str(rule.id) if rule else None,
                reason="not_a_member",
            )
            raise InvalidMembershipError(consultant_id, office_id)

    def _assignment_entry(
        self,
        lead: Lead,
        mode: DispatchMode,
        rule: Rule | None,
        office_id: str,
        consultant_id: str | None,
        actor_id: str,
        idempotency_key: str | None,
    ) -> AuditEntry:
        previous = _describe_target(lead.office_id, lead.assigned_consultant_id)
        new = _describe_target(office_id, consultant_id)
        if rule is not None:
            action = AuditAction.AUTO_ASSIGNED
            description = f"Auto-assigned to {new} by rule {rule.id} (priority {rule.priority})"
        else:
            action = AuditAction.REASSIGNED
            description = f"Reassigned from {previous} to {new}"
        return AuditEntry(
            lead_id=lead.id,
            actor_id=actor_id,
            action=action,
            description=description,
            details={
                "mode": mode.kind,
                "rule_id": str(rule.id) if rule else None,
                "rule_priority": rule.priority if rule else None,
                "selection_strategy": (
                    self._selection.name
                    if rule is not None and rule.target_consultant_id is None
                    else None
                ),
                "previous": {
                    "office_id": lead.office_id,
                    "consultant_id": lead.assigned_consultant_id,
                },
                "new": {"office_id": office_id, "consultant_id": consultant_id},
                "lead_version": lead.version + 1,
            },
            idempotency_key=idempotency_key,
        )

    @staticmethod
    def _without_write(
        lead: Lead,
        mode: DispatchMode,
        outcome: DispatchOutcome,
        rule: Rule | None = None,
    ) -> AssignmentResult:
        return AssignmentResult(
            lead_id=lead.id,
            outcome=outcome,
            mode=mode.kind,
            rule_id=rule.id if rule else None,
            office_id=lead.office_id,
            consultant_id=lead.assigned_consultant_id,
            previous_office_id=lead.office_id,
            previous_consultant_id=lead.assigned_consultant_id,
            lead_version=lead.version,
        )

    @staticmethod
    def _replay(entry: AuditEntry) -> AssignmentResult:
        details = entry.details
        logger.info(
            "dispatch_replayed",
            lead_id=entry.lead_id,
            audit_entry_id=str(entry.id),
            idempotency_key=entry.idempotency_key,
        )
        return AssignmentResult(
            lead_id=entry.lead_id or "",
            outcome=DispatchOutcome.ASSIGNED,
            mode=details.get("mode", "automatic"),
            rule_id=details.get("rule_id"),
            office_id=details["new"]["office_id"],
            consultant_id=details["new"]["consultant_id"],
            previous_office_id=details["previous"]["office_id"],
            previous_consultant_id=details["previous"]["consultant_id"],
            audit_entry_id=entry.id,
            lead_version=details.get("lead_version"),
            replayed=True,
        )


def _describe_target(office_id: str | None, consultant_id: str | None) -> str:
    if office_id is None and consultant_id is None:
        return "nobody"
    if consultant_id is None:
        return f"office {office_id}"
    return f"office {office_id}, consultant {consultant_id}"
