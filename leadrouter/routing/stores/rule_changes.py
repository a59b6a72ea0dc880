"""Rule mutation helpers shared by the rule store backends.

Everything here is pure: the stores call these inside their lock or
transaction and persist the results.
"""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

from leadrouter.audit.models import AuditAction, AuditEntry
from leadrouter.routing.errors import RuleNotFoundError, RuleValidationError
from leadrouter.routing.models import CRITERIA_FIELDS, Rule, RuleDraft, RulePatch, utc_now

_TRACKED_FIELDS = ("priority", "sequence", "target_office_id", "target_consultant_id")
# Only target_consultant_id may be patched to None
_REQUIRED_FIELDS = ("priority", "criteria", "target_office_id")


def sorted_rules(rules: Sequence[Rule]) -> tuple[Rule, ...]:
    return tuple(sorted(rules, key=lambda rule: rule.order_key))


def build_rule(draft: RuleDraft, sequence: int) -> Rule:
    now = utc_now()
    return Rule(
        priority=draft.priority,
        sequence=sequence,
        criteria=draft.criteria,
        target_office_id=draft.target_office_id,
        target_consultant_id=draft.target_consultant_id,
        created_at=now,
        updated_at=now,
    )


def apply_patch(rule: Rule, patch: RulePatch) -> Rule:
    """Return a new rule with the patch applied, re-validated as a whole.

    Raises:
        RuleValidationError: If the patch clears a field every rule needs
    """
    changes = patch.changes()
    for name in _REQUIRED_FIELDS:
        if name in changes and changes[name] is None:
            raise RuleValidationError(name, f"{name} cannot be cleared")
    data = rule.model_dump()
    data.update(changes)
    data["updated_at"] = utc_now()
    return Rule.model_validate(data)


def flatten(rule: Rule) -> dict[str, Any]:
    """Tracked fields of a rule with criteria flattened to ``criteria.<name>``."""
    values: dict[str, Any] = {name: getattr(rule, name) for name in _TRACKED_FIELDS}
    for name in CRITERIA_FIELDS:
        values[f"criteria.{name}"] = getattr(rule.criteria, name)
    return values


def diff_rules(before: Rule, after: Rule) -> dict[str, dict[str, Any]]:
    """Changed fields as ``{field: {"from": old, "to": new}}``."""
    old, new = flatten(before), flatten(after)
    return {
        name: {"from": old[name], "to": new[name]}
        for name in old
        if old[name] != new[name]
    }


def summarize(rule: Rule) -> str:
    criteria = rule.criteria.constraints()
    when = ", ".join(f"{k}={v}" for k, v in criteria.items()) or "any lead"
    target = rule.target_office_id
    if rule.target_consultant_id:
        target += f"/{rule.target_consultant_id}"
    return f"priority {rule.priority}, {when} -> {target}"


def describe_changes(changes: dict[str, dict[str, Any]]) -> str:
    parts = [f"{name}: {c['from']!r} -> {c['to']!r}" for name, c in changes.items()]
    return "; ".join(parts) or "no changes"


def rule_created_entry(rule: Rule, actor_id: str) -> AuditEntry:
    return AuditEntry(
        rule_id=rule.id,
        actor_id=actor_id,
        action=AuditAction.RULE_CREATED,
        description=f"Created rule ({summarize(rule)})",
        details={"rule": rule.snapshot()},
        timestamp=rule.created_at,
    )


def rule_updated_entry(
    before: Rule,
    after: Rule,
    actor_id: str,
    changes: dict[str, dict[str, Any]],
) -> AuditEntry:
    return AuditEntry(
        rule_id=after.id,
        actor_id=actor_id,
        action=AuditAction.RULE_UPDATED,
        description=f"Updated rule ({describe_changes(changes)})",
        details={
            "rule": after.snapshot(),
            "previous": before.snapshot(),
            "changes": changes,
        },
        timestamp=after.updated_at,
    )


def rule_deleted_entry(rule: Rule, actor_id: str) -> AuditEntry:
    return AuditEntry(
        rule_id=rule.id,
        actor_id=actor_id,
        action=AuditAction.RULE_DELETED,
        description=f"Deleted rule ({summarize(rule)})",
        details={"rule": rule.snapshot()},
    )


def resequence(
    rules: Sequence[Rule],
    rule_ids: Sequence[UUID],
) -> list[tuple[Rule, Rule]]:
    """Reassign sequence numbers so ``rule_ids`` list in the given order.

    Sequence only breaks ties, so the named rules must share a priority.
    The sequence values they already hold are redistributed among them,
    so rules not named keep their position. Returns
    ``(before, after)`` pairs for rules whose sequence changed.
    """
    if len(set(rule_ids)) != len(rule_ids):
        raise RuleValidationError("rule_ids", "Rule ids must not repeat")
    by_id = {rule.id: rule for rule in rules}
    for rule_id in rule_ids:
        if rule_id not in by_id:
            raise RuleNotFoundError(rule_id)
    if len({by_id[rule_id].priority for rule_id in rule_ids}) > 1:
        raise RuleValidationError(
            "rule_ids", "Only rules sharing a priority can be reordered"
        )

    slots = sorted(by_id[rule_id].sequence for rule_id in rule_ids)
    now = utc_now()
    changed = []
    for rule_id, sequence in zip(rule_ids, slots, strict=True):
        before = by_id[rule_id]
        if before.sequence == sequence:
            continue
        after = before.model_copy(update={"sequence": sequence, "updated_at": now})
        changed.append((before, after))
    return changed

