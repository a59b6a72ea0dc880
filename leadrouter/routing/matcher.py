"""First-match rule evaluation.

Pure functions over a lead snapshot and a rule snapshot; nothing here
reads a store or writes anything.
"""

from collections.abc import Iterable, Sequence

from leadrouter.routing.models import Lead, Rule, RuleEvaluation


def evaluation_order(rules: Iterable[Rule]) -> list[Rule]:
    """Rules in ascending priority.

    The sort is stable, so rules sharing a priority keep the order they
    were given in (the rule store lists them by sequence).
    """
    return sorted(rules, key=lambda rule: rule.priority)


def failed_criteria(lead: Lead, rule: Rule) -> list[str]:
    """Names of the rule's criteria the lead does not satisfy.

    A set criterion needs the lead field to be present and exactly equal.
    """
    values = lead.criteria_values()
    return [
        name
        for name, expected in rule.criteria.constraints().items()
        if values[name] is None or values[name] != expected
    ]


def matches(lead: Lead, rule: Rule) -> bool:
    return not failed_criteria(lead, rule)


def match(lead: Lead, rules: Sequence[Rule]) -> Rule | None:
    """Return the first rule in evaluation order that the lead satisfies."""
    for rule in evaluation_order(rules):
        if matches(lead, rule):
            return rule
    return None


def explain(lead: Lead, rules: Sequence[Rule]) -> list[RuleEvaluation]:
    """Evaluate every rule against the lead, in evaluation order."""
    evaluations = []
    for rule in evaluation_order(rules):
        failed = failed_criteria(lead, rule)
        evaluations.append(
            RuleEvaluation(
                rule_id=rule.id,
                priority=rule.priority,
                matched=not failed,
                failed_criteria=failed,
            )
        )
    return evaluations
