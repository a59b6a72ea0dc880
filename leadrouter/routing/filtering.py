"""Operator-side filtering of the rule list."""

from collections.abc import Iterable

from leadrouter.routing.models import PriorityBand, Rule


def filter_rules(
    rules: Iterable[Rule],
    *,
    search: str | None = None,
    office_id: str | None = None,
    band: PriorityBand | None = None,
) -> list[Rule]:
    """Filter rules the way the rule list screen does.

    ``search`` is a case-insensitive substring match against the study
    destination, the lead source and the priority rendered as text.
    ``office_id`` matches the target office. Order is preserved.
    """
    needle = search.strip().lower() if search else ""
    results = []
    for rule in rules:
        if office_id and rule.target_office_id != office_id:
            continue
        if band is not None and rule.priority_band != band:
            continue
        if needle:
            haystack = (
                rule.criteria.study_destination or "",
                rule.criteria.lead_source or "",
                str(rule.priority),
            )
            if not any(needle in text.lower() for text in haystack):
                continue
        results.append(rule)
    return results
