"""Prometheus metrics for lead distribution."""

from prometheus_client import Counter, Histogram

DISPATCH_COUNT = Counter(
    "leadrouter_dispatch_total",
    "Dispatch attempts by mode and outcome",
    labelnames=["mode", "outcome"],
)

DISPATCH_LATENCY = Histogram(
    "leadrouter_dispatch_latency_seconds",
    "Time spent resolving and committing one dispatch",
    labelnames=["mode"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

DISPATCH_ERRORS = Counter(
    "leadrouter_dispatch_errors_total",
    "Dispatch attempts rejected with an error",
    labelnames=["mode", "error_type"],
)

RULE_MUTATIONS = Counter(
    "leadrouter_rule_mutations_total",
    "Committed rule store mutations",
    labelnames=["action"],
)

AUDIT_ENTRIES = Counter(
    "leadrouter_audit_entries_total",
    "Audit entries appended",
    labelnames=["action"],
)
