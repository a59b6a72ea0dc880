"""Rule and lead storage."""

from leadrouter.routing.stores.inmemory import InMemoryLeadStore, InMemoryRuleStore
from leadrouter.routing.stores.lead_store import LeadStore
from leadrouter.routing.stores.postgres import PostgresLeadStore, PostgresRuleStore
from leadrouter.routing.stores.rule_store import RuleStore

__all__ = [
    "InMemoryLeadStore",
    "InMemoryRuleStore",
    "LeadStore",
    "PostgresLeadStore",
    "PostgresRuleStore",
    "RuleStore",
]
