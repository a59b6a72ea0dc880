"""Immutable history of lead assignments and rule changes.

Every successful dispatch and every rule mutation appends exactly one
entry. Entries are never updated or deleted.
"""

from leadrouter.audit.models import AuditAction, AuditEntry
from leadrouter.audit.store import AuditLog
from leadrouter.audit.stores import InMemoryAuditLog, PostgresAuditLog

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditLog",
    "InMemoryAuditLog",
    "PostgresAuditLog",
]
