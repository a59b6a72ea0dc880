"""Audit log implementations."""

from leadrouter.audit.stores.inmemory import InMemoryAuditLog
from leadrouter.audit.stores.postgres import PostgresAuditLog

__all__ = ["InMemoryAuditLog", "PostgresAuditLog"]
