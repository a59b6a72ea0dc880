"""Audit domain models."""

from leadrouter.audit.models.entry import AuditAction, AuditEntry, utc_now

__all__ = [
    "AuditAction",
    "AuditEntry",
    "utc_now",
]
