"""Database infrastructure: connection pool, store errors and migrations."""

from leadrouter.db.errors import ConflictError, ConnectionError, StoreError
from leadrouter.db.pool import PostgresPool

__all__ = [
    "ConflictError",
    "ConnectionError",
    "PostgresPool",
    "StoreError",
]
