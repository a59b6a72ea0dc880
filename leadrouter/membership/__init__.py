"""Consultant-office membership.

The staff directory is the authoritative source; MembershipIndex is a
read-through view over it used to validate rule targets and dispatches.
"""

from leadrouter.membership.directories import HttpOfficeDirectory, InMemoryOfficeDirectory
from leadrouter.membership.directory import OfficeDirectory
from leadrouter.membership.index import MembershipIndex
from leadrouter.membership.models import Office

__all__ = [
    "HttpOfficeDirectory",
    "InMemoryOfficeDirectory",
    "MembershipIndex",
    "Office",
    "OfficeDirectory",
]
