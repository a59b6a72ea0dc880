"""Office directory implementations."""

from leadrouter.membership.directories.http import HttpOfficeDirectory
from leadrouter.membership.directories.inmemory import InMemoryOfficeDirectory

__all__ = ["HttpOfficeDirectory", "InMemoryOfficeDirectory"]
