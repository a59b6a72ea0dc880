"""Test factories for creating test data."""

from tests.factories.auth import JWT_SECRET, TokenFactory
from tests.factories.routing import LeadFactory, OfficeFactory, RuleFactory

__all__ = [
    "JWT_SECRET",
    "LeadFactory",
    "OfficeFactory",
    "RuleFactory",
    "TokenFactory",
]
