"""Enums for routing domain."""

from enum import Enum


class LeadSource(str, Enum):
    """Channels a lead can arrive through.

    Leads may carry other source strings; these are the ones the intake
    surface produces today.
    """

    WALK_IN = "walk_in"
    ONLINE = "online"
    REFERRAL = "referral"
    GOOGLE_OAUTH = "Google OAuth"
    FACEBOOK_OAUTH = "Facebook OAuth"


class LeadStatus(str, Enum):
    """Lead lifecycle status."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    CONVERTED = "converted"
    LOST = "lost"


class PriorityBand(str, Enum):
    """Operator-facing grouping of rule priorities.

    - HIGH: priority 10 or lower
    - MEDIUM: 11 to 50
    - LOW: above 50
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def for_priority(cls, priority: int) -> "PriorityBand":
        if priority <= 10:
            return cls.HIGH
        if priority <= 50:
            return cls.MEDIUM
        return cls.LOW


class DispatchOutcome(str, Enum):
    """Result of a dispatch attempt that did not raise.

    - ASSIGNED: lead assignment written and audited
    - UNASSIGNED: no rule matched; nothing written
    - ALREADY_ASSIGNED: automatic dispatch on an assigned lead without rerun
    - UNCHANGED: resolved target equals the current assignment; nothing is
      written and no audit entry is added, in manual mode too
    """

    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    ALREADY_ASSIGNED = "already_assigned"
    UNCHANGED = "unchanged"
