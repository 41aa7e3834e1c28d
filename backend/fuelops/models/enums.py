"""Enumeration types used throughout the fuel operations API.

Enumerations constrain the values that can be stored in the database or
passed through the API.  Values match what the field crews already see on
their devices ("Pending", "Yes", "standby"...), so existing rows keep their
meaning.
"""

from enum import Enum


class UserRole(str, Enum):
    """Role of a member of the fueling organisation."""

    FUELER = "fueler"
    COORDINATOR = "coordinator"
    RM = "rm"
    GTL = "gtl"
    SECURITY = "security"
    CTO = "cto"
    ADMIN = "admin"


# Roles that are usable as soon as the profile exists
AUTO_APPROVED_ROLES = frozenset(
    {UserRole.ADMIN, UserRole.COORDINATOR, UserRole.RM, UserRole.GTL, UserRole.CTO}
)


class TicketStatus(str, Enum):
    """Lifecycle of a fuel request ticket."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CLOSED = "Closed"


class ReviewAction(str, Enum):
    """Decision applied by a reviewer to pending tickets."""

    APPROVE = "Approved"
    REJECT = "Rejected"


class SiteOperatingStatus(str, Enum):
    """Generator operating mode reported by the coordinator."""

    STANDBY = "standby"
    PRIME = "prime"
    TPRIME = "Tprime"


class DeviationFlag(str, Enum):
    """Whether the deviation crossed the alert threshold."""

    YES = "Yes"
    NO = "No"


class DeviationTicketStatus(str, Enum):
    """Security follow-up state of a deviation."""

    OPEN = "Open"
    CLOSED = "Closed"


class YesNo(str, Enum):
    YES = "Yes"
    NO = "No"


class FuelingMethod(str, Enum):
    CANS = "Fueling Cans"
    PIPES = "Fueling Pipes"


class AlertStatus(str, Enum):
    """Delivery state of an alert log row."""

    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"
