"""Enum definitions for offline submissions and review."""

from enum import Enum


class SubmissionStatus(str, Enum):
    """Review state of an offline submission."""

    PENDING = "pending"
    APPROVED = "approved"  # Terminal: a canonical reading was created
    REJECTED = "rejected"  # Terminal: discarded by a reviewer


# Terminal states have no outbound transitions
VALID_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED}),
    SubmissionStatus.APPROVED: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
}


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    """Return True when a submission may move from current to target."""
    return target in VALID_TRANSITIONS[current]


class SortMode(str, Enum):
    """Ordering of the pending list by submission time."""

    NEWEST = "newest"
    OLDEST = "oldest"


class ErrorKind(str, Enum):
    """Classification of an explained failure."""

    AUTH = "auth"  # HTTP 401
    PERMISSION = "permission"  # HTTP 403
    SERVER = "server"  # Any other non-success HTTP status
    NETWORK = "network"  # No response: timeout, refused connection, bad payload
    PRECONDITION = "precondition"  # Local validation, never reaches the network
