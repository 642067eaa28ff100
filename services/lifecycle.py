"""
Application status state machine.

    draft -> submitted -> under_review -> approved | returned
                     \\-------------------> approved | returned

approved and returned are terminal. Moving to returned needs a non-empty reason.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from services.errors import InvalidTransitionError, MissingReasonError


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    RETURNED = "returned"


TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.DRAFT: frozenset({ApplicationStatus.SUBMITTED}),
    ApplicationStatus.SUBMITTED: frozenset({
        ApplicationStatus.UNDER_REVIEW,
        ApplicationStatus.APPROVED,
        ApplicationStatus.RETURNED,
    }),
    ApplicationStatus.UNDER_REVIEW: frozenset({ApplicationStatus.APPROVED, ApplicationStatus.RETURNED}),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.RETURNED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)
# Statuses that block the applicant from starting another submission
ACTIVE_STATUSES = frozenset({
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.APPROVED,
})


def can_transition(current: str, target: str) -> bool:
    try:
        return ApplicationStatus(target) in TRANSITIONS[ApplicationStatus(current)]
    except ValueError:
        return False


def transition(current: str, target: str, reason: Optional[str] = None) -> ApplicationStatus:
    """Validate one move and return the new status; raises without side effects when not allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(getattr(current, "value", current), getattr(target, "value", target))
    target_status = ApplicationStatus(target)
    if target_status is ApplicationStatus.RETURNED and not (reason and reason.strip()):
        raise MissingReasonError()
    return target_status
