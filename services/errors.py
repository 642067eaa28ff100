"""
Domain exceptions. Routers translate these into HTTP responses; services never build HTTP errors.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from services.validators import FieldError


class PortalError(Exception):
    """Base class for all licensing portal errors."""


class DraftInvalidError(PortalError):
    def __init__(self, errors: list[FieldError]):
        self.errors = errors
        super().__init__(f"Draft has {len(errors)} validation error(s)")


class EducationListError(PortalError):
    pass


class DocumentRejectedError(PortalError):
    def __init__(self, error: FieldError):
        self.error = error
        super().__init__(error.message)


class LifecycleError(PortalError):
    pass


class InvalidTransitionError(LifecycleError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move application from '{current}' to '{target}'")


class MissingReasonError(LifecycleError):
    def __init__(self):
        super().__init__("A reason is required to return an application")


class StaleStatusError(LifecycleError):
    def __init__(self, application_id: str, expected: str):
        self.application_id = application_id
        self.expected = expected
        super().__init__(f"Application {application_id} is no longer '{expected}'; reload and retry")


class NotFoundError(PortalError):
    pass


class SubmissionError(PortalError):
    """Primary record (applicant or application) could not be persisted."""


class ActiveApplicationError(PortalError):
    pass


class AuthenticationError(PortalError):
    pass


class AuthorizationError(PortalError):
    pass


class SignupError(PortalError):
    pass
