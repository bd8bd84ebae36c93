"""Typed failures raised by the lifecycle services.

Each class is a DRF ``APIException`` so a REST boundary renders it with a
matching status code. ``retryable`` tells callers whether trying again later
can succeed (Expired, UpstreamFailure) or the action itself is not valid.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class LifecycleError(APIException):
    """Base class for assignment/submission/task lifecycle failures."""
    retryable = False


class NotFound(LifecycleError):
    """Referenced entity is absent or outside the caller's consumer/course."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class InvalidState(LifecycleError):
    """Entity is not in a status that permits the operation."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Invalid status for this operation."
    default_code = "invalid_state"


class Expired(LifecycleError):
    """Deadline or per-attempt timer has passed."""
    status_code = status.HTTP_410_GONE
    default_detail = "Timer is expired."
    default_code = "expired"
    retryable = True


class DataIntegrityError(LifecycleError):
    """Stored data contradicts itself (missing pool task, duplicate options)."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Data integrity violated."
    default_code = "integrity_error"


class InsufficientPool(DataIntegrityError):
    """A difficulty tier (or group) has fewer distinct tasks than requested."""
    default_detail = "Not enough tasks in the pool."
    default_code = "insufficient_pool"


class UpstreamFailure(LifecycleError):
    """The external platform rejected or did not answer a score push."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Could not publish score to the learning platform."
    default_code = "upstream_failure"
    retryable = True

    def __init__(self, detail=None, code=None, submission_ids=None):
        super().__init__(detail, code)
        self.submission_ids = list(submission_ids or [])
