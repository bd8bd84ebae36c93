"""Custom querysets encapsulating consumer/course scoping and status-gated writes."""

from datetime import datetime
from typing import Iterable, Self

from django.db.models import QuerySet

from QuizPeersApp.core.choices import (
    OPEN_ASSIGNMENT_STATES,
    SubmissionStatus,
    TaskStatus,
)
from QuizPeersApp.core.session import SessionContext


class StatusGatedQuerySet(QuerySet):
    """QuerySet whose status writes only apply to rows still in an expected state."""

    def transition(self, from_states: Iterable[str], **values) -> int:
        """Conditionally update rows whose status is in from_states.

        Returns the number of rows written; 0 means another actor already
        moved the row(s) past the expected state.
        """
        return self.filter(status__in=list(from_states)).update(**values)


class AssignmentQuerySet(StatusGatedQuerySet):
    """QuerySet helpers for assignment scoping and expiry."""

    def for_context(self, session: SessionContext) -> Self:
        """Assignments of the caller's consumer and course."""
        return self.filter(consumer_id=session.consumer_id, course_id=session.course_id)

    def expired(self, now: datetime) -> Self:
        """Not yet finished assignments whose deadline has passed."""
        return self.filter(status__in=OPEN_ASSIGNMENT_STATES, deadline__lt=now)


class SubmissionQuerySet(StatusGatedQuerySet):
    """QuerySet helpers for submissions."""

    def for_context(self, session: SessionContext) -> Self:
        """Submissions whose assignment belongs to the caller's consumer and course."""
        return self.filter(
            assignment__consumer_id=session.consumer_id,
            assignment__course_id=session.course_id,
        )

    def owned_by(self, session: SessionContext) -> Self:
        """The caller's own submissions within their consumer and course."""
        return self.for_context(session).filter(user_id=session.user_id)

    def started(self) -> Self:
        return self.filter(status=SubmissionStatus.STARTED)


class TaskQuerySet(StatusGatedQuerySet):
    """QuerySet helpers for uploaded tasks."""

    def for_context(self, session: SessionContext) -> Self:
        """Tasks uploaded to assignments of the caller's consumer and course."""
        return self.filter(
            submission__assignment__consumer_id=session.consumer_id,
            submission__assignment__course_id=session.course_id,
        )

    def included(self) -> Self:
        """Tasks the instructor marked as quiz pool candidates."""
        return self.filter(status=TaskStatus.EVALUATED_INCLUDE)
