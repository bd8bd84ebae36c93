"""Role policy table: every role-dependent shortcut in the lifecycle lives here."""

from dataclasses import dataclass

from rest_framework.exceptions import PermissionDenied

from QuizPeersApp.core.choices import Role, AssignmentStatus, SubmissionStatus, TaskStatus
from QuizPeersApp.core.session import SessionContext


@dataclass(frozen=True)
class RolePolicy:
    """Per-role behaviour of the submission and task operations.

    Fields:
        may_create_before_start: Submission may be materialized while the assignment is not STARTED.
        upload_requires_status: Assignment status required to upload tasks (None = any).
        initial_submission_status: Status of a freshly created task-submission shell.
        finished_submission_status: Status after the required number of tasks is uploaded.
        initial_task_status: Status of an uploaded task.
        bounded_by_size: Number of uploads is capped by the assignment size.
        fixed_return_id: Outcome id stored instead of the session's (None = use session).
    """
    may_create_before_start: bool
    upload_requires_status: str | None
    initial_submission_status: str
    finished_submission_status: str
    initial_task_status: str
    bounded_by_size: bool
    fixed_return_id: str | None


POLICIES: dict[str, RolePolicy] = {
    Role.LEARNER: RolePolicy(
        may_create_before_start=False,
        upload_requires_status=AssignmentStatus.STARTED,
        initial_submission_status=SubmissionStatus.STARTED,
        finished_submission_status=SubmissionStatus.PENDING,
        initial_task_status=TaskStatus.PENDING,
        bounded_by_size=True,
        fixed_return_id=None,
    ),
    # Instructor uploads are previews: never graded, never pushed to the platform.
    Role.INSTRUCTOR: RolePolicy(
        may_create_before_start=True,
        upload_requires_status=None,
        initial_submission_status=SubmissionStatus.EVALUATED_PUBLISHED,
        finished_submission_status=SubmissionStatus.EVALUATED_PUBLISHED,
        initial_task_status=TaskStatus.EVALUATED_INCLUDE,
        bounded_by_size=False,
        fixed_return_id="0",
    ),
}


def policy_for(session: SessionContext) -> RolePolicy:
    """Return the policy row for the caller's role (unknown roles act as learners)."""
    return POLICIES.get(session.role, POLICIES[Role.LEARNER])


def ensure_instructor(session: SessionContext) -> None:
    """Raise PermissionDenied unless the caller is an instructor."""
    if not session.is_instructor:
        raise PermissionDenied("Instructor role required")
