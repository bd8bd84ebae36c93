"""Domain service functions for submissions: materialization, answers, evaluation and publication.

State transitions:
    task submissions: STARTED -> PENDING -> EVALUATED -> EVALUATED_PUBLISHED
    quizzes:          STARTED -> EVALUATED -> EVALUATED_PUBLISHED
Instructor previews are created directly as EVALUATED_PUBLISHED.

No in-process locking: every status change is a conditional update on the
expected current status, so a write that lost a race matches no row.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from QuizPeersApp.assignments.models import Assignment, Consumer
from QuizPeersApp.core.choices import (
    CLOSED_ASSIGNMENT_STATES,
    AssignmentKind,
    AssignmentStatus,
    ConsumerStatus,
    SubmissionStatus,
    TaskType,
)
from QuizPeersApp.core.exceptions import (
    DataIntegrityError,
    Expired,
    InvalidState,
    NotFound,
    UpstreamFailure,
)
from QuizPeersApp.core.policy import ensure_instructor, policy_for
from QuizPeersApp.core.session import SessionContext
from QuizPeersApp.domain.services import quiz_sampler
from QuizPeersApp.domain.services.assignment_service import get_scoped_assignment
from QuizPeersApp.domain.services.scoring import grade_quiz
from QuizPeersApp.domain.services.timer import is_assignment_closed, is_expired, resolve_deadline
from QuizPeersApp.integrations.lti_outcomes import ScorePublisher, get_score_publisher
from QuizPeersApp.learning.models import AssignmentTaskLink, Submission

logger = logging.getLogger(__name__)


@dataclass
class PublishOutcome:
    published: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    assignment_published: bool = False


# ---------- Quiz pool ----------

def load_pool(assignment: Assignment, task_ids: Iterable[int] | None = None) -> list[AssignmentTaskLink]:
    """Pool links of an assignment with task, author submission and group preloaded."""
    links = AssignmentTaskLink.objects.filter(assignment=assignment).select_related(
        "task", "task__submission", "task__group_link"
    )
    if task_ids is not None:
        links = links.filter(task_id__in=list(task_ids))
    return list(links)


def to_pool_task(link: AssignmentTaskLink) -> quiz_sampler.PoolTask:
    """Learner-facing snapshot of a pool task (edit-aware, no solution)."""
    task = link.task
    content = task.effective()
    options = content["options"]
    if task.type == TaskType.COMBINE_TERMS:
        options = quiz_sampler.organize_terms(options or [], content["solution"] or [])
    group_link = getattr(task, "group_link", None)
    return quiz_sampler.PoolTask(
        task={
            "id": task.pk,
            "type": task.type,
            "title": content["title"],
            "description": content["description"],
            "media_id": content["media_id"],
            "options": options,
        },
        difficulty=link.difficulty,
        fraction=link.fraction,
        group=group_link.task_group_id if group_link else None,
        created_by=task.submission.user_id,
    )


def _materialize_quiz(assignment: Assignment, session: SessionContext, rng: random.Random | None) -> list[dict]:
    pool = [to_pool_task(link) for link in load_pool(assignment)]
    if assignment.kind == AssignmentKind.QUIZ_RANDOM:
        pool = quiz_sampler.sample_random_tasks(assignment.size, session.user_id, pool, rng)
    if not pool:
        raise DataIntegrityError("Could not find any tasks for the assignment")
    return quiz_sampler.materialize(pool, rng)


# ---------- Submission access ----------

def _create_submission(assignment: Assignment, session: SessionContext, rng: random.Random | None) -> Submission:
    policy = policy_for(session)
    if assignment.kind == AssignmentKind.TASK_SUBMISSION:
        defaults = {
            "status": policy.initial_submission_status,
            "return_id": policy.fixed_return_id or session.return_id,
        }
    else:
        defaults = {
            "status": SubmissionStatus.STARTED,
            "return_id": session.return_id,
            "tasks": _materialize_quiz(assignment, session, rng),
        }
    submission, created = Submission.objects.get_or_create(
        assignment=assignment, user_id=session.user_id, defaults=defaults
    )
    if created:
        logger.info("Materialized submission %s for assignment %s user %s", submission.pk, assignment.pk, session.user_id)
        closed = _current_status(assignment.pk) in CLOSED_ASSIGNMENT_STATES
        if closed and not policy.may_create_before_start and submission.status == SubmissionStatus.STARTED:
            # The sweep closed the assignment after the status check and missed this row.
            logger.warning("Assignment %s closed while submission %s was created", assignment.pk, submission.pk)
            close_started_submissions(assignment)
            submission.refresh_from_db()
    return submission


def _current_status(assignment_id: int) -> str | None:
    return Assignment.objects.filter(pk=assignment_id).values_list("status", flat=True).first()


def get_or_create_submission(
    assignment_id: int,
    session: SessionContext,
    create: bool = False,
    assignment_status: str | None = None,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> Submission | None:
    """Return the caller's submission, creating it lazily when allowed.

    Args:
        create: Materialize a submission if none exists (assignment STARTED, or instructor).
        assignment_status: Required assignment status; closed assignments never match.
        now: Clock override.
        rng: Random source for quiz sampling.

    Raises:
        NotFound: Assignment not in the caller's scope.
        InvalidState: Assignment status does not match ``assignment_status``.
        Expired: The attempt's effective deadline has passed.
        InsufficientPool: Quiz pool too small for the size specification.
    """
    now = now or timezone.now()
    assignment = get_scoped_assignment(assignment_id, session)
    if assignment_status and (is_assignment_closed(assignment, now) or assignment.status != assignment_status):
        raise InvalidState("Invalid assignment status")

    submission = Submission.objects.filter(assignment=assignment, user_id=session.user_id).first()
    if submission is None and create:
        if policy_for(session).may_create_before_start or _current_status(assignment.pk) == AssignmentStatus.STARTED:
            submission = _create_submission(assignment, session, rng)

    if submission is not None and assignment.status == AssignmentStatus.STARTED:
        submission.deadline = resolve_deadline(
            submission.created_at, assignment.deadline, assignment.timer, session.extension_minutes
        )
        if is_expired(submission.deadline, now):
            raise Expired("Timer is expired")
    return submission


def get_started_submission(submission_id: int, session: SessionContext, now: datetime | None = None) -> Submission:
    """Load the caller's own submission and check it still accepts answers.

    Raises:
        NotFound: Not the caller's submission.
        InvalidState: Submission not STARTED or assignment closed.
        Expired: Attempt timer has passed.
    """
    now = now or timezone.now()
    submission = Submission.objects.owned_by(session).select_related("assignment").filter(pk=submission_id).first()
    if submission is None:
        raise NotFound("Could not find submission")
    if submission.status != SubmissionStatus.STARTED:
        raise InvalidState("Invalid submission status")
    assignment = submission.assignment
    if is_assignment_closed(assignment, now):
        raise InvalidState("Invalid assignment status")
    deadline = resolve_deadline(submission.created_at, assignment.deadline, assignment.timer, session.extension_minutes)
    if is_expired(deadline, now):
        raise Expired("Timer is expired")
    return submission


# ---------- Quiz answers and evaluation ----------

def save_answers(submission: Submission, answers: Iterable[dict[str, Any]]) -> Submission:
    """Merge ``[{"id": task_id, "answer": ...}]`` into the frozen quiz snapshot.

    Raises:
        DataIntegrityError: An answer references a task outside the snapshot.
        InvalidState: Submission is no longer STARTED at write time.
    """
    tasks = [dict(entry) for entry in submission.tasks or []]
    by_id = {entry["task"]["id"]: entry for entry in tasks}
    for answer in answers:
        entry = by_id.get(answer["id"])
        if entry is None:
            raise DataIntegrityError(f"Task {answer['id']} is not part of the submission")
        entry["answer"] = answer.get("answer")
    written = Submission.objects.filter(pk=submission.pk).transition(
        [SubmissionStatus.STARTED], tasks=tasks, updated_at=timezone.now()
    )
    if not written:
        raise InvalidState("Invalid submission status")
    submission.tasks = tasks
    return submission


def evaluate_quiz(submission: Submission, forced: bool = False, now: datetime | None = None) -> bool:
    """Grade a STARTED quiz submission and move it to EVALUATED.

    A forced (sweep) evaluation leaves ``submitted_at`` empty.

    Returns:
        True if this call performed the transition; False if a forced
        evaluation found the submission already past STARTED.

    Raises:
        DataIntegrityError: An answered task is missing from the pool.
        InvalidState: A learner-initiated evaluation lost the race.
    """
    now = now or timezone.now()
    assignment = submission.assignment
    snapshot = submission.tasks or []
    links = load_pool(assignment, [entry["task"]["id"] for entry in snapshot])
    pool = {
        link.task_id: {
            "type": link.task.type,
            "solution": link.task.effective()["solution"],
            "fraction": link.fraction,
        }
        for link in links
    }
    result = grade_quiz(snapshot, pool, assignment.points)
    written = Submission.objects.filter(pk=submission.pk).transition(
        [SubmissionStatus.STARTED],
        status=SubmissionStatus.EVALUATED,
        submitted_at=None if forced else now,
        score=result.score,
        lms_score=result.lms_score,
        tasks=result.tasks,
        updated_at=now,
    )
    if not written:
        if forced:
            logger.info("Submission %s already left STARTED, skipping forced evaluation", submission.pk)
            return False
        raise InvalidState("Invalid submission status")
    submission.status = SubmissionStatus.EVALUATED
    submission.submitted_at = None if forced else now
    submission.score, submission.lms_score, submission.tasks = result.score, result.lms_score, result.tasks
    return True


@transaction.atomic
def submit_quiz(submission_id: int, session: SessionContext, answers: Iterable[dict[str, Any]] | None = None, now: datetime | None = None) -> Submission:
    """Learner submit: store the final answers, then grade."""
    submission = get_started_submission(submission_id, session, now)
    if answers:
        save_answers(submission, answers)
    evaluate_quiz(submission, forced=False, now=now)
    return submission


def get_quiz_tasks(submission_id: int, session: SessionContext) -> list[dict[str, Any]]:
    """Snapshot entries of a quiz submission joined with their effective solutions (instructor only)."""
    ensure_instructor(session)
    submission =Submission.objects.for_context(session).select_related("assignment").filter(pk=submission_id).first()
    if submission is None:
        raise NotFound("Could not find submission")
    snapshot = submission.tasks or []
    links = {link.task_id: link for link in load_pool(submission.assignment, [e["task"]["id"] for e in snapshot])}
    quiz_tasks = []
    for entry in snapshot:
        link = links.get(entry["task"]["id"])
        if link is None:
            raise DataIntegrityError(f"Pool task {entry['task']['id']} is missing")
        quiz_tasks.append({
            "answer": entry.get("answer"),
            "solution": link.task.effective()["solution"],
            "difficulty": entry["difficulty"],
            "fraction": entry["fraction"],
            "score": entry.get("score"),
            "task": entry["task"],
        })
    return quiz_tasks


# ---------- Task submissions ----------

def finish_task_submission(submission_id: int, session: SessionContext, now: datetime | None = None) -> bool:
    """STARTED -> PENDING (learner) or EVALUATED_PUBLISHED (instructor), stamping submitted_at."""
    policy = policy_for(session)
    values = {
        "status": policy.finished_submission_status,
        "submitted_at": now or timezone.now(),
        "updated_at": timezone.now(),
    }
    if policy.fixed_return_id is None:
        values["return_id"] = session.return_id
    written = Submission.objects.filter(pk=submission_id).transition([SubmissionStatus.STARTED], **values)
    return bool(written)


def close_started_submissions(assignment: Assignment, now: datetime | None = None) -> int:
    """Close the STARTED submissions of a closed assignment.

    Task submissions move to PENDING; quiz submissions are force-evaluated.
    Returns the number of submissions this call closed.
    """
    now = now or timezone.now()
    started = Submission.objects.filter(assignment=assignment).started()
    if not assignment.is_quiz:
        return started.transition([SubmissionStatus.STARTED], status=SubmissionStatus.PENDING, updated_at=now)
    closed = 0
    for submission in started.select_related("assignment"):
        closed += evaluate_quiz(submission, forced=True, now=now)
    return closed


def list_pending_submissions(assignment_id: int, session: SessionContext) -> QuerySet[Submission]:
    """Submissions awaiting evaluation or publication (instructor only).

    Lingering STARTED submissions of a FINISHED assignment are closed first.
    """
    ensure_instructor(session)
    assignment = get_scoped_assignment(assignment_id, session)
    if assignment.status == AssignmentStatus.FINISHED:
        closed = close_started_submissions(assignment)
        if closed:
            logger.info("Closed %d lingering submission(s) of assignment %s", closed, assignment.pk)
    return Submission.objects.filter(
        assignment=assignment,
        status__in=[SubmissionStatus.PENDING, SubmissionStatus.EVALUATED],
    ).order_by("created_at")


def list_published_submissions(assignment_id: int, session: SessionContext) -> QuerySet[Submission]:
    ensure_instructor(session)
    return Submission.objects.for_context(session).filter(
        assignment_id=assignment_id, status=SubmissionStatus.EVALUATED_PUBLISHED
    ).order_by("created_at")


# ---------- Publication ----------

def _push_score(publisher: ScorePublisher, consumer: Consumer, submission: Submission, outcome_url: str | None) -> None:
    """Push one score, retrying up to QUIZPEERS_SCORE_PUBLISH_RETRIES times."""
    attempts = settings.QUIZPEERS_SCORE_PUBLISH_RETRIES
    backoff = settings.QUIZPEERS_SCORE_PUBLISH_BACKOFF
    for attempt in range(1, attempts + 1):
        try:
            publisher.publish(consumer, submission.lms_score, submission.return_id, outcome_url)
            return
        except UpstreamFailure:
            if attempt == attempts:
                raise
            logger.warning("Score push for submission %s failed (attempt %d/%d)", submission.pk, attempt, attempts)
            if backoff:
                time.sleep(backoff * attempt)


def publish_assignment_if_complete(assignment_id: int, now: datetime | None = None) -> bool:
    """FINISHED -> PUBLISHED_NO_SOLUTION once the assignment has submissions and all are published."""
    submissions = Submission.objects.filter(assignment_id=assignment_id)
    if not submissions.exists() or submissions.exclude(status=SubmissionStatus.EVALUATED_PUBLISHED).exists():
        return False
    written = Assignment.objects.filter(pk=assignment_id).transition(
        [AssignmentStatus.FINISHED], status=AssignmentStatus.PUBLISHED_NO_SOLUTION, updated_at=now or timezone.now()
    )
    if written:
        logger.info("Assignment %s published, every submission is published", assignment_id)
    return bool(written)


def publish_submissions(
    assignment_id: int,
    submission_ids: Iterable[int],
    session: SessionContext,
    publisher: ScorePublisher | None = None,
    now: datetime | None = None,
) -> PublishOutcome:
    """Push evaluated scores to the platform and mark the submissions published.

    Successfully pushed submissions stay published even if others fail. When
    every submission of the assignment is published, a FINISHED assignment
    moves to PUBLISHED_NO_SOLUTION.

    Raises:
        PermissionDenied: Caller is not an instructor.
        NotFound: Consumer not ACTIVE or assignment not in scope.
        InvalidState: A named submission is not EVALUATED or has no platform score.
        UpstreamFailure: Some pushes failed; ``submission_ids`` lists them.
    """
    ensure_instructor(session)
    now = now or timezone.now()
    consumer = Consumer.objects.filter(pk=session.consumer_id, status=ConsumerStatus.ACTIVE).first()
    if consumer is None:
        raise NotFound("Consumer is not registered")
    assignment = get_scoped_assignment(assignment_id, session)
    ids = list(dict.fromkeys(submission_ids))
    evaluated = list(Submission.objects.filter(
        pk__in=ids, assignment=assignment, status=SubmissionStatus.EVALUATED
    ))
    if len(evaluated) != len(ids):
        raise InvalidState("Submissions must be evaluated before the result can be published")
    unscored = [submission.pk for submission in evaluated if submission.lms_score is None]
    if unscored:
        raise InvalidState(f"Submissions {unscored} have no platform score to publish")

    publisher = publisher or get_score_publisher()
    outcome = PublishOutcome()
    for submission in evaluated:
        try:
            _push_score(publisher, consumer, submission, assignment.outcome_url)
        except UpstreamFailure:
            logger.exception("Could not publish score of submission %s", submission.pk)
            outcome.failed.append(submission.pk)
            continue
        written = Submission.objects.filter(pk=submission.pk).transition(
            [SubmissionStatus.EVALUATED],
            status=SubmissionStatus.EVALUATED_PUBLISHED,
            published_at=now,
            published_by=session.user_id,
            updated_at=now,
        )
        if written:
            outcome.published.append(submission.pk)
        else:
            logger.warning("Submission %s left EVALUATED while its score was pushed", submission.pk)

    outcome.assignment_published = publish_assignment_if_complete(assignment.pk, now)
    if outcome.failed:
        raise UpstreamFailure(
            f"Could not publish submissions {outcome.failed}",
            submission_ids=outcome.failed,
        )
    return outcome
