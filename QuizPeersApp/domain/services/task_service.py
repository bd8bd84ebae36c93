"""Domain service functions for uploaded tasks: content building, upload, edit overlay and evaluation."""

import logging
import random
from typing import Any, Sequence

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from QuizPeersApp.assignments.models import TaskGroup
from QuizPeersApp.core.choices import (
    AssignmentStatus,
    CLOSED_ASSIGNMENT_STATES,
    EVALUATED_TASK_STATES,
    SubmissionStatus,
    TaskStatus,
    TaskType,
)
from QuizPeersApp.core.exceptions import DataIntegrityError, InvalidState, NotFound
from QuizPeersApp.core.policy import ensure_instructor, policy_for
from QuizPeersApp.core.session import SessionContext
from QuizPeersApp.domain.services.quiz_sampler import organize_terms
from QuizPeersApp.domain.services.scoring import aggregate_task_submission_score
from QuizPeersApp.domain.services.submission_service import finish_task_submission, get_or_create_submission
from QuizPeersApp.learning.models import Submission, Task, TaskGroupLink

logger = logging.getLogger(__name__)

IMAGE_TERM = "IMAGE"


# ---------- Content building ----------

def _shuffled_ids(count: int, rng: random.Random) -> list[int]:
    ids = list(range(1, count + 1))
    rng.shuffle(ids)
    return ids


def build_multiple_choice(options: Sequence[str], solution_index: int, rng: random.Random) -> tuple[list[dict], int]:
    """Give each option a shuffled id; the solution is the id of the chosen option.

    Raises:
        DataIntegrityError: If two options have the same text.
    """
    if len(set(options)) != len(options):
        raise DataIntegrityError("Each task option must be unique")
    built = [{"id": option_id, "option": option} for option_id, option in zip(_shuffled_ids(len(options), rng), options)]
    return built, built[solution_index]["id"]


def _resolve_term(term: dict, media_ids: Sequence[str]) -> dict:
    """Swap an image term that references an upload index for the stored media id."""
    term = dict(term)
    if term.get("type") == IMAGE_TERM and isinstance(term.get("term"), int) and term["term"] < len(media_ids):
        term["term"] = media_ids[term["term"]]
    return term


def build_combine_terms(pairs: Sequence[dict], media_ids: Sequence[str], rng: random.Random) -> tuple[list[dict], list[list[int]]]:
    """Flatten ``[{"term": {...}, "related_term": {...}}]`` into options with shuffled ids and the pair solution."""
    ids = iter(_shuffled_ids(len(pairs) * 2, rng))
    options, solution = [], []
    for pair in pairs:
        left = _resolve_term(pair["term"], media_ids)
        right = _resolve_term(pair["related_term"], media_ids)
        left_id, right_id = next(ids), next(ids)
        options.append({"id": left_id, "type": left["type"], "term": left["term"]})
        options.append({"id": right_id, "type": right["type"], "term": right["term"]})
        solution.append([left_id, right_id])
    return options, solution


def build_task_content(data: dict[str, Any], media_ids: Sequence[str] | None = None, rng: random.Random | None = None) -> dict[str, Any]:
    """Build ``{title, description, media_id, options, solution}`` from a validated task payload."""
    rng = rng or random.Random()
    media_ids = list(media_ids or [])
    content = {
        "title": data["title"],
        "description": data.get("description") or "",
        "media_id": None,
        "options": [],
        "solution": None,
    }
    task_type = data["type"]
    if task_type == TaskType.MULTIPLE_CHOICE:
        content["media_id"] = media_ids[0] if media_ids else None
        content["options"], content["solution"] = build_multiple_choice(data["options"], data["solution_index"], rng)
    elif task_type == TaskType.COMBINE_TERMS:
        content["options"], content["solution"] = build_combine_terms(data["pairs"], media_ids, rng)
    elif task_type == TaskType.NAME_IMAGE:
        content["options"], content["solution"] = media_ids, data["solution"]
    else:
        raise DataIntegrityError(f"Unknown task type {task_type}")
    return content


# ---------- Upload / edit ----------

def _scoped_task(task_id: int, session: SessionContext) -> Task:
    task = Task.objects.for_context(session).select_related("submission__assignment").filter(pk=task_id).first()
    if task is None:
        raise NotFound("Could not find task")
    return task


def edit_task(task_id: int, session: SessionContext, data: dict[str, Any], media_ids=None, rng=None) -> Task:
    """Store an instructor edit overlay; the uploaded version stays untouched."""
    ensure_instructor(session)
    task = _scoped_task(task_id, session)
    task.edit = build_task_content(data, media_ids, rng)
    task.save(update_fields=["edit", "updated_at"])
    return task


def clear_task_edit(task_id: int, session: SessionContext) -> Task:
    """Drop the edit overlay; status is unchanged."""
    ensure_instructor(session)
    task = _scoped_task(task_id, session)
    task.edit = None
    task.save(update_fields=["edit", "updated_at"])
    return task


def _replace_task(task_id: int, submission: Submission, content: dict[str, Any], task_type: str) -> Task:
    task = (
        Task.objects.filter(
            pk=task_id,
            submission=submission,
            status=TaskStatus.PENDING,
            submission__status__in=[SubmissionStatus.STARTED, SubmissionStatus.PENDING],
        )
        .first()
    )
    if task is None:
        raise NotFound("Could not find task to replace")
    task.type = task_type
    for name, value in content.items():
        setattr(task, name, value)
    task.save()
    return task


@transaction.atomic
def create_or_replace_task(
    session: SessionContext,
    data: dict[str, Any],
    media_ids: Sequence[str] | None = None,
    rng: random.Random | None = None,
) -> Task:
    """Upload a task into the caller's submission, replace a pending one, or edit one.

    Args:
        data: Validated payload with assignment_id, type and content; task_id
            with replace=False stores an edit overlay, with replace=True
            swaps a PENDING task.
        media_ids: Stored ids of uploaded images, referenced by upload index.

    Raises:
        InvalidState: Assignment not STARTED (learners) or submission already complete.
        NotFound: Task to replace does not exist or is no longer pending.
    """
    if data.get("task_id") and not data.get("replace"):
        return edit_task(data["task_id"], session, data, media_ids, rng)

    policy = policy_for(session)
    submission = get_or_create_submission(
        data["assignment_id"], session, create=True, assignment_status=policy.upload_requires_status
    )
    if submission is None:
        raise InvalidState("Assignment has not been started")
    size = submission.assignment.submission_size
    count = Task.objects.filter(submission=submission).count()
    content = build_task_content(data, media_ids, rng)

    if data.get("task_id"):
        task = _replace_task(data["task_id"], submission, content, data["type"])
        if policy.bounded_by_size and count == size:
            finish_task_submission(submission.pk, session)
        return task

    if policy.bounded_by_size and (submission.status != SubmissionStatus.STARTED or count >= size):
        raise InvalidState("Assignment is already completed")
    task = Task.objects.create(submission=submission, type=data["type"], status=policy.initial_task_status, **content)
    if count + 1 == size:
        finish_task_submission(submission.pk, session)
    return task


# ---------- Evaluation ----------

def set_task_group(task: Task, group_id: int | None, assignment_id: int) -> None:
    """Move a task into ``group_id`` (a group of the same assignment) or out of any group."""
    TaskGroupLink.objects.filter(task=task).delete()
    if group_id and TaskGroup.objects.filter(pk=group_id, assignment_id=assignment_id).exists():
        TaskGroupLink.objects.create(task=task, task_group_id=group_id)


@transaction.atomic
def evaluate_task(
    task_id: int,
    session: SessionContext,
    score: float | None,
    include: bool,
    group_id: int | None = None,
) -> Task:
    """Score one uploaded task; grade the whole submission once every task is evaluated.

    Raises:
        PermissionDenied: Caller is not an instructor.
        NotFound: Task not in scope or its assignment is not closed yet.
        InvalidState: Changing the score of a published submission.
    """
    ensure_instructor(session)
    task = (
        Task.objects.for_context(session)
        .select_related("submission__assignment")
        .filter(pk=task_id, submission__assignment__status__in=CLOSED_ASSIGNMENT_STATES)
        .first()
    )
    if task is None:
        raise NotFound("Could not find pending task")
    submission = task.submission
    published = submission.status == SubmissionStatus.EVALUATED_PUBLISHED
    if published and score != task.score:
        raise InvalidState("You cannot change the score of a published submission")

    task.score = score
    task.status = TaskStatus.EVALUATED_INCLUDE if include else TaskStatus.EVALUATED
    task.evaluated_at = timezone.now()
    task.evaluated_by = session.user_id
    task.save()
    set_task_group(task, group_id, submission.assignment_id)

    if published:
        return task
    tasks = list(Task.objects.filter(submission=submission).values_list("status", "score"))
    if all(status in EVALUATED_TASK_STATES for status, _ in tasks):
        _evaluate_task_submission(submission, sum(value or 0 for _, value in tasks))
    return task


def _evaluate_task_submission(submission: Submission, raw_score: float) -> None:
    assignment = submission.assignment
    lms_score = aggregate_task_submission_score(
        raw_score, settings.QUIZPEERS_MAX_TASK_SCORE, assignment.points, assignment.submission_size
    )
    written = Submission.objects.filter(pk=submission.pk).transition(
        [SubmissionStatus.STARTED, SubmissionStatus.PENDING, SubmissionStatus.EVALUATED],
        status=SubmissionStatus.EVALUATED,
        score=raw_score,
        lms_score=lms_score,
        updated_at=timezone.now(),
    )
    if not written:
        logger.warning("Submission %s was published before its evaluation was stored", submission.pk)


# ---------- Listings ----------

def _task_view(task: Task, with_review: bool) -> dict[str, Any]:
    view = {
        "id": task.pk,
        "type": task.type,
        "title": task.title,
        "description": task.description,
        "media_id": task.media_id,
        "status": task.status,
        "options": task.options,
        "solution": task.solution,
        "created_at": task.created_at,
    }
    if task.type == TaskType.COMBINE_TERMS:
        view["options"] = organize_terms(task.options or [], task.solution or [])
    if with_review:
        link = getattr(task, "group_link", None)
        edit = dict(task.edit) if task.edit else None
        if edit and task.type == TaskType.COMBINE_TERMS:
            edit["options"] = organize_terms(edit.get("options") or [], edit.get("solution") or [])
        view.update(score=task.score, edit=edit, group=link.task_group_id if link else None)
    return view


def list_included_tasks(session: SessionContext, assignment_ids: Sequence[int]) -> list[dict[str, Any]]:
    """Quiz pool candidates (EVALUATED_INCLUDE) of the given assignments."""
    ensure_instructor(session)
    tasks = (
        Task.objects.for_context(session)
        .included()
        .filter(submission__assignment_id__in=list(assignment_ids))
        .select_related("group_link")
        .order_by("pk")
    )
    return [_task_view(task, with_review=True) for task in tasks]


def list_submitted_tasks(submission_id: int, session: SessionContext) -> list[dict[str, Any]]:
    """Tasks of a submission; learners only see their own, without score, edit and group."""
    tasks = Task.objects.for_context(session).filter(submission_id=submission_id)
    if not session.is_instructor:
        tasks = tasks.filter(submission__user_id=session.user_id)
    tasks = tasks.select_related("group_link").order_by("pk")
    return [_task_view(task, with_review=session.is_instructor) for task in tasks]


def get_task_solutions(submission_id: int, session: SessionContext) -> list[dict[str, Any]]:
    """Effective solutions of a learner's quiz once the assignment publishes them."""
    submission = (
        Submission.objects.owned_by(session)
        .filter(pk=submission_id, assignment__status=AssignmentStatus.PUBLISHED_WITH_SOLUTION)
        .first()
    )
    if submission is None:
        raise NotFound("Could not find submission")
    task_ids = [entry["task"]["id"] for entry in submission.tasks or []]
    return [
        {"id": task.pk, "solution": task.effective()["solution"]}
        for task in Task.objects.filter(pk__in=task_ids).order_by("pk")
    ]
