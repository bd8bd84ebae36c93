"""Domain service functions for assignment creation, launch, solution publication and task groups.

Status rules:
    CREATED -> STARTED (platform launch) -> FINISHED (expiry sweep)
    -> PUBLISHED_NO_SOLUTION (all submissions published) <-> PUBLISHED_WITH_SOLUTION.
Every status change is a conditional write on the expected current status.
"""

import logging
from datetime import datetime
from typing import Any, Iterable

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from QuizPeersApp.assignments.models import Assignment, TaskGroup
from QuizPeersApp.core.choices import (
    AssignmentKind,
    AssignmentStatus,
    TaskType,
    CLOSED_ASSIGNMENT_STATES,
)
from QuizPeersApp.core.exceptions import InvalidState, NotFound
from QuizPeersApp.core.policy import ensure_instructor
from QuizPeersApp.core.session import SessionContext
from QuizPeersApp.core.validators import UNGROUPED_KEY
from QuizPeersApp.domain.services.scoring import (
    DEFAULT_WEIGHT,
    compute_quiz_difficulty_total,
    fraction_for_task,
)
from QuizPeersApp.domain.services.timer import extend_timer, is_assignment_closed
from QuizPeersApp.learning.models import AssignmentTaskLink, Task

logger = logging.getLogger(__name__)

SOLUTION_TOGGLE = {
    AssignmentStatus.PUBLISHED_NO_SOLUTION: AssignmentStatus.PUBLISHED_WITH_SOLUTION,
    AssignmentStatus.PUBLISHED_WITH_SOLUTION: AssignmentStatus.PUBLISHED_NO_SOLUTION,
}


def _unique(values: Iterable[str]) -> list[str]:
    """De-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(values))


def get_scoped_assignment(assignment_id: int, session: SessionContext) -> Assignment:
    """Load an assignment of the caller's consumer and course.

    Raises:
        NotFound: If it does not exist in that scope.
    """
    assignment = Assignment.objects.for_context(session).filter(pk=assignment_id).first()
    if assignment is None:
        raise NotFound("Could not find assignment")
    return assignment


def task_group_key(task: Task) -> str:
    """Group id of a task as used in size/weight mappings ("null" when ungrouped)."""
    link = getattr(task, "group_link", None)
    return UNGROUPED_KEY if link is None else str(link.task_group_id)


@transaction.atomic
def create_task_assignment(session: SessionContext, data: dict[str, Any]) -> Assignment:
    """Create a task-submission assignment (instructor only).

    Args:
        data: Validated payload with title, size, types, deadline and optional glossary.

    Raises:
        PermissionDenied: If the caller is not an instructor.
        ValidationError: If NAME_IMAGE tasks are allowed without a glossary.
    """
    ensure_instructor(session)
    types = _unique(data["types"])
    glossary = data.get("glossary")
    if TaskType.NAME_IMAGE in types and not glossary:
        raise ValidationError("A glossary is required for name image tasks")
    return Assignment.objects.create(
        consumer_id=session.consumer_id,
        course_id=session.course_id,
        title=data["title"],
        kind=AssignmentKind.TASK_SUBMISSION,
        size=data["size"],
        task_types=types,
        glossary=_unique(glossary) if glossary else None,
        deadline=data["deadline"],
        created_by=session.user_id,
    )


@transaction.atomic
def create_quiz_assignment(session: SessionContext, data: dict[str, Any]) -> Assignment:
    """Create a quiz over uploaded tasks and precompute every task's score fraction.

    Args:
        data: Validated payload: title, type ("RANDOM" | "DEFINITE"), size (random only),
            tasks (pool task ids), difficulties (parallel to tasks, default 1), weights
            (optional group id -> weight), timer, deadline, assignments (glossary sources).

    Raises:
        PermissionDenied: If the caller is not an instructor.
        NotFound: If a pool task is not part of the caller's course.
        ValidationError: If weights do not cover a task's group.
    """
    ensure_instructor(session)
    kind = AssignmentKind.QUIZ_RANDOM if data["type"] == "RANDOM" else AssignmentKind.QUIZ_DEFINITE
    task_ids = list(dict.fromkeys(data["tasks"]))
    tasks = {
        task.pk: task
        for task in Task.objects.for_context(session).filter(pk__in=task_ids).select_related("group_link")
    }
    missing = [task_id for task_id in task_ids if task_id not in tasks]
    if missing:
        raise NotFound(f"Could not find tasks {missing}")

    sources = Assignment.objects.for_context(session).filter(pk__in=data.get("assignments") or [])
    glossary = _unique(term for source in sources for term in (source.glossary or []))

    given = list(data.get("difficulties") or [])
    difficulties = [given[i] if i < len(given) else 1 for i in range(len(task_ids))]
    size = data["size"] if kind == AssignmentKind.QUIZ_RANDOM else len(task_ids)
    weights = data.get("weights") if isinstance(size, dict) else None
    total = compute_quiz_difficulty_total(kind, size, difficulties, weighted=bool(weights))

    assignment = Assignment.objects.create(
        consumer_id=session.consumer_id,
        course_id=session.course_id,
        title=data["title"],
        kind=kind,
        size=size,
        glossary=glossary or None,
        timer=data.get("timer"),
        weights=weights,
        deadline=data["deadline"],
        created_by=session.user_id,
    )

    links = []
    for task_id, difficulty in zip(task_ids, difficulties):
        weight, group_total = DEFAULT_WEIGHT, total
        if weights:
            key = task_group_key(tasks[task_id])
            if key not in weights or key not in total:
                raise ValidationError(f"No weight/size given for task group {key}")
            weight, group_total = weights[key], total[key]
        links.append(AssignmentTaskLink(
            assignment=assignment,
            task_id=task_id,
            difficulty=difficulty,
            fraction=fraction_for_task(weight, group_total, difficulty),
        ))
    AssignmentTaskLink.objects.bulk_create(links)
    logger.info("Created %s assignment %s with %d pool task(s)", kind, assignment.pk, len(links))
    return assignment


def start_assignment(assignment_id: int, outcome_url: str | None, points: float | None) -> bool:
    """Move a CREATED assignment to STARTED once the platform confirms the launch.

    Returns:
        True if this call performed the transition.
    """
    started = Assignment.objects.filter(pk=assignment_id).transition(
        [AssignmentStatus.CREATED],
        status=AssignmentStatus.STARTED,
        outcome_url=outcome_url,
        points=points,
        updated_at=timezone.now(),
    )
    return bool(started)


def get_assignment(assignment_id: int, session: SessionContext, now: datetime | None = None) -> Assignment:
    """Learner view of a launched assignment.

    The timer includes the caller's personal extension and a STARTED
    assignment past its deadline is reported as FINISHED (not persisted;
    the sweep does that).
    """
    assignment = (
        Assignment.objects.for_context(session)
        .exclude(status=AssignmentStatus.CREATED)
        .filter(pk=assignment_id)
        .first()
    )
    if assignment is None:
        raise NotFound("Could not find assignment")
    if assignment.timer and session.extension_minutes:
        assignment.timer = extend_timer(assignment.timer, session.extension_minutes)
    if assignment.status == AssignmentStatus.STARTED and is_assignment_closed(assignment, now):
        assignment.status = AssignmentStatus.FINISHED
    return assignment


def list_task_assignments(session: SessionContext) -> QuerySet[Assignment]:
    """Closed task-submission assignments of the course (sources for quiz pools)."""
    return Assignment.objects.for_context(session).filter(
        kind=AssignmentKind.TASK_SUBMISSION,
        status__in=CLOSED_ASSIGNMENT_STATES,
    )


def toggle_publish_solution(assignment_id: int, session: SessionContext) -> Assignment:
    """Flip between PUBLISHED_NO_SOLUTION and PUBLISHED_WITH_SOLUTION.

    Raises:
        InvalidState: If results are not published or the status changed concurrently.
    """
    ensure_instructor(session)
    assignment = get_scoped_assignment(assignment_id, session)
    target = SOLUTION_TOGGLE.get(assignment.status)
    if target is None:
        raise InvalidState("Assignment results are not published")
    written = Assignment.objects.filter(pk=assignment.pk).transition(
        [assignment.status], status=target, updated_at=timezone.now()
    )
    if not written:
        raise InvalidState("Assignment status changed concurrently")
    assignment.status = target
    return assignment


def create_task_group(session: SessionContext, assignment_id: int, name: str, description: str | None = None) -> TaskGroup:
    """Create a task group on one of the course's assignments (instructor only)."""
    ensure_instructor(session)
    assignment = get_scoped_assignment(assignment_id, session)
    return TaskGroup.objects.create(assignment=assignment, name=name, description=description or None)


def list_task_groups(assignment_id: int, session: SessionContext) -> QuerySet[TaskGroup]:
    return TaskGroup.objects.filter(
        assignment_id=assignment_id,
        assignment__consumer_id=session.consumer_id,
        assignment__course_id=session.course_id,
    )
