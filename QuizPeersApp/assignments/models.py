"""Assignment domain models: Consumer, Assignment, TaskGroup."""

from django.db import models

from simple_history.models import HistoricalRecords

from QuizPeersApp.core.choices import (
    AssignmentKind,
    AssignmentStatus,
    ConsumerStatus,
    CLOSED_ASSIGNMENT_STATES,
    QUIZ_KINDS,
)
from QuizPeersApp.assignments.querysets import AssignmentQuerySet


class Consumer(models.Model):
    """An external learning platform registered to launch assignments.

    Fields:
        id: Consumer key as sent by the platform.
        key / secret: Credentials used to sign score passback requests.
        status: ConsumerStatus value; only ACTIVE consumers receive scores.
    """
    id = models.CharField(primary_key=True, max_length=255)
    key = models.CharField(max_length=255)
    secret = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=ConsumerStatus.choices, default=ConsumerStatus.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Consumer({self.id}, {self.status})"


class Assignment(models.Model):
    """A gradable unit of work issued to a course on a consumer platform.

    Fields:
        kind: AssignmentKind value.
        size: Task count (task submissions, definite quizzes) or tier counts
            ``[low, medium, high]`` / ``{group_id: [low, medium, high]}`` (random quizzes).
        task_types: Task types learners may upload (task submissions only).
        glossary: Terms offered when naming images.
        points: Points possible on the platform (set on launch).
        timer: Per-attempt ``[hours, minutes]`` limit (quizzes only).
        weights: Group weights used when the task fractions were computed.
        status: AssignmentStatus value.
        outcome_url: Platform score passback URL (set on launch).
        deadline: Hard close time.
        created_by: Platform user id of the instructor.
    """
    consumer = models.ForeignKey(Consumer, on_delete=models.PROTECT, related_name="assignments")
    course_id = models.CharField(max_length=255)
    title = models.CharField(max_length=60)
    kind = models.CharField(max_length=30, choices=AssignmentKind.choices)
    size = models.JSONField()
    task_types = models.JSONField(default=list, blank=True)
    glossary = models.JSONField(null=True, blank=True)
    points = models.FloatField(null=True, blank=True)
    timer = models.JSONField(null=True, blank=True)
    weights = models.JSONField(null=True, blank=True)
    status = models.CharField(max_length=30, choices=AssignmentStatus.choices, default=AssignmentStatus.CREATED)
    outcome_url = models.CharField(max_length=255, null=True, blank=True)
    deadline = models.DateTimeField()
    created_by = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = AssignmentQuerySet.as_manager()

    class Meta:
        indexes = [
            models.Index(fields=["consumer", "course_id"], name="ix_assignment_context"),
            models.Index(fields=["status", "deadline"], name="ix_assignment_expiry"),
        ]

    def __str__(self) -> str:
        return f"{self.title} (#{self.pk}, {self.status})"

    @property
    def is_quiz(self) -> bool:
        return self.kind in QUIZ_KINDS

    @property
    def is_closed_status(self) -> bool:
        return self.status in CLOSED_ASSIGNMENT_STATES

    @property
    def submission_size(self) -> int:
        """Number of tasks in one submission (sum of tier counts for random quizzes)."""
        if isinstance(self.size, int):
            return self.size
        if isinstance(self.size, dict):
            return sum(sum(counts) for counts in self.size.values())
        return sum(self.size)


class TaskGroup(models.Model):
    """A named partition of an assignment's tasks used for weighted sampling and grading."""
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="task_groups")
    name = models.CharField(max_length=60)
    description = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} (#{self.pk})"
