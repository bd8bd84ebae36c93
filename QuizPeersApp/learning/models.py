"""Learning domain models: Submission, Task, AssignmentTaskLink, TaskGroupLink."""

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from simple_history.models import HistoricalRecords

from QuizPeersApp.assignments.models import Assignment, TaskGroup
from QuizPeersApp.assignments.querysets import SubmissionQuerySet, TaskQuerySet
from QuizPeersApp.core.choices import Difficulty, SubmissionStatus, TaskStatus, TaskType


class Submission(models.Model):
    """One learner's (or an instructor preview's) attempt at an assignment (unique per assignment+user).

    For quizzes ``tasks`` holds the frozen, shuffled snapshot taken at creation:
    a list of ``{"task": {...}, "difficulty", "fraction", "group", "answer", "score"}``
    entries. For task submissions the work lives in related Task rows.
    """
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="submissions")
    user_id = models.CharField(max_length=255)
    status = models.CharField(max_length=30, choices=SubmissionStatus.choices, default=SubmissionStatus.STARTED)
    tasks = models.JSONField(null=True, blank=True)
    score = models.FloatField(null=True, blank=True)
    lms_score = models.FloatField(null=True, blank=True)
    return_id = models.CharField(max_length=255, null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    published_by = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = SubmissionQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["assignment", "user_id"], name="uq_assignment_user"),
        ]

    def __str__(self) -> str:
        return f"Submission(#{self.pk}, {self.user_id}, {self.status})"


class Task(models.Model):
    """A task uploaded by a learner (or instructor) into a task submission.

    ``edit`` is an optional instructor overlay ``{title, description, media_id,
    options, solution}`` that supersedes the base fields for display and
    scoring while keeping the original upload intact.
    """
    submission = models.ForeignKey(Submission, on_delete=models.CASCADE, related_name="submitted_tasks")
    type = models.CharField(max_length=30, choices=TaskType.choices)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    media_id = models.CharField(max_length=255, null=True, blank=True)
    options = models.JSONField(default=list)
    solution = models.JSONField(null=True)
    edit = models.JSONField(null=True, blank=True)
    status = models.CharField(max_length=30, choices=TaskStatus.choices, default=TaskStatus.PENDING)
    score = models.FloatField(null=True, blank=True)
    evaluated_at = models.DateTimeField(null=True, blank=True)
    evaluated_by = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    history = HistoricalRecords()

    objects = TaskQuerySet.as_manager()

    def __str__(self) -> str:
        return f"{self.title} (#{self.pk}, {self.type})"

    def effective(self) -> dict:
        """Fields used for display and scoring: the edit overlay if present, else the base fields."""
        source = self.edit or {
            "title": self.title,
            "description": self.description,
            "media_id": self.media_id,
            "options": self.options,
            "solution": self.solution,
        }
        return {
            "title": source.get("title"),
            "description": source.get("description"),
            "media_id": source.get("media_id"),
            "options": source.get("options"),
            "solution": source.get("solution"),
        }


class AssignmentTaskLink(models.Model):
    """A task in a quiz pool with its difficulty and precomputed score fraction."""
    assignment = models.ForeignKey(Assignment, on_delete=models.CASCADE, related_name="task_links")
    task = models.ForeignKey(Task, on_delete=models.PROTECT, related_name="assignment_links")
    difficulty = models.PositiveSmallIntegerField(
        choices=Difficulty.choices,
        default=Difficulty.LOW,
        validators=[MinValueValidator(1), MaxValueValidator(3)],
    )
    fraction = models.FloatField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["assignment", "task"], name="uq_assignment_task"),
        ]


class TaskGroupLink(models.Model):
    """Membership of a task in (at most) one task group."""
    task = models.OneToOneField(Task, on_delete=models.CASCADE, related_name="group_link")
    task_group = models.ForeignKey(TaskGroup, on_delete=models.CASCADE, related_name="task_links")
