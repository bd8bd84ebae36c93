"""Typed enumerations (TextChoices) for roles, assignment kinds, and the assignment/submission/task lifecycles."""
from django.db import models

class Role(models.TextChoices):
    """Role of the caller inside the launching course (supplied by the session context)."""
    INSTRUCTOR = "INSTRUCTOR", "Instructor"
    LEARNER = "LEARNER", "Learner"

class ConsumerStatus(models.TextChoices):
    """Registration state of an external learning platform."""
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"

class AssignmentKind(models.TextChoices):
    """What a learner does in an assignment: upload tasks or answer a quiz."""
    TASK_SUBMISSION = "TASK_SUBMISSION", "Task submission"
    QUIZ_DEFINITE = "QUIZ_DEFINITE", "Quiz (fixed tasks)"
    QUIZ_RANDOM = "QUIZ_RANDOM", "Quiz (random tasks)"

class AssignmentStatus(models.TextChoices):
    """Lifecycle states for an assignment."""
    CREATED = "CREATED", "Created"
    STARTED = "STARTED", "Started"
    FINISHED = "FINISHED", "Finished"
    PUBLISHED_NO_SOLUTION = "PUBLISHED_NO_SOLUTION", "Published without solution"
    PUBLISHED_WITH_SOLUTION = "PUBLISHED_WITH_SOLUTION", "Published with solution"

class SubmissionStatus(models.TextChoices):
    """Lifecycle states for a learner's attempt."""
    STARTED = "STARTED", "Started"
    PENDING = "PENDING", "Pending evaluation"
    EVALUATED = "EVALUATED", "Evaluated"
    EVALUATED_PUBLISHED = "EVALUATED_PUBLISHED", "Evaluated and published"

class TaskStatus(models.TextChoices):
    """Evaluation states for an uploaded task."""
    PENDING = "PENDING", "Pending"
    EVALUATED = "EVALUATED", "Evaluated"
    EVALUATED_INCLUDE = "EVALUATED_INCLUDE", "Evaluated, included in quiz pools"

class TaskType(models.TextChoices):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE", "Multiple choice"
    COMBINE_TERMS = "COMBINE_TERMS", "Combine terms"
    NAME_IMAGE = "NAME_IMAGE", "Name image"

class Difficulty(models.IntegerChoices):
    LOW = 1, "Low"
    MEDIUM = 2, "Medium"
    HIGH = 3, "High"


QUIZ_KINDS = frozenset({AssignmentKind.QUIZ_DEFINITE, AssignmentKind.QUIZ_RANDOM})

OPEN_ASSIGNMENT_STATES = (AssignmentStatus.CREATED, AssignmentStatus.STARTED)

CLOSED_ASSIGNMENT_STATES = (
    AssignmentStatus.FINISHED,
    AssignmentStatus.PUBLISHED_NO_SOLUTION,
    AssignmentStatus.PUBLISHED_WITH_SOLUTION,
)

PUBLISHED_ASSIGNMENT_STATES = (
    AssignmentStatus.PUBLISHED_NO_SOLUTION,
    AssignmentStatus.PUBLISHED_WITH_SOLUTION,
)

EVALUATED_TASK_STATES = (TaskStatus.EVALUATED, TaskStatus.EVALUATED_INCLUDE)
