"""Validation helpers for the JSON shapes stored on assignments and tasks."""

from typing import Any

from django.core.exceptions import ValidationError

from QuizPeersApp.core.choices import AssignmentKind

TIER_COUNT = 3
UNGROUPED_KEY = "null"


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_tier_counts(value: Any) -> None:
    """Ensure value is a [low, medium, high] list of non-negative integers."""
    if not isinstance(value, (list, tuple)) or len(value) != TIER_COUNT:
        raise ValidationError("Tier counts must be a list of three integers.")
    if not all(_is_count(v) for v in value):
        raise ValidationError("Tier counts must be non-negative integers.")


def validate_size_spec(kind: str, value: Any) -> None:
    """Validate an assignment size for its kind.

    - TASK_SUBMISSION / QUIZ_DEFINITE: positive task count.
    - QUIZ_RANDOM: flat tier counts or a mapping group id -> tier counts, never both.
    """
    if kind != AssignmentKind.QUIZ_RANDOM:
        if not _is_count(value) or value < 1:
            raise ValidationError("Size must be a positive integer.")
        return
    if isinstance(value, dict):
        if not value:
            raise ValidationError("Group size mapping cannot be empty.")
        for group_id, counts in value.items():
            if not isinstance(group_id, str):
                raise ValidationError("Group ids must be strings.")
            validate_tier_counts(counts)
        return
    validate_tier_counts(value)


def validate_timer(value: Any) -> None:
    """Ensure a timer is [hours, minutes] with minutes below 60."""
    if value is None:
        return
    if not isinstance(value, (list, tuple)) or len(value) != 2 or not all(_is_count(v) for v in value):
        raise ValidationError("Timer must be [hours, minutes].")
    if value[1] > 59:
        raise ValidationError("Timer minutes must be below 60.")
    if value[0] == 0 and value[1] == 0:
        raise ValidationError("Timer cannot be zero.")
