"""Grading rules and score aggregation.

Fractions are computed once when a quiz is created; a full set of correct
answers sums to 100 for a non-weighted quiz (or to the sum of the group
weights). Platform scores are rounded half-up to two decimals.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from QuizPeersApp.core.choices import AssignmentKind, TaskType
from QuizPeersApp.core.exceptions import DataIntegrityError

DEFAULT_WEIGHT = 100


@dataclass
class QuizResult:
    score: float
    lms_score: float | None
    tasks: list[dict[str, Any]] = field(default_factory=list)


def round_score(value: float, places: int = 2) -> float:
    """Round half-up (not banker's rounding) to the given number of decimals."""
    factor = 10 ** places
    return math.floor(value * factor + 0.5) / factor


def difficulty_sum(counts) -> int:
    """count_low*1 + count_medium*2 + count_high*3."""
    return sum(count * difficulty for difficulty, count in enumerate(counts, start=1))


def compute_quiz_difficulty_total(kind: str, size, difficulties=None, weighted: bool = False):
    """Total difficulty a quiz's fractions are divided by.

    - QUIZ_DEFINITE: sum of the per-task difficulties.
    - QUIZ_RANDOM, flat size: one total.
    - QUIZ_RANDOM, group-keyed size: a ``{group_id: total}`` map when the
      groups are weighted, else one total over all groups.
    """
    if kind != AssignmentKind.QUIZ_RANDOM:
        return sum(difficulties or [])
    if not isinstance(size, dict):
        return difficulty_sum(size)
    if weighted:
        return {str(group_id): difficulty_sum(counts) for group_id, counts in size.items()}
    return sum(difficulty_sum(counts) for counts in size.values())


def fraction_for_task(weight: float, total_difficulty: float, difficulty: int) -> float:
    """Share of the total score carried by one task."""
    return (weight / total_difficulty) * difficulty


def grade_task(task_type: str, answer, solution, fraction: float) -> float:
    """Score a single answer.

    Multiple choice and name image are all-or-nothing; combine terms gives
    ``fraction / len(solution)`` for every submitted pair that exactly
    matches a solution pair. Unanswered tasks score 0.
    """
    if answer is None:
        return 0
    if task_type in (TaskType.MULTIPLE_CHOICE, TaskType.NAME_IMAGE):
        return fraction if answer == solution else 0
    if task_type == TaskType.COMBINE_TERMS:
        if not solution:
            return 0
        pairs = [list(pair) for pair in solution]
        term_fraction = fraction / len(pairs)
        return sum(term_fraction for pair in answer if list(pair) in pairs)
    raise DataIntegrityError(f"Unknown task type {task_type}")


def aggregate_quiz_score(scores, points: float | None) -> tuple[float, float | None]:
    """Sum task scores and scale them to the platform's points.

    Returns:
        (raw score, platform score); platform score is None when points are unknown.
    """
    raw = sum(scores)
    if points is None:
        return raw, None
    return raw, round_score((raw / 100) * points)


def aggregate_task_submission_score(raw_score: float, max_task_score: float, points: float | None, submission_size: int) -> float | None:
    """Platform score of an evaluated task submission."""
    if points is None:
        return None
    relative = raw_score / max_task_score
    return round_score(relative * (points / submission_size))


def grade_quiz(tasks: list[dict[str, Any]], pool: Mapping[int, Mapping[str, Any]], points: float | None) -> QuizResult:
    """Grade a quiz snapshot against the pool.

    Args:
        tasks: Submission snapshot entries (``task``, ``answer`` ...).
        pool: task id -> ``{"type", "solution", "fraction"}`` from the assignment's pool.
        points: Assignment points possible.

    Raises:
        DataIntegrityError: If an answered task is missing from the pool.
    """
    graded = []
    scores = []
    for entry in tasks:
        entry = dict(entry)
        if entry.get("answer") is not None:
            pool_task = pool.get(entry["task"]["id"])
            if pool_task is None:
                raise DataIntegrityError("Could not find a task associated to the answer")
            entry["score"] = grade_task(pool_task["type"], entry["answer"], pool_task["solution"], pool_task["fraction"])
            scores.append(entry["score"])
        graded.append(entry)
    score, lms_score = aggregate_quiz_score(scores, points)
    return QuizResult(score=score, lms_score=lms_score, tasks=graded)
