"""Stratified random task selection and option shuffling for quiz submissions.

Selection rule per difficulty tier (and per group when the size is group
keyed): draw distinct tasks, preferring ones not authored by the learner,
falling back to self-authored tasks only when nothing else is left in the
tier. The combined selection is shuffled so tier order is not observable.
"""

import copy
import logging
import random
from dataclasses import dataclass
from typing import Any, Iterable

from QuizPeersApp.core.choices import Difficulty, TaskType
from QuizPeersApp.core.exceptions import InsufficientPool
from QuizPeersApp.core.validators import UNGROUPED_KEY

logger = logging.getLogger(__name__)


@dataclass
class PoolTask:
    """A pool entry: display snapshot plus sampling metadata."""
    task: dict[str, Any]
    difficulty: int
    fraction: float
    group: int | None = None
    created_by: str | None = None

    @property
    def task_id(self) -> int:
        return self.task["id"]

    @property
    def group_key(self) -> str:
        return UNGROUPED_KEY if self.group is None else str(self.group)

    def snapshot(self) -> dict[str, Any]:
        """Copy persisted into a submission; authorship is not part of it."""
        return {
            "task": copy.deepcopy(self.task),
            "difficulty": self.difficulty,
            "fraction": self.fraction,
            "group": self.group,
        }


def organize_terms(options: list[dict], solution: list[list]) -> list[list[dict]]:
    """Split combine-terms options into [left column, right column] following the solution pairs."""
    by_id = {option["id"]: option for option in options}
    left = [by_id.get(pair[0]) for pair in solution]
    right = [by_id.get(pair[1]) for pair in solution]
    return [left, right]


def shuffle_options(task: dict[str, Any], rng: random.Random) -> None:
    """Shuffle a snapshot's options in place (both term columns independently for combine terms)."""
    options = task.get("options") or []
    if task.get("type") == TaskType.COMBINE_TERMS:
        for column in options:
            rng.shuffle(column)
    else:
        rng.shuffle(options)


def _select_from_tier(tier: list[PoolTask], count: int, user_id: str, label: str) -> list[PoolTask]:
    selected: list[PoolTask] = []
    chosen: set = set()
    while len(selected) < count:
        task = next((t for t in tier if t.created_by != user_id and t.task_id not in chosen), None)
        if task is None:
            task = next((t for t in tier if t.task_id not in chosen), None)
            if task is None:
                raise InsufficientPool(f"Pool tier {label} has {len(chosen)} task(s), {count} requested")
            logger.warning("Serving self-authored task %s to user %s (tier %s exhausted)", task.task_id, user_id, label)
        selected.append(task)
        chosen.add(task.task_id)
    return selected


def select_by_difficulty(counts, tiers: dict[int, list[PoolTask]], user_id: str, group: str | None = None) -> list[PoolTask]:
    """Pick counts[0] low, counts[1] medium and counts[2] high tasks from the given tiers."""
    selected: list[PoolTask] = []
    for difficulty, count in zip(Difficulty.values, counts):
        label = f"{difficulty}" if group is None else f"{group}/{difficulty}"
        selected.extend(_select_from_tier(tiers.get(difficulty, []), count, user_id, label))
    return selected


def select_by_group(size: dict, tiers: dict[int, list[PoolTask]], user_id: str) -> list[PoolTask]:
    """Apply select_by_difficulty to every group of a group-keyed size."""
    selected: list[PoolTask] = []
    for group_id, counts in size.items():
        group_tiers = {
            difficulty: [t for t in tasks if t.group_key == str(group_id)]
            for difficulty, tasks in tiers.items()
        }
        selected.extend(select_by_difficulty(counts, group_tiers, user_id, group=str(group_id)))
    return selected


def sample_random_tasks(size, user_id: str, pool: Iterable[PoolTask], rng: random.Random | None = None) -> list[PoolTask]:
    """Select a fair, de-duplicated, randomly ordered subset of the pool for one learner.

    Raises:
        InsufficientPool: If any tier (or group tier) cannot supply enough distinct tasks.
    """
    rng = rng or random.Random()
    pool = list(pool)
    tiers = {difficulty: [t for t in pool if t.difficulty == difficulty] for difficulty in Difficulty.values}
    for tier in tiers.values():
        rng.shuffle(tier)
    if isinstance(size, dict):
        selected = select_by_group(size, tiers, user_id)
    else:
        selected = select_by_difficulty(size, tiers, user_id)
    rng.shuffle(selected)
    return selected


def materialize(selected: Iterable[PoolTask], rng: random.Random | None = None) -> list[dict[str, Any]]:
    """Turn selected pool entries into submission snapshots with shuffled options."""
    rng = rng or random.Random()
    snapshots = []
    for entry in selected:
        snapshot = entry.snapshot()
        shuffle_options(snapshot["task"], rng)
        snapshots.append(snapshot)
    return snapshots
