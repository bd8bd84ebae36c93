import logging
import random
from collections import Counter

import pytest

from QuizPeersApp.core.choices import TaskType
from QuizPeersApp.core.exceptions import InsufficientPool
from QuizPeersApp.domain.services import quiz_sampler
from QuizPeersApp.domain.services.quiz_sampler import PoolTask

LEARNER = "learner-1"


def pool_task(task_id, difficulty, created_by="someone", group=None, task_type=TaskType.MULTIPLE_CHOICE, options=None):
    return PoolTask(
        task={
            "id": task_id,
            "type": task_type,
            "title": f"Task {task_id}",
            "options": options if options is not None else [{"id": 1, "option": "a"}, {"id": 2, "option": "b"}],
        },
        difficulty=difficulty,
        fraction=10.0,
        group=group,
        created_by=created_by,
    )


def two_per_tier_pool():
    """Two tasks per tier, the first of each authored by LEARNER."""
    return [
        pool_task(1, 1, LEARNER), pool_task(2, 1),
        pool_task(3, 2, LEARNER), pool_task(4, 2),
        pool_task(5, 3, LEARNER), pool_task(6, 3),
    ]


@pytest.mark.parametrize("seed", range(20))
def test_prefers_tasks_not_authored_by_learner(seed):
    selected = quiz_sampler.sample_random_tasks([1, 1, 1], LEARNER, two_per_tier_pool(), random.Random(seed))
    assert sorted(t.task_id for t in selected) == [2, 4, 6]


def test_exact_counts_per_tier_and_no_duplicates():
    pool = [pool_task(i, 1 + i % 3) for i in range(30)]
    selected = quiz_sampler.sample_random_tasks([2, 3, 4], LEARNER, pool, random.Random(7))
    counts = Counter(t.difficulty for t in selected)
    assert counts == {1: 2, 2: 3, 3: 4}
    assert len({t.task_id for t in selected}) == len(selected)


def test_combined_order_is_randomized_across_tiers():
    first, last = Counter(), Counter()
    for seed in range(300):
        selected = quiz_sampler.sample_random_tasks([1, 1, 1], LEARNER, two_per_tier_pool(), random.Random(seed))
        first[selected[0].difficulty] += 1
        last[selected[-1].difficulty] += 1
    assert set(first) == {1, 2, 3}
    assert set(last) == {1, 2, 3}


def test_falls_back_to_self_authored_task_with_warning(caplog):
    pool = [pool_task(1, 1, LEARNER), pool_task(2, 2)]
    with caplog.at_level(logging.WARNING, logger="QuizPeersApp.domain.services.quiz_sampler"):
        selected = quiz_sampler.sample_random_tasks([1, 1, 0], LEARNER, pool, random.Random(1))
    assert sorted(t.task_id for t in selected) == [1, 2]
    assert "self-authored" in caplog.text


def test_insufficient_tier_raises():
    with pytest.raises(InsufficientPool):
        quiz_sampler.sample_random_tasks([2, 0, 0], LEARNER, [pool_task(1, 1)], random.Random(1))


def test_group_keyed_size_selects_per_group():
    pool = [
        pool_task(1, 1, group=7), pool_task(2, 1, group=7),
        pool_task(3, 2, group=8), pool_task(4, 1),
    ]
    selected = quiz_sampler.sample_random_tasks({"7": [2, 0, 0], "8": [0, 1, 0], "null": [1, 0, 0]}, LEARNER, pool, random.Random(3))
    assert sorted(t.task_id for t in selected) == [1, 2, 3, 4]


def test_group_tier_exhaustion_is_reported():
    pool = [pool_task(1, 1, group=7), pool_task(2, 1, group=8)]
    with pytest.raises(InsufficientPool):
        quiz_sampler.sample_random_tasks({"7": [2, 0, 0]}, LEARNER, pool, random.Random(3))


def test_snapshot_strips_authorship():
    snapshots = quiz_sampler.materialize([pool_task(1, 2, LEARNER, group=4)], random.Random(1))
    assert snapshots == [{
        "task": snapshots[0]["task"],
        "difficulty": 2,
        "fraction": 10.0,
        "group": 4,
    }]
    assert "created_by" not in snapshots[0]["task"]


def test_materialize_does_not_mutate_pool():
    entry = pool_task(1, 1, options=[{"id": i, "option": str(i)} for i in range(1, 9)])
    original = [dict(o) for o in entry.task["options"]]
    quiz_sampler.materialize([entry], random.Random(5))
    assert entry.task["options"] == original


def test_combine_terms_columns_shuffled_independently():
    left = [{"id": i, "type": "TEXT", "term": f"l{i}"} for i in range(1, 7)]
    right = [{"id": i + 10, "type": "TEXT", "term": f"r{i}"} for i in range(1, 7)]
    entry = pool_task(1, 1, task_type=TaskType.COMBINE_TERMS, options=[list(left), list(right)])
    [snapshot] = quiz_sampler.materialize([entry], random.Random(11))
    new_left, new_right = snapshot["task"]["options"]
    assert sorted(o["id"] for o in new_left) == [o["id"] for o in left]
    assert sorted(o["id"] for o in new_right) == [o["id"] for o in right]
    assert [o["id"] for o in new_left] != [o["id"] for o in left] or [o["id"] for o in new_right] != [o["id"] for o in right]


def test_organize_terms_follows_solution_pairs():
    options = [{"id": 3, "term": "cat"}, {"id": 1, "term": "kissa"}, {"id": 2, "term": "dog"}, {"id": 4, "term": "koira"}]
    left, right = quiz_sampler.organize_terms(options, [[3, 1], [2, 4]])
    assert [o["id"] for o in left] == [3, 2]
    assert [o["id"] for o in right] == [1, 4]
