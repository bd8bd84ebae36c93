from datetime import datetime, timedelta, timezone as dt_timezone
from types import SimpleNamespace

import pytest

from QuizPeersApp.core.choices import AssignmentStatus
from QuizPeersApp.domain.services import timer

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


def test_is_expired_is_strict():
    assert timer.is_expired(NOW - timedelta(seconds=1), NOW)
    assert not timer.is_expired(NOW, NOW)


def test_assignment_closed_by_status_or_deadline():
    future = NOW + timedelta(hours=1)
    assert timer.is_assignment_closed(SimpleNamespace(status=AssignmentStatus.FINISHED, deadline=future), NOW)
    assert timer.is_assignment_closed(SimpleNamespace(status=AssignmentStatus.STARTED, deadline=NOW - timedelta(minutes=1)), NOW)
    assert not timer.is_assignment_closed(SimpleNamespace(status=AssignmentStatus.STARTED, deadline=future), NOW)


@pytest.mark.parametrize("start, extra, expected", [
    ([1, 10], 20, [1, 30]),
    ([1, 50], 15, [2, 5]),
    ([0, 45], 134.6, [3, 0]),
    ([0, 59], 0.4, [0, 59]),
    ([2, 30], 29.5, [3, 0]),
])
def test_extend_timer(start, extra, expected):
    assert timer.extend_timer(start, extra) == pytest.approx(expected)


@pytest.mark.parametrize("extra", [0, 1, 59, 61, 90.5, 600, 1439.7])
def test_extend_timer_keeps_total_and_minutes_below_60(extra):
    hours, minutes = timer.extend_timer([1, 40], extra)
    assert minutes < 60
    assert abs((hours * 60 + minutes) - (100 + extra)) <= 1


def test_resolve_deadline_without_timer_is_assignment_deadline():
    deadline = NOW + timedelta(days=1)
    assert timer.resolve_deadline(NOW, deadline) == deadline


def test_resolve_deadline_timer_shortens():
    deadline = NOW + timedelta(days=1)
    assert timer.resolve_deadline(NOW, deadline, [0, 30]) == NOW + timedelta(minutes=30)


def test_resolve_deadline_never_after_assignment_deadline():
    deadline = NOW + timedelta(minutes=20)
    assert timer.resolve_deadline(NOW, deadline, [1, 0], extension_minutes=120) == deadline


def test_resolve_deadline_applies_extension():
    deadline = NOW + timedelta(days=1)
    assert timer.resolve_deadline(NOW, deadline, [0, 50], extension_minutes=20) == NOW + timedelta(hours=1, minutes=10)
