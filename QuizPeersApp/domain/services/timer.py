"""Deadline and per-attempt timer arithmetic.

All functions are pure; ``now`` defaults to ``django.utils.timezone.now()``
so callers (and tests) can pin the clock.
"""

import math
from datetime import datetime, timedelta

from django.utils import timezone

from QuizPeersApp.core.choices import CLOSED_ASSIGNMENT_STATES


def is_expired(deadline: datetime, now: datetime | None = None) -> bool:
    """True iff the deadline lies strictly in the past."""
    now = now or timezone.now()
    return deadline < now


def is_assignment_closed(assignment, now: datetime | None = None) -> bool:
    """True if the assignment reached a closed status or its deadline has passed."""
    return assignment.status in CLOSED_ASSIGNMENT_STATES or is_expired(assignment.deadline, now)


def extend_timer(timer, extra_minutes: float) -> list:
    """Add extra_minutes to an ``[hours, minutes]`` timer.

    Overflowing minutes are carried into whole hours; the remaining minutes
    are rounded half-up to an integer (a rounded 60 carries one more hour).
    """
    hours, minutes = timer[0], timer[1] + extra_minutes
    if minutes > 59:
        carried, remainder = divmod(minutes, 60)
        minutes = math.floor(remainder + 0.5)
        hours += int(carried)
        if minutes == 60:
            hours += 1
            minutes = 0
    return [hours, minutes]


def resolve_deadline(
    started_at: datetime,
    deadline: datetime,
    timer=None,
    extension_minutes: float | None = None,
) -> datetime:
    """Effective deadline of one attempt: the earlier of the timer end and the assignment deadline."""
    if not timer:
        return deadline
    if extension_minutes:
        timer = extend_timer(timer, extension_minutes)
    timer_end = started_at + timedelta(hours=timer[0], minutes=timer[1])
    return min(timer_end, deadline)
