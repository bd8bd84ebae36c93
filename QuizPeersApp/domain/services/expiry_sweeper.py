"""Periodic sweep closing assignments whose deadline has passed.

One tick:
    1. CREATED/STARTED assignments past their deadline -> FINISHED (one conditional batch update).
    2. Task submissions of those assignments: STARTED -> PENDING.
    3. Quiz submissions of those assignments: forced evaluation (no submitted_at).
    4. Assignments whose submissions are all published -> PUBLISHED_NO_SOLUTION.
A failure while closing one assignment is logged and the tick moves on.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from django.conf import settings
from django.utils import timezone

from QuizPeersApp.assignments.models import Assignment
from QuizPeersApp.core.choices import AssignmentStatus, OPEN_ASSIGNMENT_STATES
from QuizPeersApp.domain.services.submission_service import close_started_submissions, publish_assignment_if_complete

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    finished: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)


class ExpirySweeper:
    def __init__(self, clock: Callable[[], datetime] = timezone.now, interval_seconds: float | None = None):
        self._clock = clock
        self._interval = max(1.0, float(interval_seconds or settings.QUIZPEERS_SWEEP_INTERVAL_SECONDS))

    @property
    def interval(self) -> float:
        return self._interval

    def tick(self) -> SweepReport:
        """Run one sweep; safe to call repeatedly."""
        now = self._clock()
        report = SweepReport()
        expired_ids = list(Assignment.objects.expired(now).values_list("pk", flat=True))
        if not expired_ids:
            return report

        Assignment.objects.filter(pk__in=expired_ids).transition(
            OPEN_ASSIGNMENT_STATES, status=AssignmentStatus.FINISHED, updated_at=now
        )
        closed = Assignment.objects.filter(pk__in=expired_ids, status=AssignmentStatus.FINISHED)
        for assignment in closed:
            try:
                self._close_submissions(assignment, now)
                publish_assignment_if_complete(assignment.pk, now)
            except Exception:
                logger.exception("Could not close submissions of assignment %s", assignment.pk)
                report.failed.append(assignment.pk)
            else:
                report.finished.append(assignment.pk)
        logger.info("Sweep finished=%s failed=%s", report.finished, report.failed)
        return report

    def _close_submissions(self, assignment: Assignment, now: datetime) -> None:
        closed = close_started_submissions(assignment, now)
        logger.debug("Assignment %s: %d submission(s) closed", assignment.pk, closed)

    def run(self, stop_event: threading.Event) -> None:
        """Tick every ``interval`` seconds until ``stop_event`` is set."""
        logger.info("Expiry sweeper started (interval=%ss)", self._interval)
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Sweep tick failed")
            if stop_event.wait(self._interval):
                break
        logger.info("Expiry sweeper stopped")
