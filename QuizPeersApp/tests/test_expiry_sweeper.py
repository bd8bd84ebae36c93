import threading
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone
from model_bakery import baker

from QuizPeersApp.core.choices import AssignmentKind, AssignmentStatus, SubmissionStatus, TaskStatus
from QuizPeersApp.domain.services import assignment_service, submission_service
from QuizPeersApp.domain.services.expiry_sweeper import ExpirySweeper

pytestmark = pytest.mark.django_db


def later_clock(hours=48):
    moment = timezone.now() + timezone.timedelta(hours=hours)
    return lambda: moment


def started_quiz(instructor, learner, make_assignment):
    source = make_assignment(status=AssignmentStatus.FINISHED)
    author = baker.make("learning.Submission", assignment=source, user_id="author-1")
    task = baker.make(
        "learning.Task", submission=author, type="MULTIPLE_CHOICE", status=TaskStatus.EVALUATED_INCLUDE,
        options=[{"id": 1, "option": "a"}, {"id": 2, "option": "b"}], solution=1,
    )
    quiz = assignment_service.create_quiz_assignment(instructor, {
        "title": "Quiz", "type": "DEFINITE", "tasks": [task.pk],
        "deadline": timezone.now() + timezone.timedelta(hours=1),
    })
    assignment_service.start_assignment(quiz.pk, "https://lms/outcome", 10)
    submission = submission_service.get_or_create_submission(quiz.pk, learner, create=True)
    submission_service.save_answers(submission, [{"id": task.pk, "answer": 1}])
    return quiz, submission


def test_expired_quiz_is_force_evaluated(instructor, learner, make_assignment):
    quiz, submission = started_quiz(instructor, learner, make_assignment)
    report = ExpirySweeper(clock=later_clock()).tick()
    assert report.finished == [quiz.pk]
    assert report.failed == []
    quiz.refresh_from_db()
    submission.refresh_from_db()
    assert quiz.status == AssignmentStatus.FINISHED
    assert submission.status == SubmissionStatus.EVALUATED
    assert submission.submitted_at is None
    assert submission.score == pytest.approx(100)
    assert submission.lms_score == 10


def test_second_tick_changes_nothing(instructor, learner, make_assignment):
    quiz, submission = started_quiz(instructor, learner, make_assignment)
    sweeper = ExpirySweeper(clock=later_clock())
    sweeper.tick()
    submission.refresh_from_db()
    before = (submission.status, submission.score, submission.updated_at)
    report = sweeper.tick()
    assert report.finished == [] and report.failed == []
    submission.refresh_from_db()
    assert (submission.status, submission.score, submission.updated_at) == before


def test_expired_task_submissions_move_to_pending(make_assignment):
    past = make_assignment(deadline=timezone.now() - timezone.timedelta(minutes=5))
    created = make_assignment(status=AssignmentStatus.CREATED, deadline=timezone.now() - timezone.timedelta(minutes=5))
    running = make_assignment()
    started = baker.make("learning.Submission", assignment=past, status=SubmissionStatus.STARTED)
    evaluated = baker.make("learning.Submission", assignment=past, status=SubmissionStatus.EVALUATED)
    untouched = baker.make("learning.Submission", assignment=running, status=SubmissionStatus.STARTED)

    report = ExpirySweeper().tick()

    assert sorted(report.finished) == sorted([past.pk, created.pk])
    for obj in (started, evaluated, untouched, running):
        obj.refresh_from_db()
    assert started.status == SubmissionStatus.PENDING
    assert evaluated.status == SubmissionStatus.EVALUATED
    assert untouched.status == SubmissionStatus.STARTED
    assert running.status == AssignmentStatus.STARTED


class RecordingPublisher:
    def __init__(self):
        self.calls = []

    def publish(self, consumer, score, return_id, outcome_url):
        self.calls.append(return_id)


def test_sweep_publishes_assignment_whose_submissions_were_published_early(
    instructor, learner, make_assignment, fast_publish
):
    quiz, submission = started_quiz(instructor, learner, make_assignment)
    submission_service.submit_quiz(submission.pk, learner)
    outcome = submission_service.publish_submissions(quiz.pk, [submission.pk], instructor, RecordingPublisher())
    assert not outcome.assignment_published
    quiz.refresh_from_db()
    assert quiz.status == AssignmentStatus.STARTED

    ExpirySweeper(clock=later_clock()).tick()

    quiz.refresh_from_db()
    assert quiz.status == AssignmentStatus.PUBLISHED_NO_SOLUTION
    toggled = assignment_service.toggle_publish_solution(quiz.pk, instructor)
    assert toggled.status == AssignmentStatus.PUBLISHED_WITH_SOLUTION


def test_sweep_leaves_assignment_without_submissions_finished(make_assignment):
    empty = make_assignment(deadline=timezone.now() - timezone.timedelta(minutes=1))
    ExpirySweeper().tick()
    empty.refresh_from_db()
    assert empty.status == AssignmentStatus.FINISHED


def test_published_assignments_are_not_reopened(make_assignment):
    published = make_assignment(
        status=AssignmentStatus.PUBLISHED_NO_SOLUTION, deadline=timezone.now() - timezone.timedelta(days=1)
    )
    assert ExpirySweeper().tick().finished == []
    published.refresh_from_db()
    assert published.status == AssignmentStatus.PUBLISHED_NO_SOLUTION


def test_failure_is_isolated_per_assignment(instructor, learner, make_assignment, monkeypatch, caplog):
    broken, _ = started_quiz(instructor, learner, make_assignment)
    healthy, healthy_submission = started_quiz(
        instructor,
        learner.__class__(consumer_id=learner.consumer_id, course_id=learner.course_id, user_id="learner-2"),
        make_assignment,
    )
    real_evaluate = submission_service.evaluate_quiz

    def flaky(submission, forced=False, now=None):
        if submission.assignment_id == broken.pk:
            raise RuntimeError("database hiccup")
        return real_evaluate(submission, forced=forced, now=now)

    monkeypatch.setattr(submission_service, "evaluate_quiz", flaky)
    report = ExpirySweeper(clock=later_clock()).tick()
    assert report.failed == [broken.pk]
    assert report.finished == [healthy.pk]
    healthy_submission.refresh_from_db()
    assert healthy_submission.status == SubmissionStatus.EVALUATED
    assert "Could not close submissions" in caplog.text


def test_run_stops_on_event(monkeypatch):
    ticks = []
    stop = threading.Event()
    sweeper = ExpirySweeper(interval_seconds=1)

    def fake_tick():
        ticks.append(1)
        stop.set()

    monkeypatch.setattr(sweeper, "tick", fake_tick)
    sweeper.run(stop)
    assert ticks == [1]


def test_command_runs_single_sweep(make_assignment):
    make_assignment(deadline=timezone.now() - timezone.timedelta(minutes=1), kind=AssignmentKind.TASK_SUBMISSION)
    out = StringIO()
    call_command("run_expiry_sweeper", "--once", stdout=out)
    assert "Finished 1 assignment(s), 0 failed" in out.getvalue()
