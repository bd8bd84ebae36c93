import pytest
from django.utils import timezone
from model_bakery import baker

from QuizPeersApp.core.choices import AssignmentKind, AssignmentStatus, Role
from QuizPeersApp.core.session import SessionContext


@pytest.fixture
def consumer(db):
    return baker.make("assignments.Consumer", id="consumer-1", key="key", secret="secret")


@pytest.fixture
def instructor(consumer):
    return SessionContext(consumer_id=consumer.id, course_id="course-1", user_id="instructor-1", role=Role.INSTRUCTOR)


@pytest.fixture
def learner(consumer):
    return SessionContext(consumer_id=consumer.id, course_id="course-1", user_id="learner-1", return_id="ret-learner-1")


@pytest.fixture
def make_assignment(consumer):
    def _make(**overrides):
        values = {
            "consumer": consumer,
            "course_id": "course-1",
            "title": "Assignment",
            "kind": AssignmentKind.TASK_SUBMISSION,
            "size": 3,
            "task_types": ["MULTIPLE_CHOICE"],
            "status": AssignmentStatus.STARTED,
            "points": 20,
            "outcome_url": "https://lms.example.com/outcomes",
            "deadline": timezone.now() + timezone.timedelta(days=1),
            "created_by": "instructor-1",
        }
        values.update(overrides)
        return baker.make("assignments.Assignment", **values)
    return _make


@pytest.fixture
def fast_publish(settings):
    settings.QUIZPEERS_SCORE_PUBLISH_RETRIES = 2
    settings.QUIZPEERS_SCORE_PUBLISH_BACKOFF = 0
    return settings
