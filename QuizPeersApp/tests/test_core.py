import pytest
from django.core.checks import run_checks
from django.core.exceptions import ValidationError
from rest_framework.exceptions import PermissionDenied

from QuizPeersApp.core import validators
from QuizPeersApp.core.choices import AssignmentKind, Role, SubmissionStatus
from QuizPeersApp.core.exceptions import Expired, InvalidState, NotFound, UpstreamFailure
from QuizPeersApp.core.policy import ensure_instructor, policy_for
from QuizPeersApp.core.session import SessionContext


def session(role):
    return SessionContext(consumer_id="c", course_id="k", user_id="u", role=role)


def test_policy_table():
    assert policy_for(session(Role.INSTRUCTOR)).initial_submission_status == SubmissionStatus.EVALUATED_PUBLISHED
    assert policy_for(session(Role.LEARNER)).finished_submission_status == SubmissionStatus.PENDING
    assert policy_for(session("GUEST")) is policy_for(session(Role.LEARNER))


def test_ensure_instructor():
    ensure_instructor(session(Role.INSTRUCTOR))
    with pytest.raises(PermissionDenied):
        ensure_instructor(session(Role.LEARNER))


def test_error_taxonomy_status_codes():
    assert NotFound().status_code == 404
    assert InvalidState().status_code == 409
    assert Expired().retryable and Expired().status_code == 410
    assert not InvalidState().retryable
    assert UpstreamFailure(submission_ids=[3]).submission_ids == [3]


def test_size_spec_for_fixed_kinds():
    validators.validate_size_spec(AssignmentKind.TASK_SUBMISSION, 3)
    with pytest.raises(ValidationError):
        validators.validate_size_spec(AssignmentKind.QUIZ_DEFINITE, 0)
    with pytest.raises(ValidationError):
        validators.validate_size_spec(AssignmentKind.TASK_SUBMISSION, True)


def test_settings_check_rejects_bad_values(settings):
    settings.QUIZPEERS_MAX_TASK_SCORE = 0
    settings.QUIZPEERS_SCORE_PUBLISH_RETRIES = 0
    ids = {error.id for error in run_checks()}
    assert {"core.E001", "core.E003"} <= ids
