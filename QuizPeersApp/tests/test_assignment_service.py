import pytest
from django.utils import timezone
from model_bakery import baker
from rest_framework.exceptions import PermissionDenied, ValidationError

from QuizPeersApp.assignments.models import Assignment
from QuizPeersApp.core.choices import AssignmentKind, AssignmentStatus, TaskStatus
from QuizPeersApp.core.exceptions import InvalidState, NotFound
from QuizPeersApp.domain.services import assignment_service
from QuizPeersApp.learning.models import AssignmentTaskLink

pytestmark = pytest.mark.django_db


def deadline():
    return timezone.now() + timezone.timedelta(days=2)


def make_source_tasks(make_assignment, count, **task_kwargs):
    source = make_assignment(status=AssignmentStatus.FINISHED, glossary=["cat", "dog"])
    submission = baker.make("learning.Submission", assignment=source, user_id="author-1")
    tasks = baker.make(
        "learning.Task",
        submission=submission,
        type="MULTIPLE_CHOICE",
        status=TaskStatus.EVALUATED_INCLUDE,
        options=[{"id": 1, "option": "a"}, {"id": 2, "option": "b"}],
        solution=1,
        _quantity=count,
        **task_kwargs,
    )
    return source, tasks


def test_create_task_assignment_dedupes_types_and_glossary(instructor):
    assignment = assignment_service.create_task_assignment(instructor, {
        "title": "Pets",
        "size": 2,
        "types": ["NAME_IMAGE", "MULTIPLE_CHOICE", "NAME_IMAGE"],
        "glossary": ["cat", "dog", "cat"],
        "deadline": deadline(),
    })
    assert assignment.status == AssignmentStatus.CREATED
    assert assignment.kind == AssignmentKind.TASK_SUBMISSION
    assert assignment.task_types == ["NAME_IMAGE", "MULTIPLE_CHOICE"]
    assert assignment.glossary == ["cat", "dog"]
    assert assignment.history.count() == 1


def test_create_task_assignment_requires_glossary_for_name_image(instructor):
    with pytest.raises(ValidationError):
        assignment_service.create_task_assignment(instructor, {
            "title": "Pets", "size": 1, "types": ["NAME_IMAGE"], "deadline": deadline(),
        })


def test_create_task_assignment_rejects_learner(learner):
    with pytest.raises(PermissionDenied):
        assignment_service.create_task_assignment(learner, {
            "title": "Pets", "size": 1, "types": ["MULTIPLE_CHOICE"], "deadline": deadline(),
        })


def test_create_definite_quiz_fractions_sum_to_100(instructor, make_assignment):
    source, tasks = make_source_tasks(make_assignment, 3)
    quiz = assignment_service.create_quiz_assignment(instructor, {
        "title": "Quiz",
        "type": "DEFINITE",
        "tasks": [t.pk for t in tasks],
        "difficulties": [1, 3],
        "timer": [0, 30],
        "deadline": deadline(),
        "assignments": [source.pk],
    })
    assert quiz.kind == AssignmentKind.QUIZ_DEFINITE
    assert quiz.size == 3
    assert quiz.glossary == ["cat", "dog"]
    links = AssignmentTaskLink.objects.filter(assignment=quiz).order_by("task_id")
    assert [link.difficulty for link in links] == [1, 3, 1]
    assert sum(link.fraction for link in links) == pytest.approx(100)


def test_create_random_quiz_with_group_weights(instructor, make_assignment):
    source, tasks = make_source_tasks(make_assignment, 2)
    group = baker.make("assignments.TaskGroup", assignment=source, name="Animals")
    baker.make("learning.TaskGroupLink", task=tasks[0], task_group=group)
    key = str(group.pk)
    quiz = assignment_service.create_quiz_assignment(instructor, {
        "title": "Quiz",
        "type": "RANDOM",
        "size": {key: [1, 0, 0], "null": [0, 1, 0]},
        "tasks": [tasks[0].pk, tasks[1].pk],
        "difficulties": [1, 2],
        "weights": {key: 60, "null": 40},
        "deadline": deadline(),
    })
    fractions = dict(AssignmentTaskLink.objects.filter(assignment=quiz).values_list("task_id", "fraction"))
    assert fractions == {tasks[0].pk: pytest.approx(60), tasks[1].pk: pytest.approx(40)}


def test_create_quiz_with_foreign_task_is_not_found(instructor, make_assignment):
    other_course = make_assignment(course_id="other")
    task = baker.make("learning.Task", submission=baker.make("learning.Submission", assignment=other_course))
    with pytest.raises(NotFound):
        assignment_service.create_quiz_assignment(instructor, {
            "title": "Quiz", "type": "DEFINITE", "tasks": [task.pk], "deadline": deadline(),
        })


def test_start_assignment_only_from_created(make_assignment):
    assignment = make_assignment(status=AssignmentStatus.CREATED, points=None, outcome_url=None)
    assert assignment_service.start_assignment(assignment.pk, "https://lms/outcome", 15)
    assert not assignment_service.start_assignment(assignment.pk, "https://lms/other", 99)
    assignment.refresh_from_db()
    assert assignment.status == AssignmentStatus.STARTED
    assert assignment.outcome_url == "https://lms/outcome"
    assert assignment.points == 15


def test_get_assignment_hides_created(learner, make_assignment):
    assignment = make_assignment(status=AssignmentStatus.CREATED)
    with pytest.raises(NotFound):
        assignment_service.get_assignment(assignment.pk, learner)


def test_get_assignment_reports_expired_as_finished_and_extends_timer(consumer, make_assignment):
    from QuizPeersApp.core.session import SessionContext
    session = SessionContext(consumer_id=consumer.id, course_id="course-1", user_id="l-2", extension_minutes=45)
    assignment = make_assignment(kind=AssignmentKind.QUIZ_DEFINITE, timer=[0, 30])
    later = assignment.deadline + timezone.timedelta(minutes=1)
    view = assignment_service.get_assignment(assignment.pk, session, now=later)
    assert view.status == AssignmentStatus.FINISHED
    assert view.timer == [1, 15]
    assert Assignment.objects.get(pk=assignment.pk).status == AssignmentStatus.STARTED


def test_get_assignment_scoped_to_course(consumer, make_assignment, learner):
    assignment = make_assignment(course_id="another-course")
    with pytest.raises(NotFound):
        assignment_service.get_assignment(assignment.pk, learner)


def test_list_task_assignments_only_closed(instructor, make_assignment):
    closed = make_assignment(status=AssignmentStatus.FINISHED)
    make_assignment(status=AssignmentStatus.STARTED)
    make_assignment(status=AssignmentStatus.FINISHED, kind=AssignmentKind.QUIZ_DEFINITE)
    assert list(assignment_service.list_task_assignments(instructor)) == [closed]


def test_toggle_publish_solution(instructor, make_assignment):
    assignment = make_assignment(status=AssignmentStatus.PUBLISHED_NO_SOLUTION)
    assert assignment_service.toggle_publish_solution(assignment.pk, instructor).status == AssignmentStatus.PUBLISHED_WITH_SOLUTION
    assert assignment_service.toggle_publish_solution(assignment.pk, instructor).status == AssignmentStatus.PUBLISHED_NO_SOLUTION


@pytest.mark.parametrize("status", [AssignmentStatus.CREATED, AssignmentStatus.STARTED, AssignmentStatus.FINISHED])
def test_toggle_publish_solution_requires_published(instructor, make_assignment, status):
    assignment = make_assignment(status=status)
    with pytest.raises(InvalidState):
        assignment_service.toggle_publish_solution(assignment.pk, instructor)


def test_task_groups(instructor, make_assignment):
    assignment = make_assignment()
    group = assignment_service.create_task_group(instructor, assignment.pk, "Verbs", "")
    assert group.description is None
    assert list(assignment_service.list_task_groups(assignment.pk, instructor)) == [group]
