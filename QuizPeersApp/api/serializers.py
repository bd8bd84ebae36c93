"""Serializers validating launch context, assignment, task, answer, evaluation and publish payloads."""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from QuizPeersApp.assignments.models import Assignment, TaskGroup
from QuizPeersApp.core.choices import AssignmentKind, Difficulty, Role, TaskType
from QuizPeersApp.core.session import SessionContext
from QuizPeersApp.core.validators import validate_size_spec, validate_timer
from QuizPeersApp.learning.models import Submission

QUIZ_TYPES = {"RANDOM": AssignmentKind.QUIZ_RANDOM, "DEFINITE": AssignmentKind.QUIZ_DEFINITE}


def _as_drf_error(exc: DjangoValidationError) -> serializers.ValidationError:
    return serializers.ValidationError(exc.messages)


class SessionContextSerializer(serializers.Serializer):
    """Launch context established by the platform; produces a SessionContext."""
    consumer_id = serializers.CharField(max_length=255)
    course_id = serializers.CharField(max_length=255)
    user_id = serializers.CharField(max_length=255)
    role = serializers.ChoiceField(choices=Role.choices, default=Role.LEARNER)
    extension_minutes = serializers.FloatField(min_value=0, required=False, allow_null=True)
    return_id = serializers.CharField(max_length=255, required=False, allow_null=True)

    def to_context(self) -> SessionContext:
        return SessionContext(**self.validated_data)


class StartAssignmentSerializer(serializers.Serializer):
    outcome_url = serializers.URLField(required=False, allow_null=True)
    points = serializers.FloatField(min_value=0, required=False, allow_null=True)


class TaskAssignmentCreateSerializer(serializers.Serializer):
    """Payload to create a task-submission assignment."""
    title = serializers.CharField(max_length=60)
    size = serializers.IntegerField(min_value=1)
    types = serializers.ListField(child=serializers.ChoiceField(choices=TaskType.choices), allow_empty=False)
    glossary = serializers.ListField(child=serializers.CharField(max_length=255), required=False, allow_null=True)
    deadline = serializers.DateTimeField()

    def validate(self, data):
        if TaskType.NAME_IMAGE in data["types"] and not data.get("glossary"):
            raise serializers.ValidationError({"glossary": "A glossary is required for name image tasks."})
        return data


class QuizAssignmentCreateSerializer(serializers.Serializer):
    """Payload to create a random or definite quiz over uploaded tasks."""
    title = serializers.CharField(max_length=60)
    type = serializers.ChoiceField(choices=list(QUIZ_TYPES))
    size = serializers.JSONField(required=False, allow_null=True)
    tasks = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    difficulties = serializers.ListField(
        child=serializers.ChoiceField(choices=Difficulty.choices), required=False, default=list
    )
    weights = serializers.DictField(child=serializers.FloatField(min_value=0), required=False, allow_null=True)
    timer = serializers.JSONField(required=False, allow_null=True)
    deadline = serializers.DateTimeField()
    assignments = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)

    def validate_timer(self, value):
        try:
            validate_timer(value)
        except DjangoValidationError as exc:
            raise _as_drf_error(exc)
        return value

    def validate(self, data):
        if len(data["difficulties"]) > len(data["tasks"]):
            raise serializers.ValidationError({"difficulties": "More difficulties than tasks."})
        if data["type"] != "RANDOM":
            return data
        try:
            validate_size_spec(QUIZ_TYPES["RANDOM"], data.get("size"))
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"size": exc.messages})
        weights = data.get("weights")
        if weights and isinstance(data["size"], dict) and set(weights) != set(data["size"]):
            raise serializers.ValidationError({"weights": "Weights must cover exactly the groups of the size."})
        return data


class CombineTermSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=["TEXT", "IMAGE"])
    term = serializers.JSONField()


class CombineTermPairSerializer(serializers.Serializer):
    term = CombineTermSerializer()
    related_term = CombineTermSerializer()


class TaskPayloadSerializer(serializers.Serializer):
    """Uploaded task content; shape depends on ``type``."""
    assignment_id = serializers.IntegerField(min_value=1)
    task_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    replace = serializers.BooleanField(default=False)
    type = serializers.ChoiceField(choices=TaskType.choices)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    options = serializers.ListField(child=serializers.CharField(), required=False)
    solution_index = serializers.IntegerField(min_value=0, required=False)
    pairs = CombineTermPairSerializer(many=True, required=False)
    solution = serializers.CharField(required=False)

    def validate(self, data):
        task_type = data["type"]
        if task_type == TaskType.MULTIPLE_CHOICE:
            options = data.get("options") or []
            if len(options) < 2 or "solution_index" not in data:
                raise serializers.ValidationError("Multiple choice tasks need options and a solution index.")
            if data["solution_index"] >= len(options):
                raise serializers.ValidationError({"solution_index": "Solution index out of range."})
        elif task_type == TaskType.COMBINE_TERMS:
            if not data.get("pairs"):
                raise serializers.ValidationError({"pairs": "Combine terms tasks need at least one pair."})
        elif task_type == TaskType.NAME_IMAGE and not data.get("solution"):
            raise serializers.ValidationError({"solution": "Name image tasks need a solution term."})
        return data


class AnswerSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    answer = serializers.JSONField(allow_null=True)


class AnswersSerializer(serializers.Serializer):
    answers = AnswerSerializer(many=True)


class EvaluateTaskSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=0, required=False, allow_null=True, default=None)
    include = serializers.BooleanField()
    group_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_score(self, value):
        max_score = self.context.get("max_task_score")
        if value is not None and max_score is not None and value > max_score:
            raise serializers.ValidationError(f"Score cannot exceed {max_score}.")
        return value


class PublishSubmissionsSerializer(serializers.Serializer):
    submission_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)


class TaskGroupWriteSerializer(serializers.Serializer):
    assignment_id = serializers.IntegerField(min_value=1)
    name = serializers.CharField(max_length=60)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class TaskGroupReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskGroup
        fields = ["id", "name", "description"]


class AssignmentReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = Assignment
        fields = [
            "id", "title", "kind", "size", "task_types", "glossary", "points",
            "timer", "status", "deadline", "created_at",
        ]


class SubmissionReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = Submission
        fields = [
            "id", "assignment", "user_id", "status", "score", "lms_score",
            "submitted_at", "published_at", "created_at",
        ]
