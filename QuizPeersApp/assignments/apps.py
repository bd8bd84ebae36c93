"""Assignments app configuration."""

from django.apps import AppConfig

class AssignmentsConfig(AppConfig):
    """AppConfig for assignments, consumers and task groups."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "QuizPeersApp.assignments"
