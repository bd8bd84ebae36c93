"""Core app configuration and startup checks for lifecycle settings."""

from django.apps import AppConfig
from django.conf import settings
from django.core.checks import register, Error

class CoreConfig(AppConfig):
    """AppConfig registering a system check for the grading/sweeping settings."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "QuizPeersApp.core"

    def ready(self):
        """Register a Django system check that rejects unusable lifecycle settings."""
        @register()
        def lifecycle_settings_check(app_configs, **kwargs):
            errors = []
            if getattr(settings, "QUIZPEERS_MAX_TASK_SCORE", 0) <= 0:
                errors.append(Error("QUIZPEERS_MAX_TASK_SCORE must be positive", id="core.E001"))
            if getattr(settings, "QUIZPEERS_SWEEP_INTERVAL_SECONDS", 0) <= 0:
                errors.append(Error("QUIZPEERS_SWEEP_INTERVAL_SECONDS must be positive", id="core.E002"))
            if getattr(settings, "QUIZPEERS_SCORE_PUBLISH_RETRIES", 0) < 1:
                errors.append(Error("QUIZPEERS_SCORE_PUBLISH_RETRIES must be at least 1", id="core.E003"))
            return errors
