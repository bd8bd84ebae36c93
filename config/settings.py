"""Django settings for the QuizPeers lifecycle service."""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-secret-key")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "simple_history",
    "QuizPeersApp.core",
    "QuizPeersApp.assignments",
    "QuizPeersApp.learning",
]

MIDDLEWARE = [
    "simple_history.middleware.HistoryRequestMiddleware",
]

if os.getenv("DB_ENGINE"):
    DATABASES = {
        "default": {
            "ENGINE": os.getenv("DB_ENGINE"),
            "NAME": os.getenv("DB_NAME", "quizpeers"),
            "USER": os.getenv("DB_USER", ""),
            "PASSWORD": os.getenv("DB_PASSWORD", ""),
            "HOST": os.getenv("DB_HOST", ""),
            "PORT": os.getenv("DB_PORT", ""),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "UNAUTHENTICATED_USER": None,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "QuizPeersApp": {
            "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
        },
    },
}

# Lifecycle
QUIZPEERS_MAX_TASK_SCORE = int(os.getenv("QUIZPEERS_MAX_TASK_SCORE", "10"))
QUIZPEERS_SWEEP_INTERVAL_SECONDS = float(os.getenv("QUIZPEERS_SWEEP_INTERVAL_SECONDS", "60"))

# Score passback
QUIZPEERS_SCORE_PUBLISH_TIMEOUT = float(os.getenv("QUIZPEERS_SCORE_PUBLISH_TIMEOUT", "10"))
QUIZPEERS_SCORE_PUBLISH_RETRIES = int(os.getenv("QUIZPEERS_SCORE_PUBLISH_RETRIES", "3"))
QUIZPEERS_SCORE_PUBLISH_BACKOFF = float(os.getenv("QUIZPEERS_SCORE_PUBLISH_BACKOFF", "1.0"))
QUIZPEERS_SCORE_PUBLISHER = os.getenv(
    "QUIZPEERS_SCORE_PUBLISHER", "QuizPeersApp.integrations.lti_outcomes.LtiOutcomePublisher"
)
