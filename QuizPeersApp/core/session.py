"""Validated launch context handed to every service call."""

from dataclasses import dataclass

from QuizPeersApp.core.choices import Role


@dataclass(frozen=True)
class SessionContext:
    """Caller identity as established by the external platform launch.

    Fields:
        consumer_id: Registered platform (tool consumer) id.
        course_id: Course (context) id on that platform.
        user_id: Platform user id of the caller.
        role: Role value (instructor or learner).
        extension_minutes: Personal timer extension for quizzes, if any.
        return_id: Outcome sourced id used when publishing the caller's score.
    """
    consumer_id: str
    course_id: str
    user_id: str
    role: str = Role.LEARNER
    extension_minutes: float | None = None
    return_id: str | None = None

    @property
    def is_instructor(self) -> bool:
        return self.role == Role.INSTRUCTOR
