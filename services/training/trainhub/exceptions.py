"""Shared domain exception classes for the training service.

These are raised by service-layer code and caught by controllers
to map to appropriate HTTP responses.
"""


class CourseNotFoundError(Exception):
    """Raised when a course cannot be found by ID."""

    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Course not found: {identifier}")


class TrainingNotFoundError(Exception):
    def __init__(self, training_id: str = ""):
        self.training_id = training_id
        super().__init__(f"Training not found: {training_id}")


class MiniTrainingNotFoundError(Exception):
    def __init__(self, mini_training_id: str = ""):
        self.mini_training_id = mini_training_id
        super().__init__(f"Mini training not found: {mini_training_id}")


class QuizNotFoundError(Exception):
    def __init__(self, quiz_id: str = ""):
        self.quiz_id = quiz_id
        super().__init__(f"Quiz not found: {quiz_id}")


class NotificationNotFoundError(Exception):
    def __init__(self, notification_id: str = ""):
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class NotCourseTrainerError(Exception):
    """Raised when a trainer tries to edit a training in a course they don't own."""


class ContentNotPublishedError(Exception):
    """Raised when a learner touches an unpublished course or training."""


class QuizHasNoQuestionsError(Exception):
    """Raised when quiz content is empty or could not be parsed."""


class MaxAttemptsReachedError(Exception):
    """Raised when the learner has exhausted the quiz attempt limit."""


class RetakeNotAllowedError(Exception):
    """Raised when the quiz forbids retakes and an attempt already exists."""


class InvalidWatchProgressError(Exception):
    """Raised when a client reports a negative or non-finite watch position."""


class InvalidQuizDefinitionError(Exception):
    """Raised when authored quiz content is unusable (no questions, bad questions_to_show)."""
