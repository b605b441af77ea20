# Import all models so Alembic can discover them via Base.metadata
from .course import Course
from .course_progress import CourseProgress
from .mini_training import MiniTraining
from .mini_training_progress import MiniTrainingProgress
from .notification import Notification
from .quiz import Quiz
from .quiz_attempt import QuizAttempt
from .training import Training
from .training_progress import TrainingProgress
from .watch_signal import WatchSignal

__all__ = [
    "Course",
    "CourseProgress",
    "MiniTraining",
    "MiniTrainingProgress",
    "Notification",
    "Quiz",
    "QuizAttempt",
    "Training",
    "TrainingProgress",
    "WatchSignal",
]
