"""Database models."""
from app.models.user import User
from app.models.question import Question, SavedQuestion
from app.models.test_attempt import TestAttempt
from app.models.exam_config import ExamConfig

__all__ = [
    "User",
    "Question",
    "SavedQuestion",
    "TestAttempt",
    "ExamConfig",
]
