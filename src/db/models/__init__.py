# SQLAlchemy models
from .base import Base
from .performance import (
    QuestionBankShortfall,
    StudentTopicPerformance,
)
from .quiz import (
    Question,
    QuizResponse,
    QuizSession,
)

__all__ = [
    "Base",
    # Question bank and sessions
    "Question",
    "QuizSession",
    "QuizResponse",
    # Performance tracking
    "StudentTopicPerformance",
    "QuestionBankShortfall",
]
