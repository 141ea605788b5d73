"""
Quiz session layer.

This module provides:
- QuizSessionService: session start, serving, answering and completion
- Request schemas validating session creation

Session kinds:
- adaptive: one subject (optionally one topic), next question decided live
- planned: 1-10 topic selections, whole sequence planned at start
"""

from .schemas import (
    MultiTopicSessionRequest,
    SingleTopicSessionRequest,
    SubmitAnswerRequest,
    TopicSelectionRequest,
)
from .session_service import QuizSessionService, ServedQuestion, SubmitResult

__all__ = [
    "QuizSessionService",
    "ServedQuestion",
    "SubmitResult",
    "TopicSelectionRequest",
    "SingleTopicSessionRequest",
    "MultiTopicSessionRequest",
    "SubmitAnswerRequest",
]
