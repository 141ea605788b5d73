"""
Content: question bank files.

- loader: JSON question bank loading and validation
"""

from .loader import QuestionBankLoader, QuestionRecord

__all__ = [
    "QuestionBankLoader",
    "QuestionRecord",
]
