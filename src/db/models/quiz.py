"""
Quiz models for the question bank and adaptive sessions.

Implements:
- Question: Question bank entry with difficulty tier and quality metadata
- QuizSession: One student attempt (single-topic adaptive or multi-topic planned)
- QuizResponse: One answer, unique per (session, sequence_index)

Session kinds:
- adaptive: next question decided live from the response history
- planned: question order precomputed at start (planned_question_ids)

The (session_id, sequence_index) unique constraint is the double-submit
guard: a retried "submit answer" for the same slot cannot create a second
response, so the engine never sees a phantom answer.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Question(Base):
    """
    Question bank entry.

    Only approved, active questions are ever served. average_score is the
    historical mean score across all students as a percentage (0-100).
    """

    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_scope", "subject", "topic", "difficulty"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    sub_topic: Mapped[str | None] = mapped_column(Text)
    difficulty: Mapped[str] = mapped_column(Text, nullable=False, default="medium")

    question_type: Mapped[str] = mapped_column(Text, default="multiple_choice")
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[Any] | None] = mapped_column(JSON)
    correct_answer: Mapped[str | None] = mapped_column(Text)
    points: Mapped[int] = mapped_column(Integer, default=10)
    time_limit: Mapped[int | None] = mapped_column(Integer)  # seconds

    # Quality metadata
    average_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))

    status: Mapped[str] = mapped_column(Text, default="approved")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, topic={self.topic}, difficulty={self.difficulty})>"


class QuizSession(Base):
    """A student's quiz attempt."""

    __tablename__ = "quiz_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # Scope (single-topic sessions)
    subject: Mapped[str | None] = mapped_column(Text)
    topic: Mapped[str | None] = mapped_column(Text)

    focus_area: Mapped[str] = mapped_column(Text, default="balanced")
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)

    # Multi-topic sessions
    challenge_scope: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    planned_question_ids: Mapped[list[int] | None] = mapped_column(JSON)

    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    score: Mapped[int] = mapped_column(Integer, default=0)

    started_at: Mapped[datetime] = mapped_column(default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column()

    responses: Mapped[list["QuizResponse"]] = relationship(
        "QuizResponse",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="QuizResponse.sequence_index",
    )

    @property
    def is_planned(self) -> bool:
        return self.planned_question_ids is not None

    def __repr__(self) -> str:
        kind = "planned" if self.is_planned else "adaptive"
        return f"<QuizSession(id={self.id}, {kind}, focus={self.focus_area})>"


class QuizResponse(Base):
    """One recorded answer; immutable once written."""

    __tablename__ = "quiz_responses"
    __table_args__ = (
        UniqueConstraint("session_id", "sequence_index", name="uq_response_session_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[int] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    sequence_index: Mapped[int] = mapped_column(Integer, nullable=False)

    user_answer: Mapped[str | None] = mapped_column(Text)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_taken: Mapped[float] = mapped_column(Numeric(8, 2, asdecimal=False), default=0)
    points_earned: Mapped[int] = mapped_column(Integer, default=0)

    answered_at: Mapped[datetime] = mapped_column(default=func.now())

    session: Mapped[QuizSession] = relationship("QuizSession", back_populates="responses")

    def __repr__(self) -> str:
        return (
            f"<QuizResponse(session={self.session_id}, seq={self.sequence_index}, "
            f"correct={self.is_correct})>"
        )
