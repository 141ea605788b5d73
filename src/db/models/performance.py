"""
Performance tracking models.

- StudentTopicPerformance: rolling per-student, per-topic aggregates written
  after each completed session
- QuestionBankShortfall: planner deficits logged for question-bank admins
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class StudentTopicPerformance(Base):
    """
    Rolling topic performance for one learner.

    performance_level: 'weak' (<60%), 'neutral', 'strong' (>=75%)
    confidence_score: 0-100, grows with sessions and decisive accuracy
    """

    __tablename__ = "student_topic_performance"
    __table_args__ = (
        UniqueConstraint("learner_id", "subject", "topic", name="uq_learner_subject_topic"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False)

    total_attempts: Mapped[int] = mapped_column(Integer, default=0)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    accuracy_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))
    avg_time_per_question: Mapped[int] = mapped_column(Integer, default=0)

    easy_correct: Mapped[int] = mapped_column(Integer, default=0)
    easy_total: Mapped[int] = mapped_column(Integer, default=0)
    medium_correct: Mapped[int] = mapped_column(Integer, default=0)
    medium_total: Mapped[int] = mapped_column(Integer, default=0)
    hard_correct: Mapped[int] = mapped_column(Integer, default=0)
    hard_total: Mapped[int] = mapped_column(Integer, default=0)

    performance_level: Mapped[str] = mapped_column(Text, default="neutral")
    confidence_score: Mapped[Decimal | None] = mapped_column(Numeric(5, 2))

    updated_at: Mapped[datetime] = mapped_column(default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return (
            f"<StudentTopicPerformance(learner={self.learner_id}, topic={self.topic}, "
            f"level={self.performance_level})>"
        )


class QuestionBankShortfall(Base):
    """Requested vs. available questions for a subject/topic/subtopic/tier."""

    __tablename__ = "question_bank_shortfalls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[int | None] = mapped_column(
        ForeignKey("quiz_sessions.id", ondelete="SET NULL")
    )
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    subtopic: Mapped[str | None] = mapped_column(Text)
    difficulty: Mapped[str | None] = mapped_column(Text)

    requested_count: Mapped[int] = mapped_column(Integer, nullable=False)
    available_count: Mapped[int] = mapped_column(Integer, nullable=False)
    shortfall: Mapped[int] = mapped_column(Integer, nullable=False)

    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(default=func.now())

    def __repr__(self) -> str:
        return f"<QuestionBankShortfall(topic={self.topic}, difficulty={self.difficulty}, short={self.shortfall})>"
