"""
SQLAlchemy-backed providers and stores.

- SqlQuestionBank: QuestionPoolProvider over approved, active questions
- SqlSessionStore: quiz sessions and ResponseHistoryProvider
- SqlTopicPerformanceStore: rolling per-student topic records
- log_shortfalls: persist planner deficits for question-bank admins

Every class takes an open Session; transaction boundaries belong to the
caller (see src.db.database.session_scope).
"""
from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from src.assessment.errors import SessionNotFoundError
from src.assessment.models import QuestionMeta, Response, ShortfallRecord, Tier, TopicSelection
from src.assessment.providers import QuestionScope
from src.assessment.topic_performance import PerformanceLevel, TopicPerformanceRecord
from src.db.models import (
    Question,
    QuestionBankShortfall,
    QuizResponse,
    QuizSession,
    StudentTopicPerformance,
)

SERVABLE_STATUS = "approved"


def to_question_meta(row: Question) -> QuestionMeta:
    """ORM row -> engine view. average_score is stored as a percentage."""
    average = float(row.average_score) / 100 if row.average_score is not None else None
    return QuestionMeta(
        id=row.id,
        subject=row.subject,
        topic=row.topic,
        tier=Tier(row.difficulty),
        sub_topic=row.sub_topic,
        time_limit_seconds=float(row.time_limit) if row.time_limit is not None else None,
        historical_average_score=average,
        question_text=row.question_text or "",
    )


class SqlQuestionBank:
    """QuestionPoolProvider reading the questions table."""

    def __init__(self, session: Session):
        self.session = session

    def _servable(self):
        return select(Question).where(
            and_(
                Question.status == SERVABLE_STATUS,
                Question.is_active.is_(True),
            )
        )

    @staticmethod
    def _selection_filter(query, selection: TopicSelection):
        query = query.where(
            and_(Question.subject == selection.subject, Question.topic == selection.topic)
        )
        if not selection.covers_all_subtopics:
            query = query.where(Question.sub_topic.in_(sorted(selection.subtopics)))
        return query

    # ========================================
    # QuestionPoolProvider
    # ========================================

    def fetch_question_pool(self, scope: QuestionScope) -> list[QuestionMeta]:
        query = self._servable()
        if scope.subject is not None:
            query = query.where(Question.subject == scope.subject)
        if scope.topic is not None:
            query = query.where(Question.topic == scope.topic)

        rows = self.session.execute(query.order_by(Question.id)).scalars().all()
        return [to_question_meta(row) for row in rows]

    def sample_questions(
        self,
        selection: TopicSelection,
        tier: Tier,
        limit: int,
        exclude_ids: Collection[int] = (),
    ) -> list[QuestionMeta]:
        """Random sample via ORDER BY random() LIMIT n."""
        if limit <= 0:
            return []

        query = self._selection_filter(self._servable(), selection)
        query = query.where(Question.difficulty == tier.value)
        if exclude_ids:
            query = query.where(Question.id.notin_(list(exclude_ids)))

        rows = self.session.execute(query.order_by(func.random()).limit(limit)).scalars().all()
        return [to_question_meta(row) for row in rows]

    def count_by_tier(self, selection: TopicSelection) -> dict[Tier, int]:
        query = (
            select(Question.difficulty, func.count(Question.id))
            .where(
                and_(
                    Question.status == SERVABLE_STATUS,
                    Question.is_active.is_(True),
                )
            )
            .group_by(Question.difficulty)
        )
        query = self._selection_filter(query, selection)

        counts = {tier: 0 for tier in Tier.ordered()}
        for difficulty, count in self.session.execute(query).all():
            counts[Tier(difficulty)] = count
        return counts

    # ========================================
    # Lookups and import
    # ========================================

    def get_questions(self, question_ids: Iterable[int]) -> dict[int, QuestionMeta]:
        """Questions by id, regardless of status (history may reference retired questions)."""
        ids = list(question_ids)
        if not ids:
            return {}
        rows = self.session.execute(select(Question).where(Question.id.in_(ids))).scalars().all()
        return {row.id: to_question_meta(row) for row in rows}

    def add_questions(self, rows: Iterable[dict[str, Any]]) -> int:
        """
        Insert question rows.

        Args:
            rows: Column-name dicts (see src.content.loader.QuestionRecord.to_row)

        Returns:
            Number of questions inserted
        """
        count = 0
        for data in rows:
            self.session.add(Question(**data))
            count += 1
        self.session.flush()
        logger.info(f"Imported {count} questions")
        return count


class SqlSessionStore:
    """Quiz sessions and their responses."""

    def __init__(self, session: Session):
        self.session = session

    # ========================================
    # Sessions
    # ========================================

    def create_session(
        self,
        learner_id: str,
        focus_area: str,
        total_questions: int,
        subject: str | None = None,
        topic: str | None = None,
        challenge_scope: list[dict[str, Any]] | None = None,
        planned_question_ids: list[int] | None = None,
    ) -> QuizSession:
        quiz_session = QuizSession(
            learner_id=learner_id,
            subject=subject,
            topic=topic,
            focus_area=focus_area,
            total_questions=total_questions,
            challenge_scope=challenge_scope,
            planned_question_ids=planned_question_ids,
        )
        self.session.add(quiz_session)
        self.session.flush()
        return quiz_session

    def get_session(self, session_id: int) -> QuizSession:
        """
        Raises:
            SessionNotFoundError: no session with that id
        """
        quiz_session = self.session.get(QuizSession, session_id)
        if quiz_session is None:
            raise SessionNotFoundError(f"Quiz session {session_id} not found")
        return quiz_session

    def mark_completed(self, session_id: int) -> QuizSession:
        quiz_session = self.get_session(session_id)
        if not quiz_session.is_completed:
            quiz_session.is_completed = True
            quiz_session.completed_at = datetime.now()
            quiz_session.score = sum(r.points_earned for r in quiz_session.responses)
            self.session.flush()
            logger.info(f"Session {session_id} completed (score={quiz_session.score})")
        return quiz_session

    # ========================================
    # Responses
    # ========================================

    def fetch_response_history(self, session_id: int) -> list[Response]:
        rows = self.session.execute(
            select(QuizResponse)
            .where(QuizResponse.session_id == session_id)
            .order_by(QuizResponse.sequence_index)
        ).scalars().all()
        return [
            Response(
                question_id=row.question_id,
                is_correct=row.is_correct,
                time_taken_seconds=float(row.time_taken or 0),
                sequence_index=row.sequence_index,
            )
            for row in rows
        ]

    def record_response(
        self,
        session_id: int,
        sequence_index: int,
        question_id: int,
        is_correct: bool,
        time_taken: float = 0.0,
        user_answer: str | None = None,
        points_earned: int = 0,
    ) -> tuple[QuizResponse, bool]:
        """
        Store an answer, idempotent on (session_id, sequence_index).

        Returns:
            (response, created). A retried submit returns the stored row and False.
        """
        existing = self.session.execute(
            select(QuizResponse).where(
                and_(
                    QuizResponse.session_id == session_id,
                    QuizResponse.sequence_index == sequence_index,
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            logger.debug(f"Duplicate submit ignored: session={session_id} seq={sequence_index}")
            return existing, False

        response = QuizResponse(
            session_id=session_id,
            sequence_index=sequence_index,
            question_id=question_id,
            is_correct=is_correct,
            time_taken=time_taken,
            user_answer=user_answer,
            points_earned=points_earned,
        )
        self.session.add(response)
        self.session.flush()
        return response, True


class SqlTopicPerformanceStore:
    """Persistence for TopicPerformanceRecord."""

    def __init__(self, session: Session):
        self.session = session

    def _row(self, learner_id: str, subject: str, topic: str) -> StudentTopicPerformance | None:
        return self.session.execute(
            select(StudentTopicPerformance).where(
                and_(
                    StudentTopicPerformance.learner_id == learner_id,
                    StudentTopicPerformance.subject == subject,
                    StudentTopicPerformance.topic == topic,
                )
            )
        ).scalar_one_or_none()

    @staticmethod
    def _to_record(row: StudentTopicPerformance) -> TopicPerformanceRecord:
        return TopicPerformanceRecord(
            subject=row.subject,
            topic=row.topic,
            total_attempts=row.total_attempts,
            total_questions=row.total_questions,
            correct_answers=row.correct_answers,
            avg_time_per_question=float(row.avg_time_per_question or 0),
            tier_totals={
                Tier.EASY: row.easy_total,
                Tier.MEDIUM: row.medium_total,
                Tier.HARD: row.hard_total,
            },
            tier_correct={
                Tier.EASY: row.easy_correct,
                Tier.MEDIUM: row.medium_correct,
                Tier.HARD: row.hard_correct,
            },
            performance_level=PerformanceLevel(row.performance_level),
            confidence_score=float(row.confidence_score or 0),
        )

    def get(self, learner_id: str, subject: str, topic: str) -> TopicPerformanceRecord | None:
        row = self._row(learner_id, subject, topic)
        return self._to_record(row) if row is not None else None

    def list_for_learner(self, learner_id: str) -> list[TopicPerformanceRecord]:
        rows = self.session.execute(
            select(StudentTopicPerformance)
            .where(StudentTopicPerformance.learner_id == learner_id)
            .order_by(StudentTopicPerformance.subject, StudentTopicPerformance.topic)
        ).scalars().all()
        return [self._to_record(row) for row in rows]

    def save(self, learner_id: str, record: TopicPerformanceRecord) -> None:
        row = self._row(learner_id, record.subject, record.topic)
        if row is None:
            row = StudentTopicPerformance(
                learner_id=learner_id, subject=record.subject, topic=record.topic
            )
            self.session.add(row)

        row.total_attempts = record.total_attempts
        row.total_questions = record.total_questions
        row.correct_answers = record.correct_answers
        row.accuracy_percent = Decimal(str(round(record.accuracy_percent, 2)))
        row.avg_time_per_question = int(round(record.avg_time_per_question))
        row.easy_total = record.tier_totals[Tier.EASY]
        row.easy_correct = record.tier_correct[Tier.EASY]
        row.medium_total = record.tier_totals[Tier.MEDIUM]
        row.medium_correct = record.tier_correct[Tier.MEDIUM]
        row.hard_total = record.tier_totals[Tier.HARD]
        row.hard_correct = record.tier_correct[Tier.HARD]
        row.performance_level = record.performance_level.value
        row.confidence_score = Decimal(str(round(record.confidence_score, 2)))
        self.session.flush()


def log_shortfalls(
    session: Session,
    shortfalls: Sequence[ShortfallRecord],
    session_id: int | None = None,
) -> int:
    """Persist shortfall records; returns the number written."""
    for record in shortfalls:
        session.add(
            QuestionBankShortfall(
                session_id=session_id,
                subject=record.subject,
                topic=record.topic,
                subtopic=record.subtopic,
                difficulty=record.difficulty.value if record.difficulty else None,
                requested_count=record.requested,
                available_count=record.available,
                shortfall=record.shortfall,
            )
        )
    if shortfalls:
        session.flush()
        logger.info(f"Logged {len(shortfalls)} question bank shortfalls")
    return len(shortfalls)
