"""
Quiz session orchestration.

Ties the engine to the SQL stores:

    start_session              single-topic adaptive session
    start_multi_topic_session  planned sequence across 1-10 selections
    next_question              planned slot, or live engine decision
    submit_answer              idempotent on (session_id, sequence_index)
    complete_session           post-session topic performance analysis

The service never commits; wrap calls in src.db.database.session_scope.
"""
from __future__ import annotations

import random
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.orm import Session

from config import Settings, get_settings
from src.assessment.capacity import validate_selections
from src.assessment.engine import AdaptiveEngine, dominant_topic
from src.assessment.errors import (
    InvalidConfigurationError,
    PoolExhaustedError,
    ScopeEmptyError,
    SessionCompletedError,
)
from src.assessment.models import (
    DistributionPlan,
    Exhausted,
    FocusArea,
    NextQuestionDecision,
    QuestionMeta,
    Response,
)
from src.assessment.providers import QuestionScope
from src.assessment.topic_performance import (
    TopicPerformanceRecord,
    merge_session,
    summarize_session,
)
from src.db.models import Question, QuizSession
from src.db.repository import (
    SqlQuestionBank,
    SqlSessionStore,
    SqlTopicPerformanceStore,
    log_shortfalls,
)
from src.quiz.schemas import (
    MultiTopicSessionRequest,
    SingleTopicSessionRequest,
    SubmitAnswerRequest,
)


@dataclass(frozen=True)
class ServedQuestion:
    """The question for the next slot of a session."""

    session_id: int
    sequence_index: int
    question: QuestionMeta
    decision: NextQuestionDecision | None = None  # None for planned sessions


@dataclass(frozen=True)
class SubmitResult:
    session_id: int
    sequence_index: int
    created: bool  # False when the submit was a retry of a stored answer
    answered_count: int
    session_completed: bool


class QuizSessionService:
    """Session lifecycle on top of AdaptiveEngine and the SQL stores."""

    def __init__(
        self,
        session: Session,
        engine: AdaptiveEngine | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.engine = engine or AdaptiveEngine(rng=random.Random(self.settings.random_seed))
        self.bank = SqlQuestionBank(session)
        self.sessions = SqlSessionStore(session)
        self.performance = SqlTopicPerformanceStore(session)

    # ========================================
    # Session start
    # ========================================

    def start_session(self, request: SingleTopicSessionRequest) -> QuizSession:
        """
        Start an adaptive session.

        The quiz length is capped by the number of questions in scope.

        Raises:
            ScopeEmptyError: nothing servable for the subject/topic
        """
        scope = QuestionScope(subject=request.subject, topic=request.topic)
        pool = self.bank.fetch_question_pool(scope)
        if not pool:
            raise ScopeEmptyError(str(scope))

        requested = request.question_count or self.settings.default_question_count
        total = min(requested, len(pool))
        focus = request.focus_area or FocusArea.parse(self.settings.default_focus_area)

        quiz_session = self.sessions.create_session(
            learner_id=request.learner_id,
            focus_area=focus.value,
            total_questions=total,
            subject=request.subject,
            topic=request.topic,
        )
        logger.info(
            f"Started adaptive session {quiz_session.id} for {request.learner_id}: "
            f"scope={scope} focus={focus.value} questions={total} "
            f"primary_topic={request.topic or dominant_topic(pool)}"
        )
        return quiz_session

    def start_multi_topic_session(
        self, request: MultiTopicSessionRequest
    ) -> tuple[QuizSession, DistributionPlan]:
        """
        Plan and store a multi-topic session.

        Raises:
            InvalidConfigurationError: too many selections
            ScopeEmptyError: no selection yielded any question
        """
        selections = request.topic_selections()
        validate_selections(selections, self.settings.max_topic_selections)
        if request.total_questions > self.settings.max_total_questions:
            raise InvalidConfigurationError(
                f"Maximum {self.settings.max_total_questions} questions allowed"
            )

        plan = self.engine.plan_distribution(
            self.bank,
            selections,
            request.total_questions,
            request.focus_area,
            oversample_factor=self.settings.oversample_factor,
        )
        quiz_session = self.sessions.create_session(
            learner_id=request.learner_id,
            focus_area=request.focus_area.value,
            total_questions=len(plan),
            challenge_scope=request.challenge_scope(),
            planned_question_ids=plan.question_ids,
        )
        log_shortfalls(self.session, plan.shortfalls, session_id=quiz_session.id)

        logger.info(
            f"Started multi-topic session {quiz_session.id} for {request.learner_id}: "
            f"{len(selections)} selections, {len(plan)}/{request.total_questions} questions"
        )
        return quiz_session, plan

    # ========================================
    # Serving and answering
    # ========================================

    def next_question(self, session_id: int) -> ServedQuestion:
        """
        Raises:
            SessionNotFoundError: unknown session
            SessionCompletedError: session already finished
            PoolExhaustedError: adaptive session ran out of unanswered questions
        """
        quiz_session = self.sessions.get_session(session_id)
        if quiz_session.is_completed:
            raise SessionCompletedError(f"Session {session_id} is already completed")

        history = self.sessions.fetch_response_history(session_id)
        index = len(history)
        if index >= quiz_session.total_questions:
            self.complete_session(session_id)
            raise SessionCompletedError(f"Session {session_id} is already completed")

        if quiz_session.is_planned:
            question_id = quiz_session.planned_question_ids[index]
            question = self.bank.get_questions([question_id])[question_id]
            return ServedQuestion(session_id=session_id, sequence_index=index, question=question)

        scope = QuestionScope(subject=quiz_session.subject, topic=quiz_session.topic)
        pool = self.bank.fetch_question_pool(scope)
        if not pool:
            raise ScopeEmptyError(str(scope))

        decision = self.engine.decide_next(
            history,
            pool,
            FocusArea.parse(quiz_session.focus_area),
            primary_topic=quiz_session.topic,
        )
        if isinstance(decision, Exhausted):
            self.complete_session(session_id)
            raise PoolExhaustedError(session_id, decision.answered_count)

        return ServedQuestion(
            session_id=session_id,
            sequence_index=index,
            question=decision.question,
            decision=decision,
        )

    def submit_answer(self, request: SubmitAnswerRequest) -> SubmitResult:
        """
        Record an answer; completes the session on its last slot.

        A retry for an index that already holds an answer returns
        ``created=False`` and leaves the stored answer untouched.

        Raises:
            SessionCompletedError: new answer for a finished session
            InvalidConfigurationError: sequence index skips ahead, or the
                question is not the one this slot serves
        """
        quiz_session = self.sessions.get_session(request.session_id)
        history = self.sessions.fetch_response_history(request.session_id)
        answered = len(history)

        if request.sequence_index < answered:
            logger.debug(
                f"Retried submit for session {request.session_id} "
                f"seq={request.sequence_index}"
            )
            return SubmitResult(
                session_id=request.session_id,
                sequence_index=request.sequence_index,
                created=False,
                answered_count=answered,
                session_completed=quiz_session.is_completed,
            )
        if quiz_session.is_completed:
            raise SessionCompletedError(f"Session {request.session_id} is already completed")
        if request.sequence_index > answered:
            raise InvalidConfigurationError(
                f"Expected sequence index {answered}, got {request.sequence_index}"
            )
        self._check_question(quiz_session, history, request)

        question = self.session.get(Question, request.question_id)
        points = question.points if question is not None and request.is_correct else 0

        _, created = self.sessions.record_response(
            session_id=request.session_id,
            sequence_index=request.sequence_index,
            question_id=request.question_id,
            is_correct=request.is_correct,
            time_taken=request.time_taken_seconds,
            user_answer=request.user_answer,
            points_earned=points,
        )
        answered += 1 if created else 0

        completed = answered >= quiz_session.total_questions
        if completed:
            self.complete_session(request.session_id)

        return SubmitResult(
            session_id=request.session_id,
            sequence_index=request.sequence_index,
            created=created,
            answered_count=answered,
            session_completed=completed,
        )

    @staticmethod
    def _check_question(
        quiz_session: QuizSession,
        history: list[Response],
        request: SubmitAnswerRequest,
    ) -> None:
        """Planned slots take only their planned question; adaptive ones never repeat."""
        if quiz_session.is_planned:
            expected = quiz_session.planned_question_ids[request.sequence_index]
            if request.question_id != expected:
                raise InvalidConfigurationError(
                    f"Slot {request.sequence_index} of session {quiz_session.id} "
                    f"serves question {expected}, got {request.question_id}"
                )
        elif any(r.question_id == request.question_id for r in history):
            raise InvalidConfigurationError(
                f"Question {request.question_id} was already answered in session {quiz_session.id}"
            )

    # ========================================
    # Completion
    # ========================================

    def complete_session(self, session_id: int) -> list[TopicPerformanceRecord]:
        """Mark the session completed and fold its results into topic performance (once)."""
        quiz_session = self.sessions.get_session(session_id)
        if quiz_session.is_completed:
            return []

        self.sessions.mark_completed(session_id)
        history = self.sessions.fetch_response_history(session_id)
        questions = self.bank.get_questions(r.question_id for r in history)

        records = []
        for stats in summarize_session(history, questions):
            existing = self.performance.get(quiz_session.learner_id, stats.subject, stats.topic)
            record = merge_session(existing, stats)
            self.performance.save(quiz_session.learner_id, record)
            records.append(record)

        logger.info(
            f"Session {session_id} analysis: "
            + ", ".join(f"{r.topic}={r.performance_level.value}" for r in records)
        )
        return records
