"""
Request models for creating quiz sessions.

Validation happens here, before the engine is involved: the engine itself
also rejects empty selection lists and non-positive totals.
"""
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from src.assessment.capacity import MAX_TOPICS, MAX_TOTAL_QUESTIONS
from src.assessment.errors import InvalidConfigurationError
from src.assessment.models import ALL_SUBTOPICS, FocusArea, TopicSelection


class TopicSelectionRequest(BaseModel):
    """One subject/topic, optionally narrowed to subtopics."""

    subject: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    subtopics: Union[Literal["all"], List[str]] = Field(
        ALL_SUBTOPICS,
        description="'all' or a non-empty list of subtopic names",
    )

    @field_validator("subtopics")
    @classmethod
    def _non_empty_subtopics(cls, value):
        if isinstance(value, list) and not [s for s in value if s.strip()]:
            raise ValueError("subtopics must be 'all' or a non-empty list")
        return value

    def to_selection(self) -> TopicSelection:
        if self.subtopics == ALL_SUBTOPICS:
            return TopicSelection(subject=self.subject, topic=self.topic)
        names = frozenset(s.strip() for s in self.subtopics if s.strip())
        return TopicSelection(subject=self.subject, topic=self.topic, subtopics=names)

    @classmethod
    def parse(cls, raw: str) -> TopicSelectionRequest:
        """
        Parse ``SUBJECT:TOPIC`` or ``SUBJECT:TOPIC:SUB1,SUB2``.

        Raises:
            InvalidConfigurationError: malformed selection string
        """
        parts = [p.strip() for p in raw.split(":")]
        if len(parts) not in (2, 3) or not parts[0] or not parts[1]:
            raise InvalidConfigurationError(
                f"Invalid selection {raw!r}; expected SUBJECT:TOPIC[:SUB,SUB]"
            )
        if len(parts) == 2:
            return cls(subject=parts[0], topic=parts[1])
        subs = [s.strip() for s in parts[2].split(",") if s.strip()]
        if not subs:
            raise InvalidConfigurationError(f"Invalid selection {raw!r}; empty subtopic list")
        return cls(subject=parts[0], topic=parts[1], subtopics=subs)


class SingleTopicSessionRequest(BaseModel):
    """Adaptive session over one subject (optionally one topic)."""

    learner_id: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    topic: Optional[str] = None
    focus_area: Optional[FocusArea] = Field(None, description="Defaults to the configured focus area")
    question_count: Optional[int] = Field(None, ge=1, description="Capped by available questions")


class MultiTopicSessionRequest(BaseModel):
    """Planned session across 1-10 topic selections."""

    learner_id: str = Field(..., min_length=1)
    selections: List[TopicSelectionRequest] = Field(..., min_length=1, max_length=MAX_TOPICS)
    total_questions: int = Field(..., ge=1, le=MAX_TOTAL_QUESTIONS)
    focus_area: FocusArea = FocusArea.BALANCED

    def topic_selections(self) -> list[TopicSelection]:
        return [s.to_selection() for s in self.selections]

    def challenge_scope(self) -> list[dict]:
        """JSON-ready copy of the selections, stored on the session."""
        return [s.model_dump() for s in self.selections]


class SubmitAnswerRequest(BaseModel):
    session_id: int
    sequence_index: int = Field(..., ge=0)
    question_id: int
    is_correct: bool
    time_taken_seconds: float = Field(0.0, ge=0)
    user_answer: Optional[str] = None
