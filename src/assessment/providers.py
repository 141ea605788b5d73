"""
Collaborator interfaces for the assessment engine.

The engine never fetches or stores anything itself. Callers hand it a
question pool and a response history obtained through these protocols.
Two implementations ship with the project:
- InMemoryQuestionBank / InMemoryResponseHistory (below): tests, CLI simulation
- SqlQuestionBank / SqlSessionStore (src.db.repository): SQLAlchemy backed
"""

from __future__ import annotations

import random
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from src.assessment.models import QuestionMeta, Response, Tier, TopicSelection


@dataclass(frozen=True)
class QuestionScope:
    """Subject and optional topic narrowing a single-topic session's pool."""

    subject: str | None = None
    topic: str | None = None

    def matches(self, question: QuestionMeta) -> bool:
        if self.subject is not None and question.subject != self.subject:
            return False
        if self.topic is not None and question.topic != self.topic:
            return False
        return True

    def __str__(self) -> str:
        return f"{self.subject or '*'} / {self.topic or '*'}"


@runtime_checkable
class QuestionPoolProvider(Protocol):
    """Read access to approved, active questions."""

    def fetch_question_pool(self, scope: QuestionScope) -> list[QuestionMeta]:
        ...

    def sample_questions(
        self,
        selection: TopicSelection,
        tier: Tier,
        limit: int,
        exclude_ids: Collection[int] = (),
    ) -> list[QuestionMeta]:
        """Random-order sample of at most ``limit`` questions."""
        ...

    def count_by_tier(self, selection: TopicSelection) -> dict[Tier, int]:
        ...


@runtime_checkable
class ResponseHistoryProvider(Protocol):
    """Read access to a session's ordered responses."""

    def fetch_response_history(self, session_id: int) -> list[Response]:
        ...


class InMemoryQuestionBank:
    """QuestionPoolProvider over a list of QuestionMeta."""

    def __init__(
        self,
        questions: Iterable[QuestionMeta],
        rng: random.Random | None = None,
    ):
        self._questions = list(questions)
        self.rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._questions)

    def fetch_question_pool(self, scope: QuestionScope) -> list[QuestionMeta]:
        return [q for q in self._questions if scope.matches(q)]

    def sample_questions(
        self,
        selection: TopicSelection,
        tier: Tier,
        limit: int,
        exclude_ids: Collection[int] = (),
    ) -> list[QuestionMeta]:
        if limit <= 0:
            return []
        excluded = set(exclude_ids)
        matching = [
            q for q in self._questions
            if selection.matches(q) and q.tier == tier and q.id not in excluded
        ]
        self.rng.shuffle(matching)
        return matching[:limit]

    def count_by_tier(self, selection: TopicSelection) -> dict[Tier, int]:
        counts = {tier: 0 for tier in Tier.ordered()}
        for q in self._questions:
            if selection.matches(q):
                counts[q.tier] += 1
        return counts


class InMemoryResponseHistory:
    """ResponseHistoryProvider keyed by session id; idempotent on sequence index."""

    def __init__(self) -> None:
        self._data: dict[int, dict[int, Response]] = {}

    def record(self, session_id: int, response: Response) -> Response:
        """Store a response unless one already exists at the same sequence index."""
        session = self._data.setdefault(session_id, {})
        return session.setdefault(response.sequence_index, response)

    def fetch_response_history(self, session_id: int) -> list[Response]:
        session = self._data.get(session_id, {})
        return [session[idx] for idx in sorted(session)]
