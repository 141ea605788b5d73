"""
Candidate Scorer / Selector.

Narrows the question pool with an ordered fallback chain of filters and picks
one question from the best-scored candidates.

Fallback chain (first non-empty level wins, answered questions are always
excluded):
    topic_and_tier -> topic_only -> tier_only -> any_unanswered

Scoring starts at 100:
    -30  topic appeared in the last three responses (variety)
    -25  historical average score outside [0.20, 0.95] (likely miscalibrated)
    -20  time limit over 2x the session's average response time
Answered questions score 0 and are excluded outright.

The final pick is uniformly random among the top three candidates so that
repeated sessions do not converge on one fixed question order.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Collection, Sequence
from dataclasses import dataclass

from loguru import logger

from src.assessment.models import PerformanceSnapshot, QuestionMeta, Tier


@dataclass(frozen=True)
class ScoringConfig:
    base_score: int = 100
    recent_topic_penalty: int = 30
    miscalibration_penalty: int = 25
    long_item_penalty: int = 20
    min_historical_score: float = 0.20
    max_historical_score: float = 0.95
    long_item_factor: float = 2.0
    top_k: int = 3


@dataclass(frozen=True)
class ScoredCandidate:
    question: QuestionMeta
    score: int


Predicate = Callable[[QuestionMeta], bool]


def build_fallback_chain(topic: str, tier: Tier) -> list[tuple[str, Predicate]]:
    """Ordered (name, filter) pairs from most to least specific."""
    return [
        ("topic_and_tier", lambda q: q.topic == topic and q.tier == tier),
        ("topic_only", lambda q: q.topic == topic),
        ("tier_only", lambda q: q.tier == tier),
        ("any_unanswered", lambda q: True),
    ]


class CandidateSelector:
    """Filters, scores and picks the next question."""

    def __init__(
        self,
        config: ScoringConfig | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or ScoringConfig()
        self.rng = rng or random.Random()

    def candidates(
        self,
        pool: Sequence[QuestionMeta],
        topic: str,
        tier: Tier,
        answered_ids: Collection[int],
    ) -> tuple[list[QuestionMeta], str | None]:
        """
        Walk the fallback chain.

        Returns:
            Tuple of (candidates, level name); ([], None) when every question
            has been answered
        """
        answered = set(answered_ids)
        unanswered = [q for q in pool if q.id not in answered]

        for level, predicate in build_fallback_chain(topic, tier):
            matched = [q for q in unanswered if predicate(q)]
            if matched:
                if level != "topic_and_tier":
                    logger.debug(f"No {tier.value} questions in {topic}, fell back to {level}")
                return matched, level

        return [], None

    def score(
        self,
        question: QuestionMeta,
        snapshot: PerformanceSnapshot,
        answered_ids: Collection[int] = (),
    ) -> int:
        """Quality score of a single candidate (0 when already answered)."""
        cfg = self.config
        if question.id in answered_ids:
            return 0

        score = cfg.base_score

        if question.topic in snapshot.recent_topics:
            score -= cfg.recent_topic_penalty

        historical = question.historical_average_score
        if historical is not None and not (
            cfg.min_historical_score <= historical <= cfg.max_historical_score
        ):
            score -= cfg.miscalibration_penalty

        avg_time = snapshot.avg_time_per_question
        if question.time_limit_seconds and avg_time > 0:
            if question.time_limit_seconds > avg_time * cfg.long_item_factor:
                score -= cfg.long_item_penalty

        return score

    def rank(
        self,
        candidates: Sequence[QuestionMeta],
        snapshot: PerformanceSnapshot,
        answered_ids: Collection[int] = (),
    ) -> list[ScoredCandidate]:
        scored = [
            ScoredCandidate(question=q, score=self.score(q, snapshot, answered_ids))
            for q in candidates
            if q.id not in answered_ids
        ]
        scored.sort(key=lambda c: c.score, reverse=True)
        return scored

    def select(
        self,
        pool: Sequence[QuestionMeta],
        topic: str,
        tier: Tier,
        snapshot: PerformanceSnapshot,
        answered_ids: Collection[int],
    ) -> tuple[QuestionMeta, str] | None:
        """
        Pick the next question.

        Returns:
            Tuple of (question, fallback level), or None when the pool is exhausted
        """
        answered = set(answered_ids)
        candidates, level = self.candidates(pool, topic, tier, answered)
        if not candidates:
            return None

        ranked = self.rank(candidates, snapshot, answered)
        top = ranked[: self.config.top_k]
        chosen = self.rng.choice(top)

        logger.debug(
            f"Selected question {chosen.question.id} (score {chosen.score}) "
            f"from {len(candidates)} candidates at level {level}"
        )
        return chosen.question, level
