"""
Adaptive Engine.

Facade over the assessment components:

    decide_next:        metrics -> topic -> difficulty -> candidate
    plan_distribution:  multi-topic sequence planned once at session start

The engine keeps no session memory. Every decision is recomputed from the
full response history, so callers must persist each response before asking
for the next question.
"""

from __future__ import annotations

import random
from collections import Counter
from collections.abc import Sequence

from loguru import logger

from src.assessment.candidate_selector import CandidateSelector, ScoringConfig
from src.assessment.difficulty import DifficultyAdapter, DifficultyThresholds
from src.assessment.distribution import DistributionPlanner
from src.assessment.errors import ScopeEmptyError
from src.assessment.metrics import MetricsConfig, PerformanceMetricsCalculator
from src.assessment.models import (
    Decision,
    DistributionPlan,
    Exhausted,
    FocusArea,
    NextQuestionDecision,
    QuestionMeta,
    Response,
    TopicSelection,
)
from src.assessment.providers import QuestionPoolProvider
from src.assessment.topic_selector import TopicSelector, TopicThresholds


def dominant_topic(pool: Sequence[QuestionMeta]) -> str | None:
    """Most common topic in the pool (first seen wins ties)."""
    if not pool:
        return None
    counts = Counter(q.topic for q in pool)
    return counts.most_common(1)[0][0]


def topics_in_pool(pool: Sequence[QuestionMeta]) -> list[str]:
    """Distinct topics in pool order."""
    return list(dict.fromkeys(q.topic for q in pool))


class AdaptiveEngine:
    """Next-question decisions and multi-topic planning."""

    def __init__(
        self,
        rng: random.Random | None = None,
        metrics_config: MetricsConfig | None = None,
        topic_thresholds: TopicThresholds | None = None,
        difficulty_thresholds: DifficultyThresholds | None = None,
        scoring_config: ScoringConfig | None = None,
    ):
        self.rng = rng or random.Random()
        self.metrics = PerformanceMetricsCalculator(metrics_config)
        self.topic_selector = TopicSelector(topic_thresholds, rng=self.rng)
        self.difficulty_adapter = DifficultyAdapter(difficulty_thresholds)
        self.candidate_selector = CandidateSelector(scoring_config, rng=self.rng)

    def decide_next(
        self,
        history: Sequence[Response],
        pool: Sequence[QuestionMeta],
        focus_area: FocusArea | str,
        topics: Sequence[str] | None = None,
        primary_topic: str | None = None,
    ) -> Decision:
        """
        Decide which question to serve next.

        Args:
            history: Responses of this session in answer order
            pool: Candidate questions for the session scope
            focus_area: Session focus policy
            topics: Topics to choose from (defaults to every topic in the pool)
            primary_topic: Fallback topic (defaults to the pool's most common topic)

        Returns:
            NextQuestionDecision, or Exhausted when every question was answered

        Raises:
            InvalidConfigurationError: unknown focus area
            ScopeEmptyError: the pool is empty
        """
        focus = FocusArea.parse(focus_area)
        if not pool:
            raise ScopeEmptyError("session pool")

        snapshot = self.metrics.calculate(history, pool)
        available = list(topics) if topics else topics_in_pool(pool)
        fallback = primary_topic or dominant_topic(pool)

        topic = self.topic_selector.select(focus, snapshot, available, fallback_topic=fallback)
        tier, rule = self.difficulty_adapter.decide_with_rule(snapshot, topic)

        answered_ids = {r.question_id for r in history}
        picked = self.candidate_selector.select(pool, topic, tier, snapshot, answered_ids)
        if picked is None:
            logger.info(f"Pool exhausted after {len(history)} responses")
            return Exhausted(answered_count=len(history))

        question, level = picked
        logger.debug(
            f"Next question {question.id}: topic={topic} tier={tier.value} "
            f"rule={rule} level={level} mastery={snapshot.mastery_score}"
        )
        return NextQuestionDecision(
            topic=topic,
            tier=tier,
            question=question,
            fallback_level=level,
            difficulty_rule=rule,
            snapshot=snapshot,
        )

    def plan_distribution(
        self,
        provider: QuestionPoolProvider,
        selections: Sequence[TopicSelection],
        total_count: int,
        focus_area: FocusArea | str,
        oversample_factor: int = 3,
    ) -> DistributionPlan:
        """Precompute a multi-topic sequence (see DistributionPlanner.plan)."""
        planner = DistributionPlanner(provider, oversample_factor=oversample_factor, rng=self.rng)
        return planner.plan(selections, total_count, focus_area)
