"""
Performance Metrics Calculator.

Derives a PerformanceSnapshot from a session's response history and the
metadata of the answered questions:
- Overall and recent (last 5) accuracy
- Per-topic attempts, accuracy and time
- Per-tier accuracy
- Mastery score (0-100)

Mastery formula:
    40 x overall accuracy +
    30 x recent accuracy +
    20 x consistency (1 - |overall - recent|) +
    10 x time efficiency (max(0, 1 - avg_time / 60s))

The calculator is a pure function of its inputs: no I/O, no randomness,
no state carried between calls.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from src.assessment.models import (
    PerformanceSnapshot,
    QuestionMeta,
    Response,
    Tier,
    TopicPerformance,
)


@dataclass(frozen=True)
class MetricsConfig:
    """Windows and weights for the snapshot."""

    recent_window: int = 5
    recent_topics_window: int = 3
    neutral_prior: float = 0.5
    baseline_seconds: float = 60.0

    weight_overall: float = 40.0
    weight_recent: float = 30.0
    weight_consistency: float = 20.0
    weight_efficiency: float = 10.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class PerformanceMetricsCalculator:
    """Builds PerformanceSnapshots from raw responses."""

    def __init__(self, config: MetricsConfig | None = None):
        self.config = config or MetricsConfig()

    def calculate(
        self,
        responses: Sequence[Response],
        questions: Mapping[int, QuestionMeta] | Iterable[QuestionMeta],
    ) -> PerformanceSnapshot:
        """
        Compute a fresh snapshot.

        Responses whose question is missing from ``questions`` still count
        toward overall/recent accuracy and average time, but are left out of
        topic and tier aggregation.

        Args:
            responses: Session responses in answer order
            questions: Question metadata, either keyed by id or as a plain iterable

        Returns:
            PerformanceSnapshot (neutral defaults when there are no responses)
        """
        cfg = self.config
        if not responses:
            return PerformanceSnapshot(
                overall_accuracy=cfg.neutral_prior,
                recent_accuracy=cfg.neutral_prior,
                per_difficulty={tier: cfg.neutral_prior for tier in Tier.ordered()},
            )

        by_id = self._index(questions)
        total = len(responses)
        correct = sum(1 for r in responses if r.is_correct)
        overall = correct / total

        recent_slice = responses[-cfg.recent_window:]
        recent = sum(1 for r in recent_slice if r.is_correct) / len(recent_slice)

        per_topic = self._aggregate_topics(responses, by_id)
        per_difficulty = self._aggregate_tiers(responses, by_id)

        # Last responses in order; unknown questions contribute no topic
        recent_topics = tuple(
            by_id[r.question_id].topic
            for r in responses[-cfg.recent_topics_window:]
            if r.question_id in by_id
        )

        total_time = sum(r.time_taken_seconds or 0.0 for r in responses)
        avg_time = total_time / total

        return PerformanceSnapshot(
            overall_accuracy=overall,
            recent_accuracy=recent,
            per_topic=per_topic,
            per_difficulty=per_difficulty,
            avg_time_per_question=avg_time,
            mastery_score=self.mastery_score(overall, recent, avg_time),
            last_tier=self._last_tier(responses, by_id),
            recent_topics=recent_topics,
            questions_answered=total,
            correct_answers=correct,
        )

    def mastery_score(self, overall: float, recent: float, avg_time: float) -> int:
        """Weighted blend of accuracy, consistency and speed, rounded to 0-100."""
        cfg = self.config
        consistency = 1 - abs(overall - recent)
        efficiency = max(0.0, 1 - avg_time / cfg.baseline_seconds)
        score = (
            overall * cfg.weight_overall
            + recent * cfg.weight_recent
            + consistency * cfg.weight_consistency
            + efficiency * cfg.weight_efficiency
        )
        return min(max(_round_half_up(score), 0), 100)

    @staticmethod
    def _index(
        questions: Mapping[int, QuestionMeta] | Iterable[QuestionMeta],
    ) -> Mapping[int, QuestionMeta]:
        if isinstance(questions, Mapping):
            return questions
        return {q.id: q for q in questions}

    @staticmethod
    def _aggregate_topics(
        responses: Sequence[Response],
        by_id: Mapping[int, QuestionMeta],
    ) -> dict[str, TopicPerformance]:
        attempts: dict[str, int] = {}
        correct: dict[str, int] = {}
        times: dict[str, float] = {}

        for response in responses:
            question = by_id.get(response.question_id)
            if question is None:
                continue
            topic = question.topic
            attempts[topic] = attempts.get(topic, 0) + 1
            correct[topic] = correct.get(topic, 0) + (1 if response.is_correct else 0)
            times[topic] = times.get(topic, 0.0) + (response.time_taken_seconds or 0.0)

        return {
            topic: TopicPerformance(
                topic=topic,
                attempts=count,
                correct=correct[topic],
                total_time=times[topic],
            )
            for topic, count in attempts.items()
        }

    def _aggregate_tiers(
        self,
        responses: Sequence[Response],
        by_id: Mapping[int, QuestionMeta],
    ) -> dict[Tier, float]:
        totals = {tier: 0 for tier in Tier.ordered()}
        hits = {tier: 0 for tier in Tier.ordered()}

        for response in responses:
            question = by_id.get(response.question_id)
            if question is None:
                continue
            totals[question.tier] += 1
            if response.is_correct:
                hits[question.tier] += 1

        return {
            tier: (hits[tier] / totals[tier]) if totals[tier] else self.config.neutral_prior
            for tier in Tier.ordered()
        }

    @staticmethod
    def _last_tier(
        responses: Sequence[Response],
        by_id: Mapping[int, QuestionMeta],
    ) -> Tier:
        for response in reversed(responses):
            question = by_id.get(response.question_id)
            if question is not None:
                return question.tier
        return Tier.MEDIUM
