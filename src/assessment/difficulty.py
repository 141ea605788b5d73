"""
Difficulty Adapter.

Ordered rule cascade; the first matching rule decides the next tier:

1. cold_start         no responses yet                      -> medium
2. topic_cold_start   target topic never attempted          -> medium
3. struggling         recent accuracy < 40%                 -> easy
4. excelling          recent accuracy > 90%                 -> hard
5. topic_weak         topic accuracy < 50%                  -> easy
6. topic_strong       topic accuracy > 80%                  -> hard
7. progression        last tier mastered (>80%) -> step up,
                      struggling (<50%) -> step down,
                      recent accuracy in [60%, 80%] -> hold
8. default                                                  -> medium

Rules 3-6 keep the session out of sustained frustration or boredom whatever
the longer trend; rule 7 gives smooth progression once the student is stable.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from src.assessment.models import PerformanceSnapshot, Tier


@dataclass(frozen=True)
class DifficultyThresholds:
    struggling_below: float = 0.40
    excelling_above: float = 0.90
    topic_weak_below: float = 0.50
    topic_strong_above: float = 0.80
    step_up_above: float = 0.80
    step_down_below: float = 0.50
    engagement_low: float = 0.60
    engagement_high: float = 0.80


Rule = Callable[[PerformanceSnapshot, str], "Tier | None"]


class DifficultyAdapter:
    """Chooses the next difficulty tier from a performance snapshot."""

    def __init__(self, thresholds: DifficultyThresholds | None = None):
        self.thresholds = thresholds or DifficultyThresholds()
        self.rules: list[tuple[str, Rule]] = [
            ("cold_start", self._cold_start),
            ("topic_cold_start", self._topic_cold_start),
            ("struggling", self._struggling),
            ("excelling", self._excelling),
            ("topic_weak", self._topic_weak),
            ("topic_strong", self._topic_strong),
            ("progression", self._progression),
        ]

    def decide(self, snapshot: PerformanceSnapshot, topic: str) -> Tier:
        return self.decide_with_rule(snapshot, topic)[0]

    def decide_with_rule(self, snapshot: PerformanceSnapshot, topic: str) -> tuple[Tier, str]:
        """
        Evaluate the cascade.

        Returns:
            Tuple of (tier, name of the rule that fired)
        """
        for name, rule in self.rules:
            tier = rule(snapshot, topic)
            if tier is not None:
                logger.debug(
                    f"Difficulty rule {name} -> {tier.value} "
                    f"(recent={snapshot.recent_accuracy:.2f}, topic={topic})"
                )
                return tier, name

        logger.debug(f"Difficulty rule default -> medium (topic={topic})")
        return Tier.MEDIUM, "default"

    # ========================================
    # Rules
    # ========================================

    def _cold_start(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        return Tier.MEDIUM if snapshot.questions_answered == 0 else None

    def _topic_cold_start(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        return Tier.MEDIUM if snapshot.topic_attempts(topic) == 0 else None

    def _struggling(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        return Tier.EASY if snapshot.recent_accuracy < self.thresholds.struggling_below else None

    def _excelling(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        return Tier.HARD if snapshot.recent_accuracy > self.thresholds.excelling_above else None

    def _topic_weak(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        accuracy = snapshot.per_topic[topic].accuracy
        return Tier.EASY if accuracy < self.thresholds.topic_weak_below else None

    def _topic_strong(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        accuracy = snapshot.per_topic[topic].accuracy
        return Tier.HARD if accuracy > self.thresholds.topic_strong_above else None

    def _progression(self, snapshot: PerformanceSnapshot, topic: str) -> Tier | None:
        current = snapshot.last_tier
        tier_accuracy = snapshot.per_difficulty.get(current, 0.5)

        if tier_accuracy > self.thresholds.step_up_above:
            return current.step_up()
        if tier_accuracy < self.thresholds.step_down_below:
            return current.step_down()
        if self.thresholds.engagement_low <= snapshot.recent_accuracy <= self.thresholds.engagement_high:
            return current
        return None
