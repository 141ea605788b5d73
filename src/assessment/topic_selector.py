"""
Topic Selector.

Chooses the next target topic according to the session's focus area:
- strengthen: strongest topic above 70% accuracy
- improve: weakest topic below 60%, then the 60-70% band
- balanced: random topic not seen in the last three responses

Topics with no attempts carry no evidence and are never treated as strong
or weak; when no evidenced topic qualifies the choice falls back to random.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from src.assessment.errors import InvalidConfigurationError
from src.assessment.models import FocusArea, PerformanceSnapshot


@dataclass(frozen=True)
class TopicThresholds:
    strong_above: float = 0.70
    weak_below: float = 0.60
    band_upper: float = 0.70


class TopicSelector:
    """Focus-area driven topic choice."""

    def __init__(
        self,
        thresholds: TopicThresholds | None = None,
        rng: random.Random | None = None,
    ):
        self.thresholds = thresholds or TopicThresholds()
        self.rng = rng or random.Random()

    def select(
        self,
        focus_area: FocusArea,
        snapshot: PerformanceSnapshot,
        available_topics: Sequence[str],
        fallback_topic: str | None = None,
    ) -> str:
        """
        Pick the next topic.

        Args:
            focus_area: Session focus policy
            snapshot: Current performance snapshot
            available_topics: Topics present in the session scope
            fallback_topic: Returned when no topics are available (module's primary topic)

        Returns:
            Topic name
        """
        topics = list(dict.fromkeys(available_topics))
        if not topics:
            if fallback_topic is None:
                raise InvalidConfigurationError("No topics available to select from")
            return fallback_topic

        if focus_area == FocusArea.STRENGTHEN:
            topic = self._select_strong(snapshot, topics)
        elif focus_area == FocusArea.IMPROVE:
            topic = self._select_weak(snapshot, topics)
        else:
            topic = self._select_balanced(snapshot, topics)

        logger.debug(f"Topic selected ({focus_area.value}): {topic}")
        return topic

    def _evidenced(
        self,
        snapshot: PerformanceSnapshot,
        topics: list[str],
    ) -> list[tuple[str, float]]:
        result = []
        for topic in topics:
            perf = snapshot.per_topic.get(topic)
            if perf is not None and perf.attempts > 0:
                result.append((topic, perf.accuracy))
        return result

    def _rank(
        self,
        candidates: list[tuple[str, float]],
        snapshot: PerformanceSnapshot,
        strongest_first: bool,
    ) -> str:
        recent = set(snapshot.recent_topics)
        sign = -1 if strongest_first else 1
        ranked = sorted(candidates, key=lambda item: (sign * item[1], item[0] in recent))
        return ranked[0][0]

    def _select_strong(self, snapshot: PerformanceSnapshot, topics: list[str]) -> str:
        strong = [
            (topic, acc)
            for topic, acc in self._evidenced(snapshot, topics)
            if acc > self.thresholds.strong_above
        ]
        if strong:
            return self._rank(strong, snapshot, strongest_first=True)
        return self.rng.choice(topics)

    def _select_weak(self, snapshot: PerformanceSnapshot, topics: list[str]) -> str:
        evidenced = self._evidenced(snapshot, topics)
        weak = [(t, acc) for t, acc in evidenced if acc < self.thresholds.weak_below]
        if weak:
            return self._rank(weak, snapshot, strongest_first=False)

        middling = [
            (t, acc)
            for t, acc in evidenced
            if self.thresholds.weak_below <= acc <= self.thresholds.band_upper
        ]
        if middling:
            return self._rank(middling, snapshot, strongest_first=False)

        return self.rng.choice(topics)

    def _select_balanced(self, snapshot: PerformanceSnapshot, topics: list[str]) -> str:
        fresh = [t for t in topics if t not in snapshot.recent_topics]
        return self.rng.choice(fresh or topics)
