"""
Post-session topic performance analysis.

After a quiz completes, its responses are grouped per subject/topic and
merged into a long-running per-student record:
- Rolling totals (questions, correct, per-tier breakdown)
- Time average weighted toward recent sessions (30% once past 5 sessions)
- Performance level: weak (<60%), neutral, strong (>=75%)
- Confidence (0-100): more sessions and more extreme accuracy = higher

Everything here is pure; src.db.repository persists the records.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from src.assessment.models import QuestionMeta, Response, Tier

WEAK_BELOW = 60.0
STRONG_FROM = 75.0
ROLLING_WINDOW = 5
RECENT_WEIGHT = 0.3


class PerformanceLevel(str, Enum):
    WEAK = "weak"
    NEUTRAL = "neutral"
    STRONG = "strong"

    @classmethod
    def from_accuracy(cls, accuracy_percent: float) -> PerformanceLevel:
        if accuracy_percent < WEAK_BELOW:
            return cls.WEAK
        if accuracy_percent >= STRONG_FROM:
            return cls.STRONG
        return cls.NEUTRAL


def _empty_tiers() -> dict[Tier, int]:
    return {tier: 0 for tier in Tier.ordered()}


@dataclass(frozen=True)
class TopicSessionStats:
    """One session's results on one subject/topic."""

    subject: str
    topic: str
    total_questions: int = 0
    correct_answers: int = 0
    avg_time_per_question: float = 0.0
    tier_totals: dict[Tier, int] = field(default_factory=_empty_tiers)
    tier_correct: dict[Tier, int] = field(default_factory=_empty_tiers)


@dataclass(frozen=True)
class TopicPerformanceRecord:
    """Persistent rolling record for one student and subject/topic."""

    subject: str
    topic: str
    total_attempts: int
    total_questions: int
    correct_answers: int
    avg_time_per_question: float
    tier_totals: dict[Tier, int]
    tier_correct: dict[Tier, int]
    performance_level: PerformanceLevel
    confidence_score: float

    @property
    def accuracy_percent(self) -> float:
        if not self.total_questions:
            return 0.0
        return self.correct_answers / self.total_questions * 100


def confidence_score(attempts: int, accuracy_percent: float) -> float:
    """Half from session count (caps at 5), half from how decisive the accuracy is."""
    attempt_factor = min(attempts / ROLLING_WINDOW, 1.0) * 50
    accuracy_factor = 50 if accuracy_percent > STRONG_FROM or accuracy_percent < 40 else 25
    return attempt_factor + accuracy_factor


def summarize_session(
    responses: Sequence[Response],
    questions: Mapping[int, QuestionMeta] | Iterable[QuestionMeta],
) -> list[TopicSessionStats]:
    """Group a finished session's responses per subject/topic."""
    by_id = questions if isinstance(questions, Mapping) else {q.id: q for q in questions}

    totals: dict[tuple[str, str], dict] = {}
    for response in responses:
        question = by_id.get(response.question_id)
        if question is None:
            continue
        key = (question.subject, question.topic)
        data = totals.setdefault(
            key,
            {
                "total": 0,
                "correct": 0,
                "time": 0.0,
                "tier_totals": _empty_tiers(),
                "tier_correct": _empty_tiers(),
            },
        )
        data["total"] += 1
        data["time"] += response.time_taken_seconds or 0.0
        data["tier_totals"][question.tier] += 1
        if response.is_correct:
            data["correct"] += 1
            data["tier_correct"][question.tier] += 1

    return [
        TopicSessionStats(
            subject=subject,
            topic=topic,
            total_questions=data["total"],
            correct_answers=data["correct"],
            avg_time_per_question=round(data["time"] / data["total"]),
            tier_totals=data["tier_totals"],
            tier_correct=data["tier_correct"],
        )
        for (subject, topic), data in totals.items()
    ]


def merge_session(
    existing: TopicPerformanceRecord | None,
    stats: TopicSessionStats,
) -> TopicPerformanceRecord:
    """Fold one session's stats into the rolling record (creating it if needed)."""
    if existing is None:
        accuracy = stats.correct_answers / stats.total_questions * 100 if stats.total_questions else 0.0
        return TopicPerformanceRecord(
            subject=stats.subject,
            topic=stats.topic,
            total_attempts=1,
            total_questions=stats.total_questions,
            correct_answers=stats.correct_answers,
            avg_time_per_question=stats.avg_time_per_question,
            tier_totals=dict(stats.tier_totals),
            tier_correct=dict(stats.tier_correct),
            performance_level=PerformanceLevel.from_accuracy(accuracy),
            confidence_score=confidence_score(1, accuracy),
        )

    attempts = existing.total_attempts + 1
    weight = RECENT_WEIGHT if attempts > ROLLING_WINDOW else 1 / attempts
    total_questions = existing.total_questions + stats.total_questions
    correct = existing.correct_answers + stats.correct_answers
    accuracy = correct / total_questions * 100 if total_questions else 0.0

    return replace(
        existing,
        total_attempts=attempts,
        total_questions=total_questions,
        correct_answers=correct,
        avg_time_per_question=round(
            existing.avg_time_per_question * (1 - weight) + stats.avg_time_per_question * weight
        ),
        tier_totals={t: existing.tier_totals.get(t, 0) + stats.tier_totals[t] for t in Tier.ordered()},
        tier_correct={t: existing.tier_correct.get(t, 0) + stats.tier_correct[t] for t in Tier.ordered()},
        performance_level=PerformanceLevel.from_accuracy(accuracy),
        confidence_score=confidence_score(attempts, accuracy),
    )


def performance_summary(
    records: Iterable[TopicPerformanceRecord],
) -> dict[PerformanceLevel, list[tuple[str, float]]]:
    """Topics grouped by level, each list ordered by accuracy (highest first)."""
    summary: dict[PerformanceLevel, list[tuple[str, float]]] = {level: [] for level in PerformanceLevel}
    for record in sorted(records, key=lambda r: r.accuracy_percent, reverse=True):
        summary[record.performance_level].append((record.topic, round(record.accuracy_percent, 2)))
    return summary
