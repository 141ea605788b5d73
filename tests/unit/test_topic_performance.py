"""Unit tests for post-session topic performance analysis."""

import pytest

from src.assessment.models import Response, Tier
from src.assessment.topic_performance import (
    PerformanceLevel,
    TopicSessionStats,
    confidence_score,
    merge_session,
    performance_summary,
    summarize_session,
)


def stats(correct, total, avg_time=30.0, topic="Algebra"):
    tier_totals = {Tier.EASY: 0, Tier.MEDIUM: total, Tier.HARD: 0}
    tier_correct = {Tier.EASY: 0, Tier.MEDIUM: correct, Tier.HARD: 0}
    return TopicSessionStats(
        subject="Math",
        topic=topic,
        total_questions=total,
        correct_answers=correct,
        avg_time_per_question=avg_time,
        tier_totals=tier_totals,
        tier_correct=tier_correct,
    )


class TestPerformanceLevel:
    @pytest.mark.parametrize(
        "accuracy, level",
        [
            (0.0, PerformanceLevel.WEAK),
            (59.9, PerformanceLevel.WEAK),
            (60.0, PerformanceLevel.NEUTRAL),
            (74.9, PerformanceLevel.NEUTRAL),
            (75.0, PerformanceLevel.STRONG),
            (100.0, PerformanceLevel.STRONG),
        ],
    )
    def test_thresholds(self, accuracy, level):
        assert PerformanceLevel.from_accuracy(accuracy) == level


class TestConfidence:
    @pytest.mark.parametrize(
        "attempts, accuracy, expected",
        [(1, 80.0, 60.0), (5, 50.0, 75.0), (10, 30.0, 100.0), (1, 75.0, 35.0), (0, 50.0, 25.0)],
    )
    def test_formula(self, attempts, accuracy, expected):
        assert confidence_score(attempts, accuracy) == pytest.approx(expected)


class TestSummarizeSession:
    def test_groups_by_topic_and_tier(self, make_question):
        a_easy = make_question("Algebra", Tier.EASY)
        a_hard = make_question("Algebra", Tier.HARD)
        geo = make_question("Geometry", Tier.MEDIUM)
        responses = [
            Response(a_easy.id, True, 20.0, 0),
            Response(geo.id, False, 50.0, 1),
            Response(a_hard.id, False, 41.0, 2),
            Response(999, True, 10.0, 3),
        ]

        result = {s.topic: s for s in summarize_session(responses, [a_easy, a_hard, geo])}

        assert set(result) == {"Algebra", "Geometry"}
        algebra = result["Algebra"]
        assert algebra.total_questions == 2
        assert algebra.correct_answers == 1
        assert algebra.avg_time_per_question == 30  # round(30.5) banker's rounding
        assert algebra.tier_totals == {Tier.EASY: 1, Tier.MEDIUM: 0, Tier.HARD: 1}
        assert algebra.tier_correct == {Tier.EASY: 1, Tier.MEDIUM: 0, Tier.HARD: 0}
        assert result["Geometry"].correct_answers == 0


class TestMergeSession:
    def test_first_session_creates_record(self):
        record = merge_session(None, stats(8, 10))

        assert record.total_attempts == 1
        assert record.accuracy_percent == pytest.approx(80.0)
        assert record.performance_level == PerformanceLevel.STRONG
        assert record.confidence_score == pytest.approx(60.0)
        assert record.tier_totals[Tier.MEDIUM] == 10

    def test_totals_accumulate(self):
        record = merge_session(None, stats(8, 10))
        record = merge_session(record, stats(2, 10))

        assert record.total_attempts == 2
        assert record.total_questions == 20
        assert record.correct_answers == 10
        assert record.performance_level == PerformanceLevel.WEAK
        assert record.tier_correct[Tier.MEDIUM] == 10

    def test_time_average_weights_each_session_equally_at_first(self):
        record = merge_session(None, stats(5, 10, avg_time=30.0))
        record = merge_session(record, stats(5, 10, avg_time=30.0))
        record = merge_session(record, stats(5, 10, avg_time=60.0))
        # 30 * 2/3 + 60 * 1/3
        assert record.avg_time_per_question == 40

    def test_time_average_uses_fixed_weight_after_five_sessions(self):
        record = merge_session(None, stats(5, 10, avg_time=30.0))
        for _ in range(4):
            record = merge_session(record, stats(5, 10, avg_time=30.0))
        assert record.total_attempts == 5

        record = merge_session(record, stats(5, 10, avg_time=60.0))
        # 30 * 0.7 + 60 * 0.3
        assert record.avg_time_per_question == 39


class TestSummary:
    def test_grouped_and_sorted(self):
        records = [
            merge_session(None, stats(9, 10, topic="Algebra")),
            merge_session(None, stats(3, 10, topic="Geometry")),
            merge_session(None, stats(10, 10, topic="Calculus")),
            merge_session(None, stats(7, 10, topic="Statistics")),
        ]
        summary = performance_summary(records)

        assert summary[PerformanceLevel.STRONG] == [("Calculus", 100.0), ("Algebra", 90.0)]
        assert summary[PerformanceLevel.WEAK] == [("Geometry", 30.0)]
        assert summary[PerformanceLevel.NEUTRAL] == [("Statistics", 70.0)]
