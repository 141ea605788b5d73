"""Unit tests for the DifficultyAdapter rule cascade."""

import pytest

from src.assessment.difficulty import DifficultyAdapter
from src.assessment.metrics import PerformanceMetricsCalculator
from src.assessment.models import PerformanceSnapshot, Tier, TopicPerformance


def snapshot(
    recent=0.7,
    topic_correct=7,
    topic_attempts=10,
    last_tier=Tier.MEDIUM,
    per_difficulty=None,
    answered=10,
):
    per_topic = {}
    if topic_attempts:
        per_topic["Algebra"] = TopicPerformance(
            topic="Algebra", attempts=topic_attempts, correct=topic_correct, total_time=0.0
        )
    return PerformanceSnapshot(
        recent_accuracy=recent,
        per_topic=per_topic,
        per_difficulty=per_difficulty or {Tier.EASY: 0.7, Tier.MEDIUM: 0.7, Tier.HARD: 0.7},
        last_tier=last_tier,
        questions_answered=answered,
    )


@pytest.fixture
def adapter():
    return DifficultyAdapter()


class TestColdStart:
    def test_no_responses_is_medium(self, adapter):
        assert adapter.decide_with_rule(PerformanceSnapshot(), "Algebra") == (Tier.MEDIUM, "cold_start")

    def test_untried_topic_is_medium(self, adapter):
        snap = snapshot(recent=0.95, topic_attempts=0)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.MEDIUM, "topic_cold_start")

    def test_five_response_scenario_untried_topic(self, adapter, make_question, make_responses):
        questions = [
            make_question(tier=Tier.EASY),
            make_question(tier=Tier.EASY),
            make_question(tier=Tier.MEDIUM),
            make_question(tier=Tier.MEDIUM),
            make_question(tier=Tier.HARD),
        ]
        outcomes = [True, True, False, True, True]
        responses = make_responses([(q.id, ok) for q, ok in zip(questions, outcomes)])
        snap = PerformanceMetricsCalculator().calculate(responses, questions)

        assert snap.recent_accuracy == pytest.approx(0.8)
        assert adapter.decide(snap, "Geometry") == Tier.MEDIUM


class TestOverrides:
    def test_struggling_goes_easy(self, adapter):
        snap = snapshot(recent=0.2, topic_correct=10, topic_attempts=10)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.EASY, "struggling")

    @pytest.mark.parametrize("recent", [0.0, 0.2, 0.39])
    @pytest.mark.parametrize("last_tier", list(Tier.ordered()))
    @pytest.mark.parametrize("topic_correct", [0, 5, 10])
    def test_struggling_always_easy_once_topic_attempted(self, adapter, recent, last_tier, topic_correct):
        snap = snapshot(
            recent=recent,
            topic_correct=topic_correct,
            last_tier=last_tier,
            per_difficulty={Tier.EASY: 1.0, Tier.MEDIUM: 1.0, Tier.HARD: 1.0},
        )
        assert adapter.decide(snap, "Algebra") == Tier.EASY

    def test_excelling_goes_hard(self, adapter):
        snap = snapshot(recent=1.0, topic_correct=2, topic_attempts=10)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.HARD, "excelling")

    def test_boundaries_are_strict(self, adapter):
        # 0.40 is not struggling and 0.90 is not excelling; topic 7/10 -> progression
        assert adapter.decide_with_rule(snapshot(recent=0.40), "Algebra")[1] != "struggling"
        assert adapter.decide_with_rule(snapshot(recent=0.90), "Algebra")[1] != "excelling"


class TestTopicRules:
    def test_weak_topic_goes_easy(self, adapter):
        snap = snapshot(recent=0.6, topic_correct=4, topic_attempts=10)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.EASY, "topic_weak")

    def test_strong_topic_goes_hard(self, adapter):
        snap = snapshot(recent=0.6, topic_correct=9, topic_attempts=10)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.HARD, "topic_strong")


class TestProgression:
    def test_step_up_after_mastering_tier(self, adapter):
        snap = snapshot(
            last_tier=Tier.EASY,
            per_difficulty={Tier.EASY: 0.9, Tier.MEDIUM: 0.5, Tier.HARD: 0.5},
        )
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.MEDIUM, "progression")

    def test_step_up_capped_at_hard(self, adapter):
        snap = snapshot(
            last_tier=Tier.HARD,
            per_difficulty={Tier.EASY: 0.5, Tier.MEDIUM: 0.5, Tier.HARD: 0.85},
        )
        assert adapter.decide(snap, "Algebra") == Tier.HARD

    def test_step_down_when_struggling_at_tier(self, adapter):
        snap = snapshot(
            last_tier=Tier.HARD,
            per_difficulty={Tier.EASY: 0.5, Tier.MEDIUM: 0.5, Tier.HARD: 0.3},
        )
        assert adapter.decide(snap, "Algebra") == Tier.MEDIUM

    def test_step_down_capped_at_easy(self, adapter):
        snap = snapshot(
            last_tier=Tier.EASY,
            per_difficulty={Tier.EASY: 0.2, Tier.MEDIUM: 0.5, Tier.HARD: 0.5},
        )
        assert adapter.decide(snap, "Algebra") == Tier.EASY

    def test_hold_in_engagement_band(self, adapter):
        snap = snapshot(recent=0.7, last_tier=Tier.HARD)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.HARD, "progression")

    def test_default_outside_engagement_band(self, adapter):
        snap = snapshot(recent=0.5, last_tier=Tier.HARD)
        assert adapter.decide_with_rule(snap, "Algebra") == (Tier.MEDIUM, "default")


class TestTierSteps:
    def test_step_up_and_down(self):
        assert Tier.EASY.step_up() == Tier.MEDIUM
        assert Tier.MEDIUM.step_up() == Tier.HARD
        assert Tier.HARD.step_up() == Tier.HARD
        assert Tier.HARD.step_down() == Tier.MEDIUM
        assert Tier.EASY.step_down() == Tier.EASY
