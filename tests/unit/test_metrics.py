"""
Unit tests for PerformanceMetricsCalculator.

Pure function of responses + question metadata, so no fixtures beyond
question/response factories are needed.
"""

import pytest

from src.assessment.metrics import MetricsConfig, PerformanceMetricsCalculator
from src.assessment.models import PerformanceSnapshot, Tier


@pytest.fixture
def calculator():
    return PerformanceMetricsCalculator()


@pytest.fixture
def five_question_history(make_question, make_responses):
    """correct/easy, correct/easy, wrong/medium, correct/medium, correct/hard."""
    questions = [
        make_question(tier=Tier.EASY),
        make_question(tier=Tier.EASY),
        make_question(tier=Tier.MEDIUM),
        make_question(tier=Tier.MEDIUM),
        make_question(tier=Tier.HARD),
    ]
    outcomes = [True, True, False, True, True]
    responses = make_responses([(q.id, ok) for q, ok in zip(questions, outcomes)])
    return responses, questions


class TestColdStart:
    def test_empty_history_uses_neutral_prior(self, calculator):
        snapshot = calculator.calculate([], [])

        assert snapshot.overall_accuracy == 0.5
        assert snapshot.recent_accuracy == 0.5
        assert snapshot.mastery_score == 0
        assert snapshot.questions_answered == 0
        assert snapshot.per_difficulty == {Tier.EASY: 0.5, Tier.MEDIUM: 0.5, Tier.HARD: 0.5}
        assert snapshot.last_tier == Tier.MEDIUM
        assert snapshot.recent_topics == ()

    def test_custom_prior(self):
        calc = PerformanceMetricsCalculator(MetricsConfig(neutral_prior=0.6))
        snapshot = calc.calculate([], [])
        assert snapshot.overall_accuracy == 0.6
        assert snapshot.per_difficulty[Tier.HARD] == 0.6


class TestAccuracy:
    def test_five_response_scenario(self, calculator, five_question_history):
        responses, questions = five_question_history
        snapshot = calculator.calculate(responses, questions)

        assert snapshot.overall_accuracy == pytest.approx(0.8)
        assert snapshot.recent_accuracy == pytest.approx(0.8)
        assert snapshot.correct_answers == 4
        assert snapshot.wrong_answers == 1
        assert snapshot.per_difficulty[Tier.EASY] == 1.0
        assert snapshot.per_difficulty[Tier.MEDIUM] == 0.5
        assert snapshot.per_difficulty[Tier.HARD] == 1.0
        assert snapshot.last_tier == Tier.HARD

    def test_recent_window_uses_last_five_in_answer_order(
        self, calculator, make_question, make_responses
    ):
        questions = [make_question() for _ in range(8)]
        # Three early correct answers, then five wrong ones
        outcomes = [True, True, True, False, False, False, False, False]
        responses = make_responses([(q.id, ok) for q, ok in zip(questions, outcomes)])

        snapshot = calculator.calculate(responses, questions)

        assert snapshot.overall_accuracy == pytest.approx(3 / 8)
        assert snapshot.recent_accuracy == 0.0

    def test_short_history_recent_equals_overall(self, calculator, make_question, make_responses):
        questions = [make_question(), make_question()]
        responses = make_responses([(questions[0].id, True), (questions[1].id, False)])

        snapshot = calculator.calculate(responses, questions)

        assert snapshot.recent_accuracy == snapshot.overall_accuracy == 0.5

    def test_accepts_mapping_of_questions(self, calculator, five_question_history):
        responses, questions = five_question_history
        by_id = {q.id: q for q in questions}
        assert calculator.calculate(responses, by_id) == calculator.calculate(responses, questions)


class TestTopics:
    def test_per_topic_aggregation(self, calculator, make_question, make_responses):
        algebra = [make_question(topic="Algebra") for _ in range(3)]
        geometry = [make_question(topic="Geometry") for _ in range(2)]
        responses = make_responses(
            [
                (algebra[0].id, True),
                (geometry[0].id, False),
                (algebra[1].id, True),
                (algebra[2].id, False),
                (geometry[1].id, False),
            ],
            time_taken=20.0,
        )

        snapshot = calculator.calculate(responses, algebra + geometry)

        assert snapshot.per_topic["Algebra"].attempts == 3
        assert snapshot.per_topic["Algebra"].correct == 2
        assert snapshot.per_topic["Algebra"].accuracy == pytest.approx(2 / 3)
        assert snapshot.per_topic["Algebra"].avg_time == pytest.approx(20.0)
        assert snapshot.per_topic["Geometry"].accuracy == 0.0
        assert snapshot.topic_attempts("Calculus") == 0

    def test_recent_topics_keep_duplicates_in_order(self, calculator, make_question, make_responses):
        a1, g1, a2 = (
            make_question(topic="Algebra"),
            make_question(topic="Geometry"),
            make_question(topic="Algebra"),
        )
        c1 = make_question(topic="Calculus")
        responses = make_responses([(c1.id, True), (a1.id, True), (g1.id, True), (a2.id, True)])

        snapshot = calculator.calculate(responses, [a1, g1, a2, c1])

        assert snapshot.recent_topics == ("Algebra", "Geometry", "Algebra")


class TestOrphanResponses:
    """Responses whose question left the pool."""

    def test_orphans_count_toward_overall_only(self, calculator, make_question, make_responses):
        known = make_question(topic="Algebra", tier=Tier.HARD)
        responses = make_responses([(known.id, True), (999, False)])

        snapshot = calculator.calculate(responses, [known])

        assert snapshot.questions_answered == 2
        assert snapshot.overall_accuracy == 0.5
        assert snapshot.per_topic["Algebra"].attempts == 1
        assert snapshot.per_difficulty[Tier.HARD] == 1.0
        assert snapshot.recent_topics == ("Algebra",)

    def test_last_tier_skips_orphans(self, calculator, make_question, make_responses):
        known = make_question(tier=Tier.EASY)
        responses = make_responses([(known.id, True), (999, True)])

        snapshot = calculator.calculate(responses, [known])

        assert snapshot.last_tier == Tier.EASY


class TestMastery:
    def test_five_response_scenario_mastery(self, calculator, five_question_history):
        responses, questions = five_question_history
        # 0.8*40 + 0.8*30 + 1.0*20 + (1 - 30/60)*10 = 81
        assert calculator.calculate(responses, questions).mastery_score == 81

    def test_perfect_fast_student_scores_100(self, calculator):
        assert calculator.mastery_score(1.0, 1.0, 0.0) == 100

    def test_slow_answers_earn_no_efficiency(self, calculator):
        # 0 + 0 + 20 + 0
        assert calculator.mastery_score(0.0, 0.0, 600.0) == 20

    def test_rounds_half_up(self, calculator):
        # 10 + 7.5 + 20 + 5 = 42.5
        assert calculator.mastery_score(0.25, 0.25, 30.0) == 43

    def test_inconsistency_is_penalised(self, calculator):
        steady = calculator.mastery_score(0.5, 0.5, 30.0)
        swinging = calculator.mastery_score(0.5, 1.0, 30.0)
        # +15 from recent accuracy, -10 from consistency
        assert swinging - steady == 5

    @pytest.mark.parametrize(
        "outcomes",
        [[True] * 12, [False] * 12, [True, False] * 6, [False, False, True]],
    )
    def test_ranges_hold(self, calculator, make_question, make_responses, outcomes):
        questions = [make_question() for _ in outcomes]
        responses = make_responses(
            [(q.id, ok) for q, ok in zip(questions, outcomes)], time_taken=5.0
        )
        snapshot = calculator.calculate(responses, questions)

        assert 0.0 <= snapshot.overall_accuracy <= 1.0
        assert 0 <= snapshot.mastery_score <= 100


class TestPurity:
    def test_idempotent(self, calculator, five_question_history):
        responses, questions = five_question_history
        first = calculator.calculate(responses, questions)
        second = calculator.calculate(responses, questions)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_to_dict_is_plain(self, calculator, five_question_history):
        responses, questions = five_question_history
        data = calculator.calculate(responses, questions).to_dict()

        assert data["per_difficulty"] == {"easy": 1.0, "medium": 0.5, "hard": 1.0}
        assert data["last_tier"] == "hard"
        assert data["wrong_answers"] == 1

    def test_default_snapshot_matches_cold_start(self, calculator):
        assert calculator.calculate([], []) == PerformanceSnapshot()
