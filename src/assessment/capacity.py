"""
Scope capacity and question-count suggestions for multi-topic sessions.

Used when a session is being configured: report how many questions each
selection can supply per tier, and recommend a total that covers every
topic without exceeding the bank.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from src.assessment.errors import InvalidConfigurationError
from src.assessment.models import Tier, TopicSelection
from src.assessment.providers import QuestionPoolProvider

MIN_QUESTIONS_PER_TOPIC = 3
MAX_TOTAL_QUESTIONS = 200
MAX_TOPICS = 10

# (max topic count, recommended total)
_RECOMMENDATION_STEPS = [(1, 25), (3, 30), (5, 50), (7, 75)]
_RECOMMENDATION_CEILING = 100


@dataclass(frozen=True)
class AvailableQuestions:
    selection: TopicSelection
    by_tier: dict[Tier, int]

    @property
    def total(self) -> int:
        return sum(self.by_tier.values())


@dataclass(frozen=True)
class QuestionCountSuggestion:
    recommended: int
    minimum: int
    maximum: int
    reasoning: str
    estimated_minutes: int


def validate_selections(selections: Sequence[TopicSelection], max_topics: int = MAX_TOPICS) -> None:
    """Creation-time checks: 1 to ``max_topics`` selections."""
    if not selections:
        raise InvalidConfigurationError("At least one topic must be selected")
    if len(selections) > max_topics:
        raise InvalidConfigurationError(f"Maximum {max_topics} topics allowed")


def available_questions(
    provider: QuestionPoolProvider,
    selections: Sequence[TopicSelection],
    max_topics: int = MAX_TOPICS,
) -> list[AvailableQuestions]:
    """Per-selection, per-tier count of approved, active questions."""
    validate_selections(selections, max_topics)
    return [
        AvailableQuestions(selection=selection, by_tier=provider.count_by_tier(selection))
        for selection in selections
    ]


def suggest_question_count(
    available: Sequence[AvailableQuestions],
    min_per_topic: int = MIN_QUESTIONS_PER_TOPIC,
    max_total: int = MAX_TOTAL_QUESTIONS,
) -> QuestionCountSuggestion:
    """
    Recommend a session length from the number of topics.

    1 topic -> 25, up to 3 -> 30, up to 5 -> 50, up to 7 -> 75, more -> 100,
    then clamped to [min_per_topic x topics, min(available, max_total)].
    Duration assumes one minute per question.
    """
    topic_count = len(available)
    total_available = sum(a.total for a in available)

    recommended = _RECOMMENDATION_CEILING
    for max_topics, value in _RECOMMENDATION_STEPS:
        if topic_count <= max_topics:
            recommended = value
            break

    minimum = min(topic_count * min_per_topic, total_available)
    maximum = min(total_available, max_total)
    recommended = max(minimum, min(recommended, maximum))

    plural = "s" if topic_count != 1 else ""
    reasoning = (
        f"Based on {topic_count} topic{plural} selected, we recommend "
        f"{recommended} questions for comprehensive coverage. "
    )
    if topic_count and recommended >= topic_count * min_per_topic:
        reasoning += f"This ensures at least {recommended // topic_count} questions per topic."
    else:
        reasoning += "Note: Limited questions available in selected topics."

    return QuestionCountSuggestion(
        recommended=recommended,
        minimum=minimum,
        maximum=maximum,
        reasoning=reasoning,
        estimated_minutes=recommended,
    )
