"""
Adaptive Assessment Data Models.

Immutable records shared by every engine component:
- Tier / FocusArea: difficulty tiers and the session-level focus policy
- Response / QuestionMeta: inputs supplied by the history and pool providers
- PerformanceSnapshot: derived state, recomputed on every decision
- TopicSelection / PlanEntry / ShortfallRecord / DistributionPlan: multi-topic planning
- NextQuestionDecision / Exhausted: engine outputs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from src.assessment.errors import InvalidConfigurationError


class Tier(str, Enum):
    """Discrete difficulty level of a question."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def ordered(cls) -> tuple[Tier, Tier, Tier]:
        return (cls.EASY, cls.MEDIUM, cls.HARD)

    def step_up(self) -> Tier:
        """Next harder tier, capped at hard."""
        order = Tier.ordered()
        return order[min(order.index(self) + 1, len(order) - 1)]

    def step_down(self) -> Tier:
        """Next easier tier, capped at easy."""
        order = Tier.ordered()
        return order[max(order.index(self) - 1, 0)]


class FocusArea(str, Enum):
    """
    Session-level policy biasing topic and difficulty choice.

    Fixed when the session is created and never mutated mid-session.
    """

    STRENGTHEN = "strengthen"  # Reinforce topics the student is good at
    IMPROVE = "improve"  # Remediate weak topics
    BALANCED = "balanced"  # Neutral, favour variety

    @classmethod
    def parse(cls, value: FocusArea | str | None) -> FocusArea:
        """
        Coerce user input to a FocusArea.

        Raises:
            InvalidConfigurationError: for anything that is not a known focus area
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidConfigurationError(
            f"Unknown focus area {value!r}; expected one of "
            f"{', '.join(f.value for f in cls)}"
        )


@dataclass(frozen=True)
class Response:
    """A recorded answer. Immutable once written; ordered by sequence_index."""

    question_id: int
    is_correct: bool
    time_taken_seconds: float = 0.0
    sequence_index: int = 0


@dataclass(frozen=True)
class QuestionMeta:
    """Question bank entry as seen by the engine (read-only)."""

    id: int
    subject: str
    topic: str
    tier: Tier
    sub_topic: str | None = None
    time_limit_seconds: float | None = None
    historical_average_score: float | None = None  # Fraction 0-1 across all students
    question_text: str = ""

    @property
    def normalized_text(self) -> str:
        """Lower-cased, trimmed text used to catch duplicates authored under different ids."""
        return self.question_text.strip().lower()


@dataclass(frozen=True)
class TopicPerformance:
    """Aggregate of all responses on one topic."""

    topic: str
    attempts: int
    correct: int
    total_time: float

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempts if self.attempts else 0.0

    @property
    def avg_time(self) -> float:
        return self.total_time / self.attempts if self.attempts else 0.0


@dataclass(frozen=True)
class PerformanceSnapshot:
    """
    Derived performance summary driving topic and difficulty decisions.

    Never persisted and never cached: rebuilt from the full response
    history on every decision.
    """

    overall_accuracy: float = 0.5
    recent_accuracy: float = 0.5
    per_topic: dict[str, TopicPerformance] = field(default_factory=dict)
    per_difficulty: dict[Tier, float] = field(
        default_factory=lambda: {tier: 0.5 for tier in Tier.ordered()}
    )
    avg_time_per_question: float = 0.0
    mastery_score: int = 0
    last_tier: Tier = Tier.MEDIUM
    recent_topics: tuple[str, ...] = ()
    questions_answered: int = 0
    correct_answers: int = 0

    @property
    def wrong_answers(self) -> int:
        return self.questions_answered - self.correct_answers

    def topic_attempts(self, topic: str) -> int:
        perf = self.per_topic.get(topic)
        return perf.attempts if perf else 0

    def to_dict(self) -> dict:
        """Plain-dict view for logging and API payloads."""
        return {
            "overall_accuracy": self.overall_accuracy,
            "recent_accuracy": self.recent_accuracy,
            "per_topic": {
                name: {
                    "attempts": perf.attempts,
                    "correct": perf.correct,
                    "accuracy": perf.accuracy,
                    "avg_time": perf.avg_time,
                }
                for name, perf in self.per_topic.items()
            },
            "per_difficulty": {tier.value: acc for tier, acc in self.per_difficulty.items()},
            "avg_time_per_question": self.avg_time_per_question,
            "mastery_score": self.mastery_score,
            "last_tier": self.last_tier.value,
            "recent_topics": list(self.recent_topics),
            "questions_answered": self.questions_answered,
            "correct_answers": self.correct_answers,
            "wrong_answers": self.wrong_answers,
        }


ALL_SUBTOPICS = "all"


@dataclass(frozen=True)
class TopicSelection:
    """One subject/topic (optionally narrowed to subtopics) of a multi-topic session."""

    subject: str
    topic: str
    subtopics: Literal["all"] | frozenset[str] = ALL_SUBTOPICS

    @property
    def covers_all_subtopics(self) -> bool:
        return self.subtopics == ALL_SUBTOPICS

    def matches(self, question: QuestionMeta) -> bool:
        if question.subject != self.subject or question.topic != self.topic:
            return False
        return self.covers_all_subtopics or question.sub_topic in self.subtopics

    @property
    def subtopic_label(self) -> str | None:
        """Comma-joined subtopic names, None when the whole topic is selected."""
        if self.covers_all_subtopics:
            return None
        return ", ".join(sorted(self.subtopics))

    @property
    def label(self) -> str:
        base = f"{self.subject} / {self.topic}"
        sub = self.subtopic_label
        return f"{base} ({sub})" if sub else base


@dataclass(frozen=True)
class ShortfallRecord:
    """Deficit between requested and available questions, kept for content-team remediation."""

    subject: str
    topic: str
    requested: int
    available: int
    subtopic: str | None = None
    difficulty: Tier | None = None

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.available, 0)


@dataclass(frozen=True)
class PlanEntry:
    """One slot of a precomputed multi-topic sequence."""

    question: QuestionMeta
    selection_index: int
    tier: Tier


@dataclass
class DistributionPlan:
    """Ordered question sequence for a multi-topic session plus its shortfall report."""

    entries: list[PlanEntry]
    requested_total: int
    shortfalls: list[ShortfallRecord] = field(default_factory=list)
    sub_quotas: list[int] = field(default_factory=list)
    tier_targets: list[dict[Tier, int]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def question_ids(self) -> list[int]:
        return [entry.question.id for entry in self.entries]

    @property
    def questions(self) -> list[QuestionMeta]:
        return [entry.question for entry in self.entries]

    @property
    def is_complete(self) -> bool:
        return len(self.entries) >= self.requested_total

    def tier_counts(self) -> dict[Tier, int]:
        counts = {tier: 0 for tier in Tier.ordered()}
        for entry in self.entries:
            counts[entry.tier] += 1
        return counts


@dataclass(frozen=True)
class NextQuestionDecision:
    """What to serve next, and why."""

    topic: str
    tier: Tier
    question: QuestionMeta
    fallback_level: str
    difficulty_rule: str
    snapshot: PerformanceSnapshot


@dataclass(frozen=True)
class Exhausted:
    """Explicit signal that no unanswered question remains in the pool."""

    answered_count: int
    reason: str = "all questions in scope have been answered"


Decision = Union[NextQuestionDecision, Exhausted]
