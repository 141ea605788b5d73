"""
Adaptive Assessment Engine.

Given a student's response history and a candidate question pool, decides
the next difficulty tier, topic and question; for multi-topic sessions,
plans the whole question sequence up front.

Components:
- PerformanceMetricsCalculator: response history -> PerformanceSnapshot
- TopicSelector: focus-area driven topic choice
- DifficultyAdapter: ordered rule cascade for the next tier
- CandidateSelector: fallback filters, quality scoring, top-3 pick
- DistributionPlanner: multi-topic quotas, difficulty mix, dedup, shortfalls
- AdaptiveEngine: facade wiring the above
"""

from src.assessment.candidate_selector import CandidateSelector, ScoringConfig
from src.assessment.difficulty import DifficultyAdapter, DifficultyThresholds
from src.assessment.distribution import DIFFICULTY_MIXES, DistributionPlanner, split_evenly
from src.assessment.engine import AdaptiveEngine, dominant_topic
from src.assessment.errors import (
    AssessmentError,
    InvalidConfigurationError,
    PoolExhaustedError,
    ScopeEmptyError,
    SessionCompletedError,
    SessionNotFoundError,
)
from src.assessment.metrics import MetricsConfig, PerformanceMetricsCalculator
from src.assessment.models import (
    DistributionPlan,
    Exhausted,
    FocusArea,
    NextQuestionDecision,
    PerformanceSnapshot,
    PlanEntry,
    QuestionMeta,
    Response,
    ShortfallRecord,
    Tier,
    TopicPerformance,
    TopicSelection,
)
from src.assessment.providers import (
    InMemoryQuestionBank,
    InMemoryResponseHistory,
    QuestionPoolProvider,
    QuestionScope,
    ResponseHistoryProvider,
)
from src.assessment.topic_selector import TopicSelector, TopicThresholds

__all__ = [
    # Engine
    "AdaptiveEngine",
    "dominant_topic",
    # Components
    "PerformanceMetricsCalculator",
    "MetricsConfig",
    "TopicSelector",
    "TopicThresholds",
    "DifficultyAdapter",
    "DifficultyThresholds",
    "CandidateSelector",
    "ScoringConfig",
    "DistributionPlanner",
    "DIFFICULTY_MIXES",
    "split_evenly",
    # Providers
    "QuestionPoolProvider",
    "ResponseHistoryProvider",
    "QuestionScope",
    "InMemoryQuestionBank",
    "InMemoryResponseHistory",
    # Models
    "Tier",
    "FocusArea",
    "Response",
    "QuestionMeta",
    "TopicPerformance",
    "PerformanceSnapshot",
    "TopicSelection",
    "PlanEntry",
    "ShortfallRecord",
    "DistributionPlan",
    "NextQuestionDecision",
    "Exhausted",
    # Errors
    "AssessmentError",
    "InvalidConfigurationError",
    "ScopeEmptyError",
    "PoolExhaustedError",
    "SessionNotFoundError",
    "SessionCompletedError",
]
