"""
Assessment error taxonomy.

Only session start and question serving can fail. Metrics, topic selection
and difficulty selection are total functions and never raise; planner
shortfalls are returned as data alongside the plan.
"""

from __future__ import annotations


class AssessmentError(Exception):
    """Base class for all assessment engine errors."""


class InvalidConfigurationError(AssessmentError):
    """Malformed focus area, empty topic selection list or bad totals."""


class ScopeEmptyError(AssessmentError):
    """No approved, active questions exist for the requested scope."""

    def __init__(self, scope: str):
        super().__init__(f"No questions available for scope: {scope}")
        self.scope = scope


class PoolExhaustedError(AssessmentError):
    """Every question in the pool has already been answered this session."""

    def __init__(self, session_id: int | str | None, answered_count: int):
        super().__init__(
            f"No unanswered questions left for session {session_id} "
            f"after {answered_count} responses"
        )
        self.session_id = session_id
        self.answered_count = answered_count


class SessionNotFoundError(AssessmentError):
    """Quiz session id does not exist in the session store."""


class SessionCompletedError(AssessmentError):
    """The session already holds as many responses as it has questions."""
