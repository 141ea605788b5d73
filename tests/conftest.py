"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import itertools
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.assessment.models import QuestionMeta, Response, Tier  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite in-memory database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def rng():
    """Seeded random source so selections are reproducible."""
    return random.Random(42)


@pytest.fixture
def make_question():
    """Factory for QuestionMeta with auto-incrementing ids."""
    counter = itertools.count(1)

    def _make(
        topic="Algebra",
        tier=Tier.MEDIUM,
        subject="Math",
        sub_topic=None,
        question_id=None,
        text=None,
        **kwargs,
    ):
        qid = question_id if question_id is not None else next(counter)
        return QuestionMeta(
            id=qid,
            subject=subject,
            topic=topic,
            tier=tier,
            sub_topic=sub_topic,
            question_text=text if text is not None else f"{topic} question {qid}",
            **kwargs,
        )

    return _make


@pytest.fixture
def stocked_bank(make_question):
    """Three Math topics with 40 questions per tier each."""
    questions = []
    for topic in ("Algebra", "Geometry", "Calculus"):
        for tier in Tier.ordered():
            for _ in range(40):
                questions.append(make_question(topic=topic, tier=tier))
    return questions


@pytest.fixture
def make_responses():
    """[(question_id, is_correct), ...] -> Response list in order."""

    def _make(outcomes, time_taken=30.0):
        return [
            Response(question_id=qid, is_correct=correct, time_taken_seconds=time_taken, sequence_index=i)
            for i, (qid, correct) in enumerate(outcomes)
        ]

    return _make


@pytest.fixture
def sample_bank_file(tmp_path):
    """Small JSON question bank on disk."""
    import json

    questions = []
    qid = 1
    for topic in ("Algebra", "Geometry"):
        for tier in ("easy", "medium", "hard"):
            for n in range(5):
                questions.append(
                    {
                        "id": qid,
                        "subject": "Math",
                        "topic": topic,
                        "sub_topic": "Linear" if n % 2 == 0 else "Quadratic",
                        "difficulty": tier,
                        "question_text": f"{topic} {tier} question {n}",
                        "time_limit": 60,
                        "average_score": 65.0,
                    }
                )
                qid += 1
    path = tmp_path / "bank.json"
    path.write_text(json.dumps({"questions": questions}), encoding="utf-8")
    return path


@pytest.fixture
def db_session():
    """SQLAlchemy session on a fresh in-memory SQLite database."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import Session

    from src.db.models import Base

    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def seed_questions(db_session):
    """Insert question rows: seed_questions(topic, tier, count, **columns) -> ids."""
    from src.db.models import Question

    counter = itertools.count(1)

    def _seed(topic="Algebra", tier=Tier.MEDIUM, count=1, subject="Math", **columns):
        rows = []
        for _ in range(count):
            row = Question(
                subject=subject,
                topic=topic,
                difficulty=tier.value,
                question_text=f"{topic} {tier.value} question {next(counter)}",
                **columns,
            )
            db_session.add(row)
            rows.append(row)
        db_session.flush()
        return [row.id for row in rows]

    return _seed
