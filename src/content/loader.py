"""
Question bank loader.

Reads a JSON question bank (a list of question objects, or an object with a
"questions" list), validates each entry with pydantic and hands it out
either as engine QuestionMeta or as ORM column dicts for import.

Example entry:

    {"id": 1, "subject": "Math", "topic": "Algebra", "sub_topic": "Linear",
     "difficulty": "easy", "question_text": "Solve x + 2 = 5",
     "time_limit": 60, "average_score": 72.5}
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.assessment.errors import InvalidConfigurationError
from src.assessment.models import QuestionMeta, Tier


class QuestionRecord(BaseModel):
    """One question as authored in the bank file."""

    id: Optional[int] = Field(None, ge=1)
    subject: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    sub_topic: Optional[str] = None
    difficulty: Tier = Tier.MEDIUM
    question_text: str = ""
    question_type: str = "multiple_choice"
    options: Optional[List[Any]] = None
    correct_answer: Optional[str] = None
    points: int = Field(10, ge=0)
    time_limit: Optional[int] = Field(None, ge=1, description="Seconds")
    average_score: Optional[float] = Field(None, ge=0, le=100, description="Percent")
    status: str = "approved"
    is_active: bool = True

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def servable(self) -> bool:
        return self.status == "approved" and self.is_active

    def to_meta(self, question_id: int) -> QuestionMeta:
        return QuestionMeta(
            id=question_id,
            subject=self.subject,
            topic=self.topic,
            tier=self.difficulty,
            sub_topic=self.sub_topic,
            time_limit_seconds=float(self.time_limit) if self.time_limit is not None else None,
            historical_average_score=(
                self.average_score / 100 if self.average_score is not None else None
            ),
            question_text=self.question_text,
        )

    def to_row(self) -> dict[str, Any]:
        """Column values for src.db.models.Question; the id is kept only when the file sets it."""
        row = self.model_dump(exclude={"id"} if self.id is None else None)
        row["difficulty"] = self.difficulty.value
        return row


class QuestionBankLoader:
    """Load and validate a JSON question bank."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._records: list[QuestionRecord] | None = None

    def load(self) -> list[QuestionRecord]:
        """
        Parse and validate the bank file.

        Raises:
            FileNotFoundError: path does not exist
            InvalidConfigurationError: malformed JSON, invalid entry or duplicate id
        """
        if self._records is not None:
            return self._records

        if not self.path.exists():
            raise FileNotFoundError(f"Question bank not found: {self.path}")

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidConfigurationError(f"Invalid JSON in {self.path}: {e}") from e

        entries = data.get("questions", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise InvalidConfigurationError(f"{self.path}: expected a list of questions")

        records = []
        for position, entry in enumerate(entries, start=1):
            try:
                records.append(QuestionRecord.model_validate(entry))
            except ValidationError as e:
                raise InvalidConfigurationError(
                    f"{self.path}: question #{position} is invalid: {e}"
                ) from e

        ids = [r.id for r in records if r.id is not None]
        if len(ids) != len(set(ids)):
            raise InvalidConfigurationError(f"{self.path}: duplicate question ids")

        logger.debug(f"Loaded {len(records)} questions from {self.path}")
        self._records = records
        return records

    def questions(self, servable_only: bool = True) -> list[QuestionMeta]:
        """
        Engine view of the bank.

        Entries without an id get one after the highest explicit id, in file order.
        """
        records = self.load()
        next_id = max((r.id for r in records if r.id is not None), default=0) + 1

        metas = []
        for record in records:
            if record.id is None:
                question_id, next_id = next_id, next_id + 1
            else:
                question_id = record.id
            if servable_only and not record.servable:
                continue
            metas.append(record.to_meta(question_id))
        return metas

    def rows(self) -> list[dict[str, Any]]:
        return [record.to_row() for record in self.load()]
