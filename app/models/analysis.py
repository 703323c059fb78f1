"""
Assignment, submission and clustering models used by the analytics services.

These are plain SQLModel (pydantic) models: they validate API payloads and stored
records but are not database tables. Persistence goes through StoredRecord.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Field, SQLModel

DEFAULT_SCORE = 50.0


class Assignment(SQLModel):
    """Assignment with an ordered list of question prompts."""

    id: str = Field(max_length=100)
    title: str = Field(max_length=500)
    subject: Optional[str] = Field(default=None, max_length=255)
    questions: List[str] = Field(default_factory=list)
    # keywords[question_index] -> expected keywords for the scoring heuristic
    answer_keywords: List[List[str]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def keywords_for(self, question_index: int) -> List[str]:
        """Expected keywords for a question, empty if none were supplied."""
        if 0 <= question_index < len(self.answer_keywords):
            return self.answer_keywords[question_index]
        return []


class Submission(SQLModel):
    """One student's answer to one question."""

    id: Optional[str] = Field(default=None, max_length=100)
    assignment_id: Optional[str] = Field(default=None, max_length=100)
    student_id: str = Field(max_length=100)
    question_index: int = Field(ge=0)
    answer_text: str = ""
    score: Optional[float] = Field(default=None, ge=0, le=100)

    @property
    def effective_score(self) -> float:
        """Score used by aggregate statistics; a missing score counts as 50."""
        return DEFAULT_SCORE if self.score is None else self.score


class AnswerCluster(SQLModel):
    """Group of answer indices; the first index is the seed the others matched."""

    indices: List[int] = Field(default_factory=list)

    @property
    def seed(self) -> int:
        return self.indices[0]

    @property
    def size(self) -> int:
        return len(self.indices)
