"""
Import service for loading submissions from CSV and Excel files.
"""
import io
import logging
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from app.models.analysis import Assignment, Submission
from app.services.scoring_service import score_heuristic

logger = logging.getLogger("app.import")

SUPPORTED_EXTENSIONS = (".csv", ".xlsx", ".xls")

COLUMN_ALIASES = {
    "student_id": ("student_id", "studentid", "student", "student id"),
    "question_index": ("question_index", "questionindex", "question", "question index", "question_no"),
    "answer_text": ("answer_text", "answertext", "answer", "answer text", "response"),
    "score": ("score", "mark", "grade"),
}

REQUIRED_COLUMNS = ("student_id", "question_index", "answer_text")


class ImportValidationError(ValueError):
    """Raised when an uploaded file cannot be turned into submissions."""


class ImportService:
    """Service for parsing submission files into Submission models."""

    def read_frame(self, content: bytes, filename: str) -> pd.DataFrame:
        """
        Read an uploaded file into a DataFrame.

        Args:
            content: Raw file bytes
            filename: Original file name, used to pick the parser

        Returns:
            DataFrame with every column read as text
        """
        name = filename.lower()
        if not name.endswith(SUPPORTED_EXTENSIONS):
            raise ImportValidationError("Only CSV or Excel files (.csv, .xlsx, .xls) are allowed")

        try:
            if name.endswith(".csv"):
                return pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False)
            return pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=str, keep_default_na=False)
        except Exception as e:
            logger.error(f"Failed to read {filename}: {e}")
            raise ImportValidationError(f"Could not read {filename}: {e}") from e

    def _map_columns(self, columns: Sequence[str]) -> Dict[str, str]:
        """Map canonical field names to the file's column names."""
        normalized = {str(column).strip().lower(): column for column in columns}
        mapping = {}
        for field, aliases in COLUMN_ALIASES.items():
            for alias in aliases:
                if alias in normalized:
                    mapping[field] = normalized[alias]
                    break
        return mapping

    def parse_submissions(
        self, content: bytes, filename: str, assignment_id: str, one_based: bool = False
    ) -> Dict[str, Any]:
        """
        Parse an uploaded file into submissions for one assignment.

        Rows without a student id are skipped. A blank score cell means the
        submission has no score.

        Args:
            content: Raw file bytes
            filename: Original file name
            assignment_id: Assignment the submissions belong to
            one_based: Question numbers in the file start at 1

        Returns:
            Dictionary with "submissions", "total_rows" and "skipped_rows"
        """
        logger.info(f"Parsing submissions file {filename} for assignment {assignment_id}")
        df = self.read_frame(content, filename)
        mapping = self._map_columns(df.columns)

        missing = [field for field in REQUIRED_COLUMNS if field not in mapping]
        if missing:
            raise ImportValidationError(f"Missing required columns: {', '.join(missing)}")

        submissions: List[Submission] = []
        skipped = 0
        for row_number, row in enumerate(df.to_dict(orient="records"), start=2):
            student_id = str(row[mapping["student_id"]]).strip()
            if not student_id:
                skipped += 1
                continue

            try:
                question_index = int(float(str(row[mapping["question_index"]]).strip()))
                if one_based:
                    question_index -= 1
                score = self._parse_score(row.get(mapping["score"]) if "score" in mapping else None)
                submissions.append(Submission(
                    assignment_id=assignment_id,
                    student_id=student_id,
                    question_index=question_index,
                    answer_text=str(row[mapping["answer_text"]]),
                    score=score,
                ))
            except ValueError as e:
                logger.error(f"Invalid row {row_number} in {filename}: {e}")
                raise ImportValidationError(f"Invalid row {row_number}: {e}") from e

        logger.info(f"Parsed {len(submissions)} submissions from {filename}, skipped {skipped} rows")
        return {"submissions": submissions, "total_rows": len(df), "skipped_rows": skipped}

    def _parse_score(self, value: Optional[Any]) -> Optional[float]:
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        return float(text)


def apply_heuristic_scores(submissions: Sequence[Submission], assignment: Assignment) -> List[Submission]:
    """
    Fill missing scores with the keyword/length heuristic.

    Submissions that already carry a score are returned unchanged.
    """
    scored = []
    filled = 0
    for submission in submissions:
        if submission.score is None:
            keywords = assignment.keywords_for(submission.question_index)
            submission = submission.model_copy(update={"score": score_heuristic(submission.answer_text, keywords)})
            filled += 1
        scored.append(submission)
    if filled:
        logger.info(f"Applied heuristic scores to {filled} submissions of assignment {assignment.id}")
    return scored
