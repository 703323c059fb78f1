"""
Metrics service for per-question and per-student statistics.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.models.analysis import Submission
from app.services.tfidf_service import compute_tfidf

logger = logging.getLogger("app.metrics")

HIGH_BAND_MIN = 80
AVERAGE_BAND_MIN = 50
HARD_BELOW = 50
MODERATE_BELOW = 75
DEFAULT_KEYWORDS_TOP_N = 8


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def difficulty_label(avg: float) -> str:
    """Map an average score to Hard / Moderate / Easy."""
    if avg < HARD_BELOW:
        return "Hard"
    if avg < MODERATE_BELOW:
        return "Moderate"
    return "Easy"


class MetricsService:
    """Service for calculating class, question and student statistics."""

    def __init__(self, stop_words: Optional[Iterable[str]] = None):
        self.stop_words = stop_words
        self.logger = logger

    def class_average(self, submissions: Sequence[Submission]) -> int:
        """Mean of all scores (missing counts as 50), rounded; 0 for an empty batch."""
        return round_half_up(mean([s.effective_score for s in submissions]))

    def total_students(self, submissions: Sequence[Submission]) -> int:
        return len({s.student_id for s in submissions})

    def student_averages(self, submissions: Sequence[Submission]) -> Dict[str, float]:
        """Unrounded mean score per student, in first-seen order."""
        by_student: Dict[str, List[float]] = {}
        for submission in submissions:
            by_student.setdefault(submission.student_id, []).append(submission.effective_score)
        return {student_id: mean(scores) for student_id, scores in by_student.items()}

    def classify_performance(self, submissions: Sequence[Submission]) -> Dict[str, List[Dict[str, Any]]]:
        """
        Split students into performance bands by their mean score.

        Args:
            submissions: Submission batch

        Returns:
            Dictionary with "high", "average" and "struggling" lists of {studentId, avg}
        """
        bands: Dict[str, List[Dict[str, Any]]] = {"high": [], "average": [], "struggling": []}

        for student_id, avg in self.student_averages(submissions).items():
            entry = {"studentId": student_id, "avg": round_half_up(avg)}
            if avg >= HIGH_BAND_MIN:
                bands["high"].append(entry)
            elif avg >= AVERAGE_BAND_MIN:
                bands["average"].append(entry)
            else:
                bands["struggling"].append(entry)

        self.logger.debug(
            f"Performance bands: high={len(bands['high'])} average={len(bands['average'])} "
            f"struggling={len(bands['struggling'])}"
        )
        return bands

    def question_stats(self, submissions: Sequence[Submission], questions: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Calculate average, range and difficulty for every question.

        Questions without submissions get zeroed stats and no difficulty label.

        Args:
            submissions: Submission batch
            questions: Question prompts; position is the question index

        Returns:
            One stats dictionary per question, in question order
        """
        stats = []
        for question_index, question in enumerate(questions):
            scores = [s.effective_score for s in submissions if s.question_index == question_index]
            if not scores:
                stats.append({"question": question, "avg": 0, "low": 0, "high": 0, "count": 0})
                continue

            avg = mean(scores)
            stats.append({
                "question": question,
                "avg": round_half_up(avg),
                "low": min(scores),
                "high": max(scores),
                "count": len(scores),
                "difficulty": difficulty_label(avg),
            })
        return stats

    def top_keywords(
        self, submissions: Sequence[Submission], question_index: int, top_n: int = DEFAULT_KEYWORDS_TOP_N
    ) -> List[Dict[str, Any]]:
        """
        Rank the terms of one question's answers by summed TF-IDF weight.

        Args:
            submissions: Submission batch
            question_index: Question to rank
            top_n: Number of keywords to return

        Returns:
            List of {word, score} with score rounded to 4 decimals
        """
        answers = [s.answer_text for s in submissions if s.question_index == question_index]
        if not answers:
            return []

        totals: Dict[str, float] = {}
        for vector in compute_tfidf(answers, self.stop_words):
            for term, weight in vector.items():
                totals[term] = totals.get(term, 0.0) + weight

        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:top_n]
        return [{"word": word, "score": round(score, 4)} for word, score in ranked]
