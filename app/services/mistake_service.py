"""
Mistake mining: frequent bigrams and trigrams across wrong answers.
"""
import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.models.analysis import Submission
from app.services.metrics_service import round_half_up
from app.services.text_service import ngrams, tokenize

logger = logging.getLogger("app.mistakes")

WRONG_SCORE_BELOW = 65
MIN_SUPPORT = 2
SUPPORT_RATIO = 0.25
MAX_PATTERNS = 5
MAX_CONFIDENCE = 99
MAX_EXAMPLES = 2
EXAMPLE_LENGTH = 120
ELLIPSIS = "…"


def is_wrong(submission: Submission) -> bool:
    """A submission is wrong when it has no score or scored below 65."""
    return submission.score is None or submission.score < WRONG_SCORE_BELOW


def truncate_example(answer: str) -> str:
    return answer[:EXAMPLE_LENGTH] + ELLIPSIS if len(answer) > EXAMPLE_LENGTH else answer


class MistakeMiningService:
    """Service for extracting recurring phrases from low-scoring answers."""

    def __init__(self, stop_words: Optional[Iterable[str]] = None):
        self.stop_words = stop_words
        self.logger = logger

    def mine_mistakes(self, submissions: Sequence[Submission], question_index: int) -> List[Dict[str, Any]]:
        """
        Find phrases that recur across the wrong answers to one question.

        Every bigram and trigram occurrence is counted, including repeats inside
        one answer. A phrase qualifies when it occurs at least
        max(2, round(0.25 * wrong answers)) times; the five most frequent are kept.

        Args:
            submissions: Full submission batch
            question_index: Question to mine

        Returns:
            List of {phrase, count, confidence, affectedStudents, examples}
        """
        wrong_answers = [s.answer_text for s in submissions if s.question_index == question_index and is_wrong(s)]
        if not wrong_answers:
            return []

        phrase_counts: Counter = Counter()
        for answer in wrong_answers:
            tokens = tokenize(answer, self.stop_words)
            phrase_counts.update(ngrams(tokens, 2) + ngrams(tokens, 3))

        pool = len(wrong_answers)
        min_count = max(MIN_SUPPORT, round_half_up(pool * SUPPORT_RATIO))

        # Counter preserves first-seen order, and sorted() keeps it for equal counts
        frequent = [(phrase, count) for phrase, count in phrase_counts.items() if count >= min_count]
        frequent = sorted(frequent, key=lambda item: item[1], reverse=True)[:MAX_PATTERNS]

        mistakes = []
        for phrase, count in frequent:
            examples = [answer for answer in wrong_answers if phrase in answer.lower()][:MAX_EXAMPLES]
            mistakes.append({
                "phrase": phrase,
                "count": count,
                "confidence": min(round_half_up(count / pool * 100), MAX_CONFIDENCE),
                "affectedStudents": pool,
                "examples": [truncate_example(answer) for answer in examples],
            })

        self.logger.debug(
            f"Question {question_index}: {len(mistakes)} mistake patterns from {pool} wrong answers (min_count={min_count})"
        )
        return mistakes
