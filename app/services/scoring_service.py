"""
Fallback scoring for answers submitted without a score.
"""
from typing import Iterable, Optional, Sequence

from app.services.metrics_service import round_half_up
from app.services.text_service import tokenize, word_count

KEYWORD_WEIGHT = 60
LENGTH_WEIGHT = 40
NO_KEYWORDS_CREDIT = 30
FULL_LENGTH_WORDS = 20


def score_heuristic(
    answer: Optional[str], answer_keywords: Sequence[str], stop_words: Optional[Iterable[str]] = None
) -> int:
    """
    Estimate a 0-100 score from keyword coverage and answer length.

    Keyword coverage is worth up to 60 points (a flat 30 when no keywords are
    given); length is worth up to 40 points, reaching the maximum at 20 words.

    Args:
        answer: Answer text
        answer_keywords: Expected keywords, matched against the answer's terms
        stop_words: Optional stop-word set for tokenization

    Returns:
        Integer score, 0 for an empty answer
    """
    if not answer or not answer.strip():
        return 0

    terms = set(tokenize(answer, stop_words))
    if answer_keywords:
        hits = sum(1 for keyword in answer_keywords if keyword in terms)
        keyword_score = hits / len(answer_keywords) * KEYWORD_WEIGHT
    else:
        keyword_score = NO_KEYWORDS_CREDIT

    length_score = min(word_count(answer) / FULL_LENGTH_WORDS, 1) * LENGTH_WEIGHT
    return round_half_up(keyword_score + length_score)
