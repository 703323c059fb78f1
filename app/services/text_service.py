"""
Text normalization helpers shared by the analytics services.
"""
import re
from typing import Iterable, List, Optional

STOP_WORDS: frozenset = frozenset([
    "a", "an", "the", "is", "it", "in", "on", "of", "and", "or", "to", "for", "are", "was",
    "be", "has", "had", "by", "at", "this", "that", "with", "from", "as", "its", "not",
    "but", "also", "which", "who", "they", "we", "he", "she", "i", "you", "me", "my", "our",
    "their", "what", "when", "where", "how", "so", "if", "then", "than", "do", "does",
    "did", "have", "been", "can", "could", "will", "would", "should", "may", "might",
    "each", "some", "any", "no", "one", "two", "three", "all", "both", "more", "very",
])

MIN_TOKEN_LENGTH = 3

_NON_WORD_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: Optional[str], stop_words: Optional[Iterable[str]] = None) -> List[str]:
    """
    Normalize raw answer text into a list of terms.

    Lower-cases the text, blanks out everything except ASCII letters, digits and
    whitespace, then drops short tokens and stop words. No stemming is applied.

    Args:
        text: Raw text (None is treated as empty)
        stop_words: Stop-word set to filter with; defaults to STOP_WORDS

    Returns:
        List of terms in their original order
    """
    if not text:
        return []

    words = STOP_WORDS if stop_words is None else frozenset(stop_words)
    normalized = _NON_WORD_RE.sub(" ", text.lower())
    return [token for token in normalized.split() if len(token) >= MIN_TOKEN_LENGTH and token not in words]


def ngrams(tokens: List[str], n: int) -> List[str]:
    """Return every contiguous window of ``n`` tokens joined by a space."""
    if n <= 0:
        return []
    return [" ".join(tokens[i:i + n]) for i in range(len(tokens) - n + 1)]


def word_count(text: Optional[str]) -> int:
    """Count whitespace-delimited words, before any filtering."""
    if not text:
        return 0
    return len(text.split())
