"""
TF-IDF vectorization and cosine similarity over sparse term vectors.
"""
import logging
import math
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
from sklearn.feature_extraction import DictVectorizer
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine

from app.services.text_service import tokenize

logger = logging.getLogger("app.tfidf")

TermVector = Dict[str, float]


def compute_tfidf(corpus: Sequence[str], stop_words: Optional[Iterable[str]] = None) -> List[TermVector]:
    """
    Build one TF-IDF vector per document.

    tf(t, d) = count(t, d) / max(1, |tokens(d)|)
    idf(t)   = ln((N + 1) / (df(t) + 1))

    With a single document every idf is ln(2 / 2) = 0, so all weights are zero.

    Args:
        corpus: Documents in order
        stop_words: Optional stop-word set passed to the tokenizer

    Returns:
        List of sparse term vectors, aligned with ``corpus``
    """
    total_docs = len(corpus)
    term_frequencies: List[TermVector] = []

    for document in corpus:
        tokens = tokenize(document, stop_words)
        counts = Counter(tokens)
        length = max(1, len(tokens))
        term_frequencies.append({term: count / length for term, count in counts.items()})

    document_frequency: Counter = Counter()
    for tf in term_frequencies:
        document_frequency.update(tf.keys())

    vectors = [
        {term: value * math.log((total_docs + 1) / (document_frequency[term] + 1)) for term, value in tf.items()}
        for tf in term_frequencies
    ]

    logger.debug(f"Vectorized {total_docs} documents, vocabulary size {len(document_frequency)}")
    return vectors


def similarity_matrix(vectors: Sequence[TermVector]) -> np.ndarray:
    """
    Pairwise cosine similarity for a list of sparse vectors.

    Rows with zero norm produce zero similarity with everything, itself included.

    Returns:
        Square array of shape (len(vectors), len(vectors)) with values in [0, 1]
    """
    size = len(vectors)
    if size == 0:
        return np.zeros((0, 0))

    matrix = DictVectorizer(sparse=True, sort=True).fit_transform(vectors)
    if matrix.shape[1] == 0:
        return np.zeros((size, size))

    return np.clip(pairwise_cosine(matrix), 0.0, 1.0)


def cosine_similarity(a: TermVector, b: TermVector) -> float:
    """Cosine similarity of two sparse vectors, 0.0 when either one is all zeros."""
    return float(similarity_matrix([a, b])[0, 1])
