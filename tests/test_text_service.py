"""
Tests for tokenization and TF-IDF vectorization.
"""

import math

import pytest

from app.services.text_service import ngrams, tokenize, word_count
from app.services.tfidf_service import compute_tfidf, cosine_similarity, similarity_matrix


class TestTokenize:
    """Test tokenize()."""

    def test_lowercases_and_strips_punctuation(self):
        """Punctuation becomes a separator and case is folded."""
        assert tokenize("Linked-List NODES, pointers!") == ["linked", "list", "nodes", "pointers"]

    def test_drops_short_tokens_and_stop_words(self):
        """Tokens shorter than three characters and stop words are removed."""
        assert tokenize("It is O(n) because the array has all items") == ["because", "array", "items"]

    def test_keeps_digits(self):
        """Digits survive normalization."""
        assert tokenize("HTTP 404 error") == ["http", "404", "error"]

    def test_non_ascii_letters_split_words(self):
        """Letters outside ASCII act as separators."""
        assert tokenize("naïve approach") == ["approach"]

    def test_empty_and_none(self):
        """Empty input yields no tokens."""
        assert tokenize("") == []
        assert tokenize(None) == []
        assert tokenize("   ") == []

    def test_custom_stop_words(self):
        """A custom stop-word set replaces the default one."""
        assert tokenize("the binary tree", stop_words={"binary"}) == ["the", "tree"]

    def test_no_stemming(self):
        """Plural and singular forms stay distinct."""
        assert tokenize("list lists") == ["list", "lists"]


class TestNgrams:
    """Test ngrams() and word_count()."""

    def test_bigrams_and_trigrams(self):
        tokens = ["stores", "data", "arrays"]
        assert ngrams(tokens, 2) == ["stores data", "data arrays"]
        assert ngrams(tokens, 3) == ["stores data arrays"]

    def test_too_few_tokens(self):
        assert ngrams(["single"], 2) == []
        assert ngrams([], 3) == []

    def test_word_count_uses_whitespace(self):
        """Word count is taken before filtering."""
        assert word_count("It is O(n)   because") == 4
        assert word_count("") == 0


class TestComputeTfidf:
    """Test compute_tfidf()."""

    def test_weights(self):
        """Weights follow tf * ln((N + 1) / (df + 1))."""
        vectors = compute_tfidf(["apple banana apple", "banana cherry"])

        assert vectors[0]["apple"] == pytest.approx(2 / 3 * math.log(3 / 2))
        assert vectors[0]["banana"] == pytest.approx(0.0)
        assert vectors[1]["banana"] == pytest.approx(0.0)
        assert vectors[1]["cherry"] == pytest.approx(0.5 * math.log(3 / 2))

    def test_single_document_is_all_zero(self):
        """With one document every idf is ln(2 / 2) = 0."""
        vectors = compute_tfidf(["binary search halves the array"])

        assert set(vectors[0]) == {"binary", "search", "halves", "array"}
        assert all(weight == 0.0 for weight in vectors[0].values())

    def test_document_frequency_counts_once_per_document(self):
        """Repeating a term inside one document does not raise its df."""
        vectors = compute_tfidf(["tree tree tree", "graph"])

        assert vectors[0]["tree"] == pytest.approx(math.log(3 / 2))

    def test_empty_document_gets_empty_vector(self):
        vectors = compute_tfidf(["", "apple"])

        assert vectors[0] == {}
        assert vectors[1]["apple"] == pytest.approx(math.log(3 / 2))

    def test_empty_corpus(self):
        assert compute_tfidf([]) == []


class TestCosineSimilarity:
    """Test cosine_similarity() and similarity_matrix()."""

    def test_self_similarity_is_one(self):
        vector = {"binary": 0.4, "search": 0.2}
        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    def test_disjoint_vectors(self):
        assert cosine_similarity({"binary": 1.0}, {"hash": 1.0}) == pytest.approx(0.0)

    def test_zero_vector(self):
        """A zero-norm vector is similar to nothing."""
        assert cosine_similarity({"binary": 0.0}, {"binary": 1.0}) == 0.0
        assert cosine_similarity({}, {}) == 0.0

    def test_symmetric(self):
        a = {"linked": 0.3, "list": 0.1, "nodes": 0.5}
        b = {"list": 0.2, "nodes": 0.1, "array": 0.7}
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_matrix_shape_and_range(self):
        vectors = compute_tfidf(["alpha beta", "beta gamma", "gamma delta", ""])
        matrix = similarity_matrix(vectors)

        assert matrix.shape == (4, 4)
        assert (matrix >= 0.0).all()
        assert (matrix <= 1.0 + 1e-9).all()
        assert matrix[3].sum() == 0.0

    def test_matrix_of_nothing(self):
        assert similarity_matrix([]).shape == (0, 0)
        assert similarity_matrix([{}, {}]).sum() == 0.0
