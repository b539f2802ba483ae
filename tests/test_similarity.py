"""
Similarity ranking: cosine scoring, the textual-overlap fallback, and
threshold -> sort -> limit ordering.
"""

import numpy as np
import pytest

from lessonrag.vector.similarity import cosine_similarity, text_similarity, score_document, rank_documents
from lessonrag.vector.types import DimensionMismatchError, DocumentMetadata, VectorDocument


def make_doc(doc_id, content, embedding=None):
    return VectorDocument(
        id=doc_id,
        content=content,
        metadata=DocumentMetadata(title=doc_id, source="test", type="concept", difficulty="beginner"),
        embedding=None if embedding is None else np.asarray(embedding, dtype=float),
    )


def test_cosine_self_similarity_is_one():
    """A vector compared with itself scores 1.0."""
    vector = [0.3, -1.2, 4.0, 0.5]
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_cosine_is_symmetric():
    """sim(a, b) == sim(b, a)."""
    a = [1.0, 2.0, 3.0]
    b = [-2.0, 0.5, 1.0]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_cosine_orthogonal_and_opposite():
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)


def test_cosine_zero_vector_scores_zero():
    """Zero magnitude never divides by zero."""
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0


def test_cosine_rejects_mismatched_lengths():
    with pytest.raises(DimensionMismatchError):
        cosine_similarity([1, 2, 3], [1, 2])


def test_text_similarity_counts_overlapping_words():
    """Fraction of query words that match some content word by substring, in either direction."""
    assert text_similarity("temperature control", "Temperature controls randomness") == pytest.approx(1.0)
    assert text_similarity("temperature banana", "temperature settings") == pytest.approx(0.5)
    assert text_similarity("", "anything") == 0.0


def test_score_document_falls_back_to_text():
    """Documents without an embedding, or with a mismatched one, are scored by text overlap."""
    no_embedding = make_doc("a", "temperature settings")
    mismatched = make_doc("b", "temperature settings", embedding=[1.0, 0.0])
    query_vector = np.array([1.0, 0.0, 0.0])

    assert score_document(no_embedding, "temperature", query_vector) == pytest.approx(1.0)
    assert score_document(mismatched, "temperature", query_vector) == pytest.approx(1.0)


def test_score_document_text_only_ignores_embeddings():
    doc = make_doc("a", "temperature settings", embedding=[0.0, 1.0])
    assert score_document(doc, "temperature", np.array([1.0, 0.0]), text_only=True) == pytest.approx(1.0)
    assert score_document(doc, "temperature", np.array([1.0, 0.0])) == pytest.approx(0.0)


def test_rank_documents_orders_thresholds_and_limits():
    """Results are sorted descending, never below threshold, and truncated after the total is counted."""
    query = np.array([1.0, 0.0])
    candidates = [
        make_doc("low", "x", embedding=[0.2, 1.0]),
        make_doc("high", "x", embedding=[1.0, 0.0]),
        make_doc("mid", "x", embedding=[1.0, 0.6]),
        make_doc("negative", "x", embedding=[-1.0, 0.1]),
    ]

    result = rank_documents("x", query, candidates, threshold=0.1, limit=2)

    similarities = [match.similarity for match in result.documents]
    assert [match.document.id for match in result.documents] == ["high", "mid"]
    assert similarities == sorted(similarities, reverse=True)
    assert all(s >= 0.1 for s in similarities)
    assert result.total_results == 3
    assert len(result.documents) <= 2
    assert result.total_results >= len(result.documents)


def test_rank_documents_average_covers_all_matches():
    """Mean similarity is over every match, not just the returned page."""
    query = np.array([1.0, 0.0])
    candidates = [
        make_doc("a", "x", embedding=[1.0, 0.0]),
        make_doc("b", "x", embedding=[0.0, 1.0]),
    ]

    result = rank_documents("x", query, candidates, threshold=-1.0, limit=1)

    assert result.total_results == 2
    assert len(result.documents) == 1
    assert result.avg_similarity == pytest.approx(0.5)


def test_rank_documents_ties_keep_candidate_order():
    query = np.array([1.0, 0.0])
    candidates = [make_doc(doc_id, "x", embedding=[1.0, 0.0]) for doc_id in ("first", "second", "third")]

    result = rank_documents("x", query, candidates, threshold=0.0, limit=10)

    assert [match.document.id for match in result.documents] == ["first", "second", "third"]


def test_rank_documents_empty_candidates():
    result = rank_documents("anything", None, [], threshold=0.0, limit=5)

    assert result.documents == []
    assert result.total_results == 0
    assert result.avg_similarity == 0.0
