"""
Similarity ranking over an exhaustive candidate scan.

Scores every candidate, drops those under the threshold, sorts by descending
similarity (stable, so ties keep candidate order), then truncates to the limit.
"""

import time
from typing import Iterable, List, Optional, Sequence

import numpy as np

from .types import DimensionMismatchError, ScoredDocument, SearchResult, VectorDocument
from ..util.logging import logger


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero magnitude."""
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    if a.shape != b.shape:
        raise DimensionMismatchError(f"Vectors must have the same length ({a.shape[0]} != {b.shape[0]})")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def text_similarity(query: str, content: str) -> float:
    """Fraction of query tokens that overlap some content token by substring, either way."""
    query_words = query.lower().split()
    content_words = content.lower().split()
    if not query_words:
        return 0.0

    matches = 0
    for word in query_words:
        if any(word in c_word or c_word in word for c_word in content_words):
            matches += 1

    return matches / len(query_words)


def score_document(document: VectorDocument, query_text: str, query_vector: Optional[np.ndarray],
                   text_only: bool = False) -> float:
    """Score one document against the query; falls back to textual overlap without a usable embedding."""
    if text_only or document.embedding is None or query_vector is None:
        return text_similarity(query_text, document.content)

    try:
        return cosine_similarity(query_vector, document.embedding)
    except DimensionMismatchError as e:
        logger.warning(f"Ranking {document.id} by text overlap: {e}")
        return text_similarity(query_text, document.content)


def rank_documents(query_text: str, query_vector: Optional[np.ndarray], candidates: Iterable[VectorDocument],
                   threshold: float, limit: int, text_only: bool = False) -> SearchResult:
    """
    Rank candidates against a query.

    Args:
        query_text: Raw query, used by the textual-overlap fallback
        query_vector: Query embedding
        candidates: Already-filtered documents, in candidate order
        threshold: Minimum similarity kept
        limit: Maximum number of results returned
        text_only: Score every candidate by textual overlap

    Returns:
        SearchResult whose total and mean similarity cover every match, not just the returned page
    """
    start_time = time.perf_counter()

    matches: List[ScoredDocument] = []
    for document in candidates:
        similarity = score_document(document, query_text, query_vector, text_only)
        if similarity >= threshold:
            matches.append(ScoredDocument(document=document, similarity=similarity))

    matches.sort(key=lambda match: match.similarity, reverse=True)

    avg_similarity = sum(m.similarity for m in matches) / len(matches) if matches else 0.0
    search_time_ms = (time.perf_counter() - start_time) * 1000

    return SearchResult(
        documents=matches[:limit],
        total_results=len(matches),
        search_time_ms=search_time_ms,
        avg_similarity=avg_similarity,
    )
