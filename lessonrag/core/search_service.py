"""
Semantic search over the document store.
Filter the candidate set, embed the query, rank. Read-only with respect to the store.
"""

import time
from typing import Any, Dict, Optional

from .config import RANK_DEGRADED_WITH_TEXT
from ..vector.filters import filter_documents
from ..vector.similarity import rank_documents
from ..vector.types import ScoredDocument, SearchFilters, SearchQuery, SearchResult
from ..util.logging import logger


class SearchService:
    """Search façade combining the metadata filter, the gateway and the ranker."""

    def __init__(self, store, gateway, rank_degraded_with_text: bool = RANK_DEGRADED_WITH_TEXT):
        self.store = store
        self.gateway = gateway
        self.rank_degraded_with_text = rank_degraded_with_text

    def search(self, query: SearchQuery) -> SearchResult:
        """
        Run one semantic search.

        The query embedding is only requested when at least one filtered
        candidate has an embedding to compare against.

        Args:
            query: Validated search query

        Returns:
            SearchResult holding copies of the matched documents
        """
        start_time = time.perf_counter()

        candidates = filter_documents(self.store.snapshot(), query.filters)

        query_vector = None
        text_only = False
        if any(doc.embedding is not None for doc in candidates):
            embedding = self.gateway.embed(query.query, dimension=self.store.dimension)
            query_vector = embedding.vector
            text_only = embedding.degraded and self.rank_degraded_with_text

        ranked = rank_documents(
            query.query,
            query_vector,
            candidates,
            threshold=query.threshold,
            limit=query.limit,
            text_only=text_only,
        )

        result = SearchResult(
            documents=[ScoredDocument(document=m.document.copy(), similarity=m.similarity) for m in ranked.documents],
            total_results=ranked.total_results,
            search_time_ms=(time.perf_counter() - start_time) * 1000,
            avg_similarity=ranked.avg_similarity,
        )

        logger.log_search(query.query, result.total_results, len(result.documents),
                          result.search_time_ms, result.avg_similarity)
        return result

    def semantic_search(self, query: str, filters: Optional[Dict[str, Any]] = None,
                        limit: Optional[int] = None, threshold: Optional[float] = None) -> SearchResult:
        """Build and run a SearchQuery from plain arguments; omitted values take the defaults."""
        kwargs = {}
        if limit is not None:
            kwargs["limit"] = limit
        if threshold is not None:
            kwargs["threshold"] = threshold
        if isinstance(filters, dict):
            filters = SearchFilters.from_dict(filters)

        return self.search(SearchQuery(query=query, filters=filters, **kwargs))
