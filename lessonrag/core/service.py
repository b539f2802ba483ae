"""
RAGSearchService: one explicit handle over store, search, RAG pipeline and stats.
"""

from typing import Any, Dict, Iterable, List, Optional

from .config import RANK_DEGRADED_WITH_TEXT
from .document_store import VectorDocumentStore
from .rag_pipeline import RAGPipeline
from .search_service import SearchService
from .stats import collect_stats
from ..vector.types import RAGOptions, RAGResult, ResponseStyle, SearchResult


class RAGSearchService:
    """
    Semantic search and retrieval-augmented answers over a lesson library.

    Several services can coexist; each owns its own store.
    """

    def __init__(self, gateway, seed_documents: Optional[Iterable] = None,
                 rank_degraded_with_text: Optional[bool] = None):
        self.gateway = gateway
        self.store = VectorDocumentStore(gateway, seed_documents=seed_documents)
        if rank_degraded_with_text is None:
            rank_degraded_with_text = RANK_DEGRADED_WITH_TEXT
        self.search_service = SearchService(self.store, gateway, rank_degraded_with_text)
        self.pipeline = RAGPipeline(self.search_service, gateway)

    def semantic_search(self, query: str, filters: Optional[Dict[str, Any]] = None,
                        limit: Optional[int] = None, threshold: Optional[float] = None) -> SearchResult:
        return self.search_service.semantic_search(query, filters=filters, limit=limit, threshold=threshold)

    def search_lessons(self, query: str, difficulty: Optional[List[str]] = None,
                       topics: Optional[List[str]] = None, limit: Optional[int] = None) -> SearchResult:
        """Search narrowed by difficulty and topics only."""
        filters = {}
        if difficulty is not None:
            filters["difficulty"] = difficulty
        if topics is not None:
            filters["topics"] = topics
        return self.semantic_search(query, filters=filters or None, limit=limit)

    def rag_query(self, query: str, options: Optional[RAGOptions] = None) -> RAGResult:
        return self.pipeline.run(query, options)

    def ask(self, question: str, style: Optional[str] = None, include_follow_up: bool = True) -> RAGResult:
        """Answer a question with default source count and the given style."""
        options = RAGOptions(include_follow_up=include_follow_up,
                             response_style=style or ResponseStyle.DETAILED)
        return self.pipeline.run(question, options)

    def get_stats(self) -> Dict[str, Any]:
        return collect_stats(self.store)

    def close(self) -> None:
        self.gateway.close()
