"""
Vector layer: document types, embedding providers, metadata filtering and similarity ranking.
"""

from .types import (
    VectorDocument,
    DocumentMetadata,
    LessonLink,
    NewDocument,
    DocumentType,
    Difficulty,
    ResponseStyle,
    SearchFilters,
    SearchQuery,
    ScoredDocument,
    SearchResult,
    QueryValidationError,
    DimensionMismatchError,
)
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, OllamaEmbedding, SentenceTransformerEmbedding
from .filters import matches_filters, filter_documents
from .similarity import cosine_similarity, text_similarity, rank_documents

__all__ = [
    'VectorDocument',
    'DocumentMetadata',
    'LessonLink',
    'NewDocument',
    'DocumentType',
    'Difficulty',
    'ResponseStyle',
    'SearchFilters',
    'SearchQuery',
    'ScoredDocument',
    'SearchResult',
    'QueryValidationError',
    'DimensionMismatchError',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'OllamaEmbedding',
    'SentenceTransformerEmbedding',
    'matches_filters',
    'filter_documents',
    'cosine_similarity',
    'text_similarity',
    'rank_documents',
]
