"""
Metadata filtering applied to the candidate set before ranking.
"""

from typing import Iterable, List, Optional

from .types import SearchFilters, VectorDocument


def _topic_overlaps(requested: str, document_topic: str) -> bool:
    requested = requested.lower()
    document_topic = document_topic.lower()
    return requested in document_topic or document_topic in requested


def matches_filters(document: VectorDocument, filters: Optional[SearchFilters]) -> bool:
    """Check if a document satisfies every constraint present in ``filters``.

    Topic matching is loose on purpose: any requested topic that is a
    case-insensitive substring of any document topic (or the reverse) counts.
    """
    if not filters:
        return True

    metadata = document.metadata

    if filters.type is not None and metadata.type not in filters.type:
        return False

    if filters.difficulty is not None and metadata.difficulty not in filters.difficulty:
        return False

    if filters.topics is not None and not any(
        _topic_overlaps(topic, doc_topic)
        for topic in filters.topics
        for doc_topic in metadata.topics
    ):
        return False

    if filters.source is not None and metadata.source not in filters.source:
        return False

    return True


def filter_documents(documents: Iterable[VectorDocument], filters: Optional[SearchFilters]) -> List[VectorDocument]:
    """Narrow ``documents`` to those matching ``filters``, keeping their order."""
    return [doc for doc in documents if matches_filters(doc, filters)]
