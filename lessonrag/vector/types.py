"""
Value types for the lesson knowledge base: documents, queries, results.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import numpy as np

from ..core.config import (
    SEARCH_DEFAULT_LIMIT,
    SEARCH_DEFAULT_THRESHOLD,
    RAG_MAX_SOURCES,
)


class QueryValidationError(ValueError):
    """Caller input rejected before any provider call is made."""
    pass


class DimensionMismatchError(ValueError):
    """An embedding does not match the store-wide dimension."""
    pass


class DocumentType(str, Enum):
    LESSON = "lesson"
    SUMMARY = "summary"
    CONCEPT = "concept"
    EXAMPLE = "example"
    EXERCISE = "exercise"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ResponseStyle(str, Enum):
    CONCISE = "concise"
    DETAILED = "detailed"
    CONVERSATIONAL = "conversational"


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise QueryValidationError(f"{field_name} must be one of: {valid} (got {value!r})")


def _clean_topics(topics) -> List[str]:
    """Strip topics, drop empty strings and duplicates while keeping first-seen order."""
    cleaned = []
    for topic in topics or []:
        topic = str(topic).strip()
        if topic and topic not in cleaned:
            cleaned.append(topic)
    return cleaned


@dataclass
class LessonLink:
    """Traceability back to the lesson a passage was taken from."""

    lesson_slug: str
    section_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"lessonSlug": self.lesson_slug, "sectionTitle": self.section_title}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['LessonLink']:
        if not data or not data.get("lessonSlug"):
            return None
        return cls(lesson_slug=data["lessonSlug"], section_title=data.get("sectionTitle"))


@dataclass
class DocumentMetadata:
    """Fixed metadata record attached to every document."""

    title: str
    source: str
    type: DocumentType
    difficulty: Difficulty
    topics: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    lesson_link: Optional[LessonLink] = None

    def __post_init__(self):
        self.type = _coerce_enum(DocumentType, self.type, "type")
        self.difficulty = _coerce_enum(Difficulty, self.difficulty, "difficulty")
        self.topics = _clean_topics(self.topics)

    def copy(self) -> 'DocumentMetadata':
        link = replace(self.lesson_link) if self.lesson_link else None
        return replace(self, topics=list(self.topics), lesson_link=link)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "title": self.title,
            "source": self.source,
            "type": self.type.value,
            "difficulty": self.difficulty.value,
            "topics": list(self.topics),
            "timestamp": self.timestamp.isoformat(),
        }
        if self.lesson_link:
            data["lessonLink"] = self.lesson_link.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DocumentMetadata':
        """Build metadata from its dict form.

        Older snapshots carry ``lessonSlug``/``sectionTitle`` flat on the
        metadata instead of a nested ``lessonLink``; both are accepted.
        """
        link = LessonLink.from_dict(data.get("lessonLink"))
        if link is None and data.get("lessonSlug"):
            link = LessonLink(lesson_slug=data["lessonSlug"], section_title=data.get("sectionTitle"))

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        return cls(
            title=data["title"],
            source=data.get("source", "unknown"),
            type=data["type"],
            difficulty=data["difficulty"],
            topics=data.get("topics", []),
            timestamp=timestamp or datetime.now(),
            lesson_link=link,
        )


@dataclass
class NewDocument:
    """A document as supplied by a caller, before the store assigns an id."""

    content: str
    metadata: DocumentMetadata


@dataclass
class VectorDocument:
    """The unit of indexed knowledge, owned by the document store."""

    id: str
    content: str
    metadata: DocumentMetadata
    embedding: Optional[np.ndarray] = None
    embedding_degraded: bool = False

    def copy(self) -> 'VectorDocument':
        """Deep copy; callers never receive the store's canonical record."""
        return VectorDocument(
            id=self.id,
            content=self.content,
            metadata=self.metadata.copy(),
            embedding=None if self.embedding is None else self.embedding.copy(),
            embedding_degraded=self.embedding_degraded,
        )

    def to_dict(self, include_embedding: bool = True) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
        }
        if include_embedding:
            data["embedding"] = None if self.embedding is None else self.embedding.tolist()
            data["embeddingDegraded"] = self.embedding_degraded
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VectorDocument':
        embedding = data.get("embedding")
        return cls(
            id=data["id"],
            content=data["content"],
            metadata=DocumentMetadata.from_dict(data["metadata"]),
            embedding=None if embedding is None else np.asarray(embedding, dtype=float),
            embedding_degraded=bool(data.get("embeddingDegraded", False)),
        )


# Partial updates are expressed as one value per mutable field.

@dataclass(frozen=True)
class SetContent:
    content: str


@dataclass(frozen=True)
class SetTitle:
    title: str


@dataclass(frozen=True)
class SetSource:
    source: str


@dataclass(frozen=True)
class SetType:
    type: DocumentType

    def __post_init__(self):
        object.__setattr__(self, "type", _coerce_enum(DocumentType, self.type, "type"))


@dataclass(frozen=True)
class SetDifficulty:
    difficulty: Difficulty

    def __post_init__(self):
        object.__setattr__(self, "difficulty", _coerce_enum(Difficulty, self.difficulty, "difficulty"))


@dataclass(frozen=True)
class SetTopics:
    topics: List[str]


@dataclass(frozen=True)
class SetLessonLink:
    lesson_link: Optional[LessonLink]


DocumentUpdate = Union[SetContent, SetTitle, SetSource, SetType, SetDifficulty, SetTopics, SetLessonLink]


@dataclass
class SearchFilters:
    """Independently optional metadata constraints, ANDed together."""

    type: Optional[List[DocumentType]] = None
    difficulty: Optional[List[Difficulty]] = None
    topics: Optional[List[str]] = None
    source: Optional[List[str]] = None

    def __post_init__(self):
        if self.type is not None:
            self.type = [_coerce_enum(DocumentType, t, "type") for t in self.type]
        if self.difficulty is not None:
            self.difficulty = [_coerce_enum(Difficulty, d, "difficulty") for d in self.difficulty]
        if self.topics is not None:
            self.topics = [str(t) for t in self.topics]
        if self.source is not None:
            self.source = [str(s) for s in self.source]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['SearchFilters']:
        if not data:
            return None
        unknown = set(data) - {"type", "difficulty", "topics", "source"}
        if unknown:
            raise QueryValidationError(f"Unknown filter fields: {sorted(unknown)}")
        return cls(**data)


@dataclass
class SearchQuery:
    """Caller-constructed search request; validated on construction."""

    query: str
    filters: Optional[SearchFilters] = None
    limit: int = SEARCH_DEFAULT_LIMIT
    threshold: float = SEARCH_DEFAULT_THRESHOLD

    def __post_init__(self):
        if not isinstance(self.query, str) or not self.query.strip():
            raise QueryValidationError("query is required and must be a non-empty string")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise QueryValidationError(f"limit must be a positive integer (got {self.limit!r})")
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)) \
                or not -1.0 <= self.threshold <= 1.0:
            raise QueryValidationError(f"threshold must be within [-1, 1] (got {self.threshold!r})")
        if isinstance(self.filters, dict):
            self.filters = SearchFilters.from_dict(self.filters)


@dataclass
class ScoredDocument:
    """A document copy paired with its query-scoped similarity."""

    document: VectorDocument
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        data = self.document.to_dict(include_embedding=False)
        data["similarity"] = self.similarity
        return data


@dataclass
class SearchResult:
    documents: List[ScoredDocument]
    total_results: int
    search_time_ms: float
    avg_similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents": [doc.to_dict() for doc in self.documents],
            "totalResults": self.total_results,
            "searchTime": self.search_time_ms,
            "avgSimilarity": self.avg_similarity,
        }


@dataclass
class RAGOptions:
    max_sources: int = RAG_MAX_SOURCES
    include_follow_up: bool = True
    response_style: ResponseStyle = ResponseStyle.DETAILED

    def __post_init__(self):
        if isinstance(self.max_sources, bool) or not isinstance(self.max_sources, int) or self.max_sources < 1:
            raise QueryValidationError(f"maxSources must be a positive integer (got {self.max_sources!r})")
        self.response_style = _coerce_enum(ResponseStyle, self.response_style, "responseStyle")


@dataclass
class RAGSource:
    title: str
    source: str
    relevance: int
    snippet: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "source": self.source,
            "relevance": self.relevance,
            "snippet": self.snippet,
        }


@dataclass
class RAGResult:
    answer: str
    sources: List[RAGSource]
    confidence: int
    follow_up_questions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [source.to_dict() for source in self.sources],
            "confidence": self.confidence,
            "followUpQuestions": list(self.follow_up_questions),
        }
