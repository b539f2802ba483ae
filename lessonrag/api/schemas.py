"""
Request/response models for the HTTP surface.
Field names follow the camelCase wire format used by the web client.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ..vector.types import (
    Difficulty,
    DocumentMetadata,
    DocumentType,
    DocumentUpdate,
    LessonLink,
    NewDocument,
    ResponseStyle,
    SetContent,
    SetDifficulty,
    SetLessonLink,
    SetSource,
    SetTitle,
    SetTopics,
    SetType,
)


class LessonLinkModel(BaseModel):
    lessonSlug: str
    sectionTitle: Optional[str] = None

    def to_lesson_link(self) -> LessonLink:
        return LessonLink(lesson_slug=self.lessonSlug, section_title=self.sectionTitle)


class SearchFiltersModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[List[DocumentType]] = None
    difficulty: Optional[List[Difficulty]] = None
    topics: Optional[List[str]] = None
    source: Optional[List[str]] = None


class SearchRequest(BaseModel):
    query: str
    filters: Optional[SearchFiltersModel] = None
    limit: Optional[int] = None
    threshold: Optional[float] = None

    @field_validator('query')
    @classmethod
    def query_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('query cannot be empty')
        return v

    @field_validator('limit')
    @classmethod
    def limit_must_be_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError('limit must be >= 1')
        return v

    @field_validator('threshold')
    @classmethod
    def threshold_must_be_in_range(cls, v):
        if v is not None and not -1.0 <= v <= 1.0:
            raise ValueError('threshold must be within [-1, 1]')
        return v


class MetadataModel(BaseModel):
    title: str
    source: str
    type: DocumentType
    difficulty: Difficulty
    topics: List[str]
    timestamp: datetime
    lessonLink: Optional[LessonLinkModel] = None


class DocumentModel(BaseModel):
    id: str
    content: str
    metadata: MetadataModel
    similarity: Optional[float] = None


class SearchResponse(BaseModel):
    documents: List[DocumentModel]
    totalResults: int
    searchTime: float
    avgSimilarity: float


class AskRequest(BaseModel):
    query: str
    maxSources: Optional[int] = None
    includeFollowUp: bool = True
    responseStyle: ResponseStyle = ResponseStyle.DETAILED

    @field_validator('query')
    @classmethod
    def query_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('query cannot be empty')
        return v

    @field_validator('maxSources')
    @classmethod
    def max_sources_must_be_positive(cls, v):
        if v is not None and v < 1:
            raise ValueError('maxSources must be >= 1')
        return v


class SourceModel(BaseModel):
    title: str
    source: str
    relevance: int
    snippet: str


class AskResponse(BaseModel):
    answer: str
    sources: List[SourceModel]
    confidence: int
    followUpQuestions: List[str]


class AddMetadataModel(BaseModel):
    title: str
    source: str = "API"
    type: DocumentType = DocumentType.CONCEPT
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    topics: List[str] = []
    lessonLink: Optional[LessonLinkModel] = None

    @field_validator('title')
    @classmethod
    def title_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('title cannot be empty')
        return v


class AddDocumentRequest(BaseModel):
    content: str
    metadata: AddMetadataModel

    @field_validator('content')
    @classmethod
    def content_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('content cannot be empty')
        return v

    def to_new_document(self) -> NewDocument:
        metadata = self.metadata
        return NewDocument(
            content=self.content,
            metadata=DocumentMetadata(
                title=metadata.title,
                source=metadata.source,
                type=metadata.type,
                difficulty=metadata.difficulty,
                topics=metadata.topics,
                lesson_link=metadata.lessonLink.to_lesson_link() if metadata.lessonLink else None,
            ),
        )


class AddDocumentResponse(BaseModel):
    success: bool
    documentId: str
    message: str


class UpdateDocumentRequest(BaseModel):
    """Partial update; only fields present in the request body are changed."""
    model_config = ConfigDict(extra="forbid")

    content: Optional[str] = None
    title: Optional[str] = None
    source: Optional[str] = None
    type: Optional[DocumentType] = None
    difficulty: Optional[Difficulty] = None
    topics: Optional[List[str]] = None
    lessonLink: Optional[LessonLinkModel] = None

    @field_validator('content', 'title')
    @classmethod
    def text_must_not_be_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError('value cannot be empty')
        return v

    def to_updates(self) -> List[DocumentUpdate]:
        fields = self.model_fields_set
        updates: List[DocumentUpdate] = []
        if "content" in fields and self.content is not None:
            updates.append(SetContent(self.content))
        if "title" in fields and self.title is not None:
            updates.append(SetTitle(self.title))
        if "source" in fields and self.source is not None:
            updates.append(SetSource(self.source))
        if "type" in fields and self.type is not None:
            updates.append(SetType(self.type))
        if "difficulty" in fields and self.difficulty is not None:
            updates.append(SetDifficulty(self.difficulty))
        if "topics" in fields and self.topics is not None:
            updates.append(SetTopics(self.topics))
        if "lessonLink" in fields:
            updates.append(SetLessonLink(self.lessonLink.to_lesson_link() if self.lessonLink else None))
        return updates


class UpdateDocumentResponse(BaseModel):
    success: bool
    documentId: str


class TopicCount(BaseModel):
    topic: str
    count: int


class StatsResponse(BaseModel):
    totalDocuments: int
    lastIndexUpdate: datetime
    documentTypes: Dict[str, int]
    difficultyLevels: Dict[str, int]
    topTopics: List[TopicCount]
    embeddingDimension: Optional[int] = None
    degradedEmbeddings: int = 0


class ImportResponse(BaseModel):
    success: bool
    documents: int
    reembedded: int


class HealthResponse(BaseModel):
    status: str
    version: str
    documents: int
    embedding_provider: Optional[str] = None
    completion_provider: Optional[str] = None
    embedding_dimension: Optional[int] = None
    config_issues: List[str] = []


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)
