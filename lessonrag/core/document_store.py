"""
Vector document store: the authoritative keyed collection of lesson passages.

Writers hold the store lock only while swapping records in; embedding calls
happen outside it. Records are replaced, never mutated in place, so a
snapshot taken under the lock stays consistent while it is iterated.
"""

import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from ..vector.types import (
    DimensionMismatchError,
    DocumentUpdate,
    NewDocument,
    QueryValidationError,
    SetContent,
    SetDifficulty,
    SetLessonLink,
    SetSource,
    SetTitle,
    SetTopics,
    SetType,
    VectorDocument,
)
from ..util.logging import logger

_UPDATE_TYPES = (SetContent, SetTitle, SetSource, SetType, SetDifficulty, SetTopics, SetLessonLink)


def _apply_update(document: VectorDocument, change: DocumentUpdate) -> None:
    """Apply one field change to a working copy of a document."""
    metadata = document.metadata
    if isinstance(change, SetContent):
        document.content = change.content
    elif isinstance(change, SetTitle):
        document.metadata = replace(metadata, title=change.title)
    elif isinstance(change, SetSource):
        document.metadata = replace(metadata, source=change.source)
    elif isinstance(change, SetType):
        document.metadata = replace(metadata, type=change.type)
    elif isinstance(change, SetDifficulty):
        document.metadata = replace(metadata, difficulty=change.difficulty)
    elif isinstance(change, SetTopics):
        document.metadata = replace(metadata, topics=list(change.topics))
    elif isinstance(change, SetLessonLink):
        document.metadata = replace(metadata, lesson_link=change.lesson_link)
    else:
        raise TypeError(f"Unsupported document update: {change!r}")


class VectorDocumentStore:
    """
    In-memory document store with embedding generation on write.

    Args:
        gateway: ProviderGateway used to embed content
        seed_documents: Documents loaded as-is at construction. VectorDocuments keep
            their ids; NewDocuments get one assigned. Missing embeddings are left
            missing until ``backfill_embeddings`` runs.
    """

    def __init__(self, gateway, seed_documents: Optional[Iterable[Union[VectorDocument, NewDocument]]] = None):
        self.gateway = gateway
        self._documents: Dict[str, VectorDocument] = {}
        self._dimension: Optional[int] = None
        self._last_modified = datetime.now()
        self._lock = threading.RLock()

        if seed_documents:
            self._load_seed(seed_documents)

    def _load_seed(self, seed_documents):
        with self._lock:
            for seed in seed_documents:
                if isinstance(seed, VectorDocument):
                    document = seed.copy()
                else:
                    document = VectorDocument(id=self._generate_id(), content=seed.content,
                                              metadata=seed.metadata.copy())
                if document.id in self._documents:
                    raise ValueError(f"Duplicate document id in seed data: {document.id}")
                if document.embedding is not None:
                    self._accept_dimension(document.embedding)
                self._documents[document.id] = document
            self._touch()
        logger.log_operation("store.seed", "success", {"documents": len(self._documents)})

    @property
    def count(self) -> int:
        return len(self._documents)

    @property
    def last_modified(self) -> datetime:
        return self._last_modified

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _touch(self):
        self._last_modified = max(datetime.now(), self._last_modified)

    def _generate_id(self) -> str:
        while True:
            doc_id = f"doc_{uuid.uuid4().hex[:12]}"
            if doc_id not in self._documents:
                return doc_id

    def _accept_dimension(self, vector: np.ndarray):
        """Fix the store dimension on first use; reject vectors that disagree. Caller holds the lock."""
        if self._dimension is None:
            self._dimension = vector.size
        elif vector.size != self._dimension:
            raise DimensionMismatchError(
                f"Embedding dimension {vector.size} does not match store dimension {self._dimension}"
            )

    def _embed(self, content: str, dimension: Optional[int] = None) -> Tuple[np.ndarray, bool]:
        """Embed content; degraded vectors are sized to ``dimension``, else to the store dimension."""
        result = self.gateway.embed(content, dimension=dimension or self._dimension)
        return result.vector, result.degraded

    def _store_embedding(self, document: VectorDocument, vector: np.ndarray, degraded: bool):
        """Attach a freshly generated embedding. Caller holds the lock."""
        try:
            self._accept_dimension(vector)
        except DimensionMismatchError as e:
            logger.warning(f"Storing {document.id} without embedding: {e}")
            document.embedding = None
            document.embedding_degraded = False
            return
        document.embedding = vector
        document.embedding_degraded = degraded

    def add(self, document: NewDocument) -> str:
        """
        Add a document, embedding its content.

        Returns:
            The generated document id
        """
        if not isinstance(document.content, str) or not document.content.strip():
            raise QueryValidationError("content is required and must be a non-empty string")

        vector, degraded = self._embed(document.content)

        with self._lock:
            record = VectorDocument(
                id=self._generate_id(),
                content=document.content,
                metadata=document.metadata.copy(),
            )
            self._store_embedding(record, vector, degraded)
            self._documents[record.id] = record
            self._touch()

        logger.log_document_operation("add", record.id, {
            "title": record.metadata.title,
            "degraded_embedding": degraded
        })
        return record.id

    def add_many(self, documents: Iterable[NewDocument]) -> List[str]:
        """Add documents in order and return their ids."""
        return [self.add(document) for document in documents]

    def update(self, doc_id: str, *changes: DocumentUpdate) -> bool:
        """
        Apply field changes to a document.

        The embedding is regenerated only when the content actually changes.

        Returns:
            False if ``doc_id`` is unknown, True otherwise
        """
        for change in changes:
            if not isinstance(change, _UPDATE_TYPES):
                raise TypeError(f"Unsupported document update: {change!r}")

        new_content = None
        for change in changes:
            if isinstance(change, SetContent):
                new_content = change.content
        if new_content is not None and not new_content.strip():
            raise QueryValidationError("content must be a non-empty string")

        while True:
            with self._lock:
                existing = self._documents.get(doc_id)
                if existing is None:
                    return False
                previous_content = existing.content

            regenerated = None
            if new_content is not None and new_content != previous_content:
                regenerated = self._embed(new_content)

            with self._lock:
                current = self._documents.get(doc_id)
                if current is None:
                    return False
                # Content changed since it was read; start over against the new text
                if new_content is not None and current.content != previous_content:
                    continue

                updated = current.copy()
                for change in changes:
                    _apply_update(updated, change)
                updated.metadata.timestamp = max(datetime.now(), current.metadata.timestamp)
                if regenerated is not None:
                    self._store_embedding(updated, *regenerated)

                self._documents[doc_id] = updated
                self._touch()
                break

        logger.log_document_operation("update", doc_id, {
            "fields": [type(change).__name__ for change in changes],
            "reembedded": regenerated is not None
        })
        return True

    def remove(self, doc_id: str) -> bool:
        """Delete a document. Returns False if ``doc_id`` is unknown."""
        with self._lock:
            if doc_id not in self._documents:
                return False
            del self._documents[doc_id]
            self._touch()

        logger.log_document_operation("remove", doc_id)
        return True

    def get(self, doc_id: str) -> Optional[VectorDocument]:
        """Return a copy of one document, or None."""
        with self._lock:
            document = self._documents.get(doc_id)
        return document.copy() if document else None

    def all(self) -> List[VectorDocument]:
        """Return copies of every document, in insertion order."""
        return [document.copy() for document in self.snapshot()]

    def snapshot(self) -> List[VectorDocument]:
        """
        Consistent point-in-time list of the canonical records for read paths.

        The records must be treated as read-only; hand copies to callers.
        """
        with self._lock:
            return list(self._documents.values())

    def export(self) -> List[VectorDocument]:
        """Every document, embeddings included."""
        return self.all()

    def import_documents(self, documents: Iterable[VectorDocument]) -> int:
        """
        Replace the whole store with ``documents``.

        Documents without an embedding, or whose embedding disagrees with the
        first imported one in length, are re-embedded.

        Returns:
            Number of documents that were re-embedded
        """
        incoming = [document.copy() for document in documents]

        seen = set()
        for document in incoming:
            if document.id in seen:
                raise ValueError(f"Duplicate document id in import: {document.id}")
            seen.add(document.id)

        dimension = next((d.embedding.size for d in incoming if d.embedding is not None), None)
        missing = [d for d in incoming if d.embedding is None or d.embedding.size != dimension]

        for document in missing:
            embedded = self.gateway.embed(document.content, dimension=dimension)
            vector, degraded = embedded.vector, embedded.degraded
            if dimension is None:
                dimension = vector.size
            if vector.size == dimension:
                document.embedding = vector
                document.embedding_degraded = degraded
            else:
                logger.warning(f"Importing {document.id} without embedding: dimension {vector.size} != {dimension}")
                document.embedding = None
                document.embedding_degraded = False

        with self._lock:
            self._documents = {document.id: document for document in incoming}
            self._dimension = dimension
            self._touch()

        logger.log_operation("store.import", "success", {
            "documents": len(incoming),
            "reembedded": len(missing)
        })
        return len(missing)

    def backfill_embeddings(self) -> int:
        """Embed every document that has no embedding yet. Returns how many were embedded."""
        pending = [(d.id, d.content) for d in self.snapshot() if d.embedding is None]

        embedded = 0
        for doc_id, content in pending:
            vector, degraded = self._embed(content)
            with self._lock:
                current = self._documents.get(doc_id)
                if current is None or current.content != content or current.embedding is not None:
                    continue
                updated = current.copy()
                self._store_embedding(updated, vector, degraded)
                if updated.embedding is None:
                    continue
                self._documents[doc_id] = updated
                self._touch()
                embedded += 1

        logger.log_operation("store.backfill", "success", {"embedded": embedded, "pending": len(pending)})
        return embedded

    def clear(self) -> None:
        """Remove every document."""
        with self._lock:
            self._documents = {}
            self._dimension = None
            self._touch()

        logger.log_operation("store.clear", "success")
