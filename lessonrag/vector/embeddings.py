"""
Embedding providers. Each turns a passage or query into a fixed-length vector.
Providers raise on failure; the gateway decides what to do about it.
"""

from abc import ABC, abstractmethod
import hashlib
import re

import ollama


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing and offline use.

    Each lowercase token is hashed into one of ``dimension`` buckets, so
    texts that share vocabulary point in similar directions. The vectors
    are non-negative, which keeps cosine similarity within [0, 1].
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector from hashed tokens."""
        vector = [0.0] * self.dimension
        for token in _TOKEN_PATTERN.findall(text.lower()):
            digest = hashlib.md5(token.encode()).hexdigest()
            vector[int(digest[:8], 16) % self.dimension] += 1.0
        return vector

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Embedding provider backed by an Ollama server."""

    def __init__(self, model_name: str = "nomic-embed-text", host: str = None, timeout: float = None):
        self.model_name = model_name
        self.client = ollama.Client(host=host, timeout=timeout)
        self._dimension = None

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector via the Ollama embed endpoint."""
        response = self.client.embed(model=self.model_name, input=text)
        embeddings = response["embeddings"]
        if not embeddings:
            raise ValueError(f"Ollama returned no embedding for model {self.model_name}")
        vector = list(embeddings[0])
        self._dimension = len(vector)
        return vector

    def get_dimension(self) -> int:
        """Dimension of the last embedding served, or None before the first call."""
        return self._dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Requires the ``local-embeddings`` extra.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension
