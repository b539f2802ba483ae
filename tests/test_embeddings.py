"""
Embedding providers: the deterministic hash embedder used offline and in tests,
and the Ollama-backed embedder used in production.
"""

import pytest
from unittest.mock import MagicMock, patch

from lessonrag.vector.embeddings import IEmbeddingProvider, DeterministicHashEmbedding, OllamaEmbedding
from lessonrag.vector.similarity import cosine_similarity


def test_embedding_interface():
    """Test that the embedding provider implements the interface correctly."""
    embedder = DeterministicHashEmbedding(dimension=384)

    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384
    assert embedder.name == "DeterministicHashEmbedding"


def test_deterministic_embedding():
    """Test that the same input always produces the same output."""
    embedder = DeterministicHashEmbedding(dimension=384)

    vector1 = embedder.embed_text("Hello, world!")
    vector2 = embedder.embed_text("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == 384


def test_consistent_output_across_instances():
    """Two separate instances agree on the same text."""
    text = "Temperature controls randomness"
    assert DeterministicHashEmbedding(64).embed_text(text) == DeterministicHashEmbedding(64).embed_text(text)


def test_different_inputs_produce_different_vectors():
    """Test that different inputs produce different vectors."""
    embedder = DeterministicHashEmbedding(dimension=384)

    assert embedder.embed_text("prompt engineering") != embedder.embed_text("temperature settings")


def test_embedding_with_different_dimensions():
    """Test embedding with different dimension sizes."""
    assert len(DeterministicHashEmbedding(dimension=64).embed_text("test")) == 64
    assert len(DeterministicHashEmbedding(dimension=512).embed_text("test")) == 512


def test_embedding_edge_cases():
    """Empty text embeds to a zero vector; case and punctuation are ignored."""
    embedder = DeterministicHashEmbedding(dimension=128)

    assert embedder.embed_text("") == [0.0] * 128
    assert embedder.embed_text("Temperature!") == embedder.embed_text("temperature")
    assert all(value >= 0 for value in embedder.embed_text("A" * 1000 + " mixed Words 42"))


def test_shared_vocabulary_scores_higher():
    """Texts that share words are closer than texts that do not."""
    embedder = DeterministicHashEmbedding(dimension=1024)

    query = embedder.embed_text("what does temperature control")
    related = embedder.embed_text("temperature controls randomness in responses")
    unrelated = embedder.embed_text("chain of thought prompting breaks problems into steps")

    assert cosine_similarity(query, related) > cosine_similarity(query, unrelated)


def test_ollama_embedding_calls_embed_endpoint():
    """OllamaEmbedding asks the server for the configured model and returns the first vector."""
    with patch("lessonrag.vector.embeddings.ollama.Client") as client_cls:
        client = MagicMock()
        client.embed.return_value = {"embeddings": [[0.1, 0.2, 0.3]]}
        client_cls.return_value = client

        embedder = OllamaEmbedding("nomic-embed-text", host="http://ollama:11434", timeout=5)
        assert embedder.get_dimension() is None

        vector = embedder.embed_text("hello")

    client_cls.assert_called_once_with(host="http://ollama:11434", timeout=5)
    client.embed.assert_called_once_with(model="nomic-embed-text", input="hello")
    assert vector == [0.1, 0.2, 0.3]
    assert embedder.get_dimension() == 3


def test_ollama_embedding_raises_on_empty_response():
    """An empty embedding list is a provider failure, left for the gateway to absorb."""
    with patch("lessonrag.vector.embeddings.ollama.Client") as client_cls:
        client_cls.return_value.embed.return_value = {"embeddings": []}
        embedder = OllamaEmbedding()

        with pytest.raises(ValueError):
            embedder.embed_text("hello")
