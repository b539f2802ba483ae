"""
Environment configuration for the lesson retrieval engine.
Provider selection, timeouts, search/RAG defaults, and factory helpers.
"""

import os

# Debug flag controls API docs and error detail
DEBUG = os.getenv("DEBUG", "true").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "ollama")  # hash|ollama|sentence-transformers|none
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "nomic-embed-text")
EMBED_DIM = int(os.getenv("EMBED_DIM", "768"))

# Completion provider configuration
COMPLETION_PROVIDER = os.getenv("COMPLETION_PROVIDER", "ollama")  # ollama|mock|none
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "llama3.1")
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")

# Every external call is bounded
PROVIDER_TIMEOUT_SEC = float(os.getenv("PROVIDER_TIMEOUT_SEC", "20"))
PROVIDER_MAX_WORKERS = int(os.getenv("PROVIDER_MAX_WORKERS", "4"))

# Search defaults
SEARCH_DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "10"))
SEARCH_DEFAULT_THRESHOLD = float(os.getenv("SEARCH_DEFAULT_THRESHOLD", "0.1"))
RANK_DEGRADED_WITH_TEXT = os.getenv("RANK_DEGRADED_WITH_TEXT", "false").lower() == "true"

# RAG pipeline
RAG_THRESHOLD = float(os.getenv("RAG_THRESHOLD", "0.2"))
RAG_MAX_SOURCES = int(os.getenv("RAG_MAX_SOURCES", "5"))
RAG_CONTEXT_MAX_CHARS = int(os.getenv("RAG_CONTEXT_MAX_CHARS", "6000"))
RAG_TEMPERATURE = float(os.getenv("RAG_TEMPERATURE", "0.3"))
RAG_MAX_TOKENS = int(os.getenv("RAG_MAX_TOKENS", "800"))
FOLLOW_UP_TEMPERATURE = float(os.getenv("FOLLOW_UP_TEMPERATURE", "0.6"))
FOLLOW_UP_MAX_TOKENS = int(os.getenv("FOLLOW_UP_MAX_TOKENS", "200"))

# Seed the API store with the sample lesson corpus
SEED_SAMPLE_DATA = os.getenv("SEED_SAMPLE_DATA", "true").lower() == "true"

# Snapshot file format
SNAPSHOT_VERSION = "1"

# Version string
VERSION = "1.0.0"

VALID_EMBED_PROVIDERS = ["hash", "ollama", "sentence-transformers", "none"]
VALID_COMPLETION_PROVIDERS = ["ollama", "mock", "none"]


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def get_embedding_provider():
    """Get configured embedding provider implementation. Returns None when unconfigured."""
    if EMBED_PROVIDER == "none":
        return None

    if EMBED_PROVIDER == "hash":
        from lessonrag.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=EMBED_DIM)
    elif EMBED_PROVIDER == "sentence-transformers":
        from lessonrag.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(EMBED_MODEL_NAME)
    else:
        from lessonrag.vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(EMBED_MODEL_NAME, host=OLLAMA_HOST, timeout=PROVIDER_TIMEOUT_SEC)


def get_completion_provider():
    """Get configured completion provider implementation. Returns None when unconfigured."""
    if COMPLETION_PROVIDER == "none":
        return None

    if COMPLETION_PROVIDER == "mock":
        from lessonrag.providers.completion import MockCompletionProvider
        return MockCompletionProvider()
    else:
        from lessonrag.providers.completion import OllamaCompletionProvider
        return OllamaCompletionProvider(COMPLETION_MODEL, host=OLLAMA_HOST, timeout=PROVIDER_TIMEOUT_SEC)


def get_gateway():
    """Build the provider gateway from the configured providers."""
    from lessonrag.providers.gateway import ProviderGateway
    return ProviderGateway(
        embedding_provider=get_embedding_provider(),
        completion_provider=get_completion_provider(),
        dimension=EMBED_DIM,
        timeout_sec=PROVIDER_TIMEOUT_SEC,
        max_workers=PROVIDER_MAX_WORKERS,
    )


def build_service(seed: bool = None):
    """Build a fully wired RAGSearchService from environment configuration."""
    from lessonrag.core.service import RAGSearchService
    from lessonrag.core.seed import SAMPLE_DOCUMENTS

    if seed is None:
        seed = SEED_SAMPLE_DATA
    return RAGSearchService(get_gateway(), seed_documents=SAMPLE_DOCUMENTS if seed else None)


def validate_config():
    """Validate provider and retrieval configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in VALID_EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if COMPLETION_PROVIDER not in VALID_COMPLETION_PROVIDERS:
        issues.append(f"Invalid COMPLETION_PROVIDER: {COMPLETION_PROVIDER}")

    if EMBED_DIM < 1:
        issues.append("EMBED_DIM must be >= 1")

    if PROVIDER_TIMEOUT_SEC <= 0:
        issues.append("PROVIDER_TIMEOUT_SEC must be > 0")

    if PROVIDER_MAX_WORKERS < 1:
        issues.append("PROVIDER_MAX_WORKERS must be >= 1")

    for name, value in (("SEARCH_DEFAULT_THRESHOLD", SEARCH_DEFAULT_THRESHOLD), ("RAG_THRESHOLD", RAG_THRESHOLD)):
        if not -1.0 <= value <= 1.0:
            issues.append(f"{name} must be within [-1, 1]")

    if RAG_CONTEXT_MAX_CHARS < 1:
        issues.append("RAG_CONTEXT_MAX_CHARS must be >= 1")

    return issues
