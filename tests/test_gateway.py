"""
Provider gateway: bounded, fail-soft access to embedding and completion providers.
"""

import threading
import time

import numpy as np
import pytest
from unittest.mock import MagicMock

from lessonrag.providers.gateway import APOLOGY_TEXT, ProviderGateway, ProviderResult
from lessonrag.vector.embeddings import DeterministicHashEmbedding


@pytest.fixture
def gateway():
    gateway = ProviderGateway(
        embedding_provider=DeterministicHashEmbedding(dimension=32),
        completion_provider=None,
        dimension=32,
        timeout_sec=2.0,
        seed=7,
    )
    yield gateway
    gateway.close()


def test_provider_result_variants():
    assert ProviderResult.success(3).ok
    failure = ProviderResult.failure("boom")
    assert not failure.ok
    assert failure.error == "boom"


def test_embed_returns_real_vector(gateway):
    result = gateway.embed("temperature controls randomness")

    assert not result.degraded
    assert result.reason is None
    assert result.vector.shape == (32,)
    assert np.array_equal(result.vector, np.asarray(DeterministicHashEmbedding(32).embed_text(
        "temperature controls randomness")))


def test_embed_failure_degrades_to_random_vector():
    """A raising provider yields a tagged random vector of the configured dimension."""
    provider = MagicMock()
    provider.embed_text.side_effect = ConnectionError("connection refused")
    gateway = ProviderGateway(embedding_provider=provider, dimension=16, seed=1)

    try:
        result = gateway.embed("anything")
    finally:
        gateway.close()

    assert result.degraded
    assert "ConnectionError" in result.reason
    assert result.vector.shape == (16,)
    assert np.all(np.abs(result.vector) <= 0.5)


def test_embed_without_provider_degrades():
    gateway = ProviderGateway(embedding_provider=None, dimension=8)
    try:
        assert not gateway.try_embed("x").ok
        result = gateway.embed("x")
    finally:
        gateway.close()

    assert result.degraded
    assert result.vector.shape == (8,)


def test_embed_timeout_is_bounded():
    """A provider that never answers is cut off at the timeout."""
    release = threading.Event()
    provider = MagicMock()
    provider.embed_text.side_effect = lambda text: release.wait(5) or [1.0, 2.0]
    gateway = ProviderGateway(embedding_provider=provider, dimension=4, timeout_sec=0.05)

    try:
        result = gateway.try_embed("slow")
        degraded = gateway.embed("slow")
    finally:
        release.set()
        gateway.close()

    assert not result.ok
    assert "timeout" in result.error
    assert degraded.degraded
    assert degraded.vector.shape == (4,)


def test_first_real_embedding_fixes_dimension():
    """The configured dimension is replaced by the first real embedding; later mismatches fail."""
    provider = MagicMock()
    provider.embed_text.side_effect = [[1.0, 2.0, 3.0], [1.0, 2.0]]
    gateway = ProviderGateway(embedding_provider=provider, dimension=768)

    try:
        first = gateway.try_embed("a")
        second = gateway.try_embed("b")
    finally:
        gateway.close()

    assert first.ok
    assert gateway.dimension == 3
    assert not second.ok
    assert "dimension" in second.error


def test_malformed_embedding_is_a_failure():
    provider = MagicMock()
    provider.embed_text.return_value = []
    gateway = ProviderGateway(embedding_provider=provider, dimension=4)

    try:
        assert not gateway.try_embed("a").ok
    finally:
        gateway.close()


def test_complete_returns_provider_text():
    provider = MagicMock()
    provider.complete.return_value = "Lower temperatures are more focused."
    gateway = ProviderGateway(completion_provider=provider)

    try:
        answer = gateway.complete("system", [{"role": "user", "content": "hi"}], temperature=0.3, max_tokens=50)
    finally:
        gateway.close()

    assert answer == "Lower temperatures are more focused."
    provider.complete.assert_called_once_with(
        "system", [{"role": "user", "content": "hi"}], temperature=0.3, max_tokens=50
    )


def test_complete_failure_returns_apology():
    """Provider errors, empty replies and a missing provider all become the apology text."""
    raising = MagicMock()
    raising.complete.side_effect = RuntimeError("model not loaded")
    empty = MagicMock()
    empty.complete.return_value = "   "

    for provider in (raising, empty, None):
        gateway = ProviderGateway(completion_provider=provider)
        try:
            assert not gateway.try_complete("system", []).ok
            assert gateway.complete("system", []) == APOLOGY_TEXT
        finally:
            gateway.close()


def test_complete_timeout_returns_apology():
    """A completion provider that hangs is cut off at the timeout and answered with the apology."""
    release = threading.Event()
    provider = MagicMock()
    provider.complete.side_effect = lambda *args, **kwargs: release.wait(5) or "too late"
    gateway = ProviderGateway(completion_provider=provider, timeout_sec=0.05)

    try:
        start = time.perf_counter()
        result = gateway.try_complete("system", [{"role": "user", "content": "hi"}])
        answer = gateway.complete("system", [{"role": "user", "content": "hi"}])
        elapsed = time.perf_counter() - start
    finally:
        release.set()
        gateway.close()

    assert not result.ok
    assert "timeout" in result.error
    assert answer == APOLOGY_TEXT
    assert elapsed < 2.0


def test_status_does_not_call_providers():
    embedder = MagicMock()
    embedder.name = "MockEmbedder"
    completer = MagicMock()
    gateway = ProviderGateway(embedding_provider=embedder, completion_provider=completer, dimension=12)

    try:
        status = gateway.status()
    finally:
        gateway.close()

    assert status["embedding_provider"] == "MockEmbedder"
    assert status["embedding_dimension"] == 12
    embedder.embed_text.assert_not_called()
    completer.complete.assert_not_called()
