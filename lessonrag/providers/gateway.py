"""
Provider gateway: the single boundary between the engine and external models.

Every embed and complete call runs on a bounded worker pool under a timeout.
``try_embed``/``try_complete`` report Ok/Err; ``embed``/``complete`` never fail
the caller and substitute degraded output instead.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from ..util.logging import logger

APOLOGY_TEXT = "I apologize, but I'm having trouble connecting right now. Please try again in a moment."


@dataclass(frozen=True)
class ProviderResult:
    """Outcome of one provider call: a value, or the reason it failed."""

    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> 'ProviderResult':
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> 'ProviderResult':
        return cls(error=reason)


@dataclass(frozen=True)
class EmbeddingResult:
    """An embedding tagged with whether it came from the model or the degraded path."""

    vector: np.ndarray
    degraded: bool = False
    reason: Optional[str] = None


class ProviderGateway:
    """
    Embedding and completion access with timeouts and fail-soft fallbacks.

    The embedding dimension starts at the configured value and is fixed by
    the first real embedding; later embeddings of another length are failures.
    """

    def __init__(self, embedding_provider=None, completion_provider=None, dimension: int = 768,
                 timeout_sec: float = 20.0, max_workers: int = 4, seed: Optional[int] = None):
        self.embedding_provider = embedding_provider
        self.completion_provider = completion_provider
        self.timeout_sec = timeout_sec
        self._dimension = dimension
        self._dimension_fixed = False
        self._lock = threading.Lock()
        self._rng = np.random.default_rng(seed)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="provider")

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def embedding_configured(self) -> bool:
        return self.embedding_provider is not None

    @property
    def completion_configured(self) -> bool:
        return self.completion_provider is not None

    def _call(self, func: Callable, *args, **kwargs) -> ProviderResult:
        """Run a provider call on the worker pool, bounded by the timeout."""
        future = self._executor.submit(func, *args, **kwargs)
        try:
            return ProviderResult.success(future.result(timeout=self.timeout_sec))
        except FuturesTimeoutError:
            future.cancel()
            return ProviderResult.failure(f"timeout after {self.timeout_sec}s")
        except Exception as e:
            return ProviderResult.failure(f"{type(e).__name__}: {e}")

    def try_embed(self, text: str) -> ProviderResult:
        """Embed ``text`` with the configured provider; Err on any failure."""
        if self.embedding_provider is None:
            return ProviderResult.failure("embedding provider not configured")

        result = self._call(self.embedding_provider.embed_text, text)
        if not result.ok:
            return result

        vector = np.asarray(result.value, dtype=float)
        if vector.ndim != 1 or vector.size == 0:
            return ProviderResult.failure(f"malformed embedding of shape {vector.shape}")

        with self._lock:
            if not self._dimension_fixed:
                self._dimension = vector.size
                self._dimension_fixed = True
            elif vector.size != self._dimension:
                return ProviderResult.failure(
                    f"embedding dimension {vector.size} does not match {self._dimension}"
                )

        return ProviderResult.success(vector)

    def embed(self, text: str, dimension: Optional[int] = None) -> EmbeddingResult:
        """
        Embed ``text``; on failure return a random vector of the right dimension.

        Args:
            text: Passage or query to embed
            dimension: Length of the degraded vector, for callers whose vectors are
                already fixed at a size; defaults to the gateway dimension
        """
        result = self.try_embed(text)
        if result.ok:
            return EmbeddingResult(vector=result.value)

        size = dimension or self._dimension
        logger.log_provider_fallback("embed", result.error, {"dimension": size})
        with self._lock:
            vector = self._rng.random(size) - 0.5
        return EmbeddingResult(vector=vector, degraded=True, reason=result.error)

    def try_complete(self, system_prompt: str, messages: List[Dict[str, str]],
                     temperature: float = 0.7, max_tokens: Optional[int] = None) -> ProviderResult:
        """Generate a completion; Err on any failure, including an empty reply."""
        if self.completion_provider is None:
            return ProviderResult.failure("completion provider not configured")

        result = self._call(
            self.completion_provider.complete,
            system_prompt,
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if result.ok and not (result.value or "").strip():
            return ProviderResult.failure("empty completion")
        return result

    def complete(self, system_prompt: str, messages: List[Dict[str, str]],
                 temperature: float = 0.7, max_tokens: Optional[int] = None) -> str:
        """Generate a completion; on failure return a short apology instead."""
        result = self.try_complete(system_prompt, messages, temperature=temperature, max_tokens=max_tokens)
        if result.ok:
            return result.value

        logger.log_provider_fallback("complete", result.error)
        return APOLOGY_TEXT

    def status(self) -> Dict[str, Any]:
        """Describe the configured providers without calling them."""
        return {
            "embedding_provider": getattr(self.embedding_provider, "name", None) if self.embedding_provider else None,
            "completion_provider": self.completion_provider.__class__.__name__ if self.completion_provider else None,
            "embedding_dimension": self._dimension,
            "timeout_sec": self.timeout_sec,
        }

    def close(self) -> None:
        """Stop accepting provider calls; in-flight calls are left to finish."""
        self._executor.shutdown(wait=False)
