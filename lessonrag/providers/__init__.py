"""
External model access: completion providers and the fail-soft provider gateway.
"""

from .completion import ICompletionProvider, OllamaCompletionProvider, MockCompletionProvider
from .gateway import ProviderGateway, ProviderResult, EmbeddingResult, APOLOGY_TEXT

__all__ = [
    'ICompletionProvider',
    'OllamaCompletionProvider',
    'MockCompletionProvider',
    'ProviderGateway',
    'ProviderResult',
    'EmbeddingResult',
    'APOLOGY_TEXT',
]
