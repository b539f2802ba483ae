"""
Semantic retrieval and retrieval-augmented answers over a lesson library.
"""

from .core.config import VERSION

__version__ = VERSION
