"""
Answer providers queried by audit runs
"""

from .base import AnswerProvider, create_provider
from .live import PlaceholderLLMProvider
from .mock import FALLBACK_ANSWERS, MockAnswerProvider

__all__ = [
    "AnswerProvider",
    "create_provider",
    "MockAnswerProvider",
    "PlaceholderLLMProvider",
    "FALLBACK_ANSWERS",
]
