"""Interfaces for pluggable answer providers."""

import logging
from pathlib import Path
from typing import Optional, Protocol

from ..models import ProviderAnswer, ProviderId, Question
from .live import PlaceholderLLMProvider
from .mock import MockAnswerProvider

logger = logging.getLogger(__name__)


class AnswerProvider(Protocol):
    """Protocol for backends that answer audit questions."""

    name: str

    def get_answer(self, question: Question) -> ProviderAnswer:
        ...


def create_provider(provider_id, data_dir: Optional[Path] = None) -> AnswerProvider:
    """
    Build the provider an audit run was created with.

    Args:
        provider_id: A ProviderId or its string value
        data_dir: Directory holding the mock answer files; None uses the packaged data

    Raises:
        ValueError: If provider_id is not a known provider
    """
    try:
        provider_id = ProviderId(provider_id)
    except ValueError:
        raise ValueError(f"Unknown provider: {provider_id}") from None

    if provider_id == ProviderId.OPENAI:
        return PlaceholderLLMProvider()

    logger.debug(f"Creating mock provider {provider_id.value}")
    return MockAnswerProvider.from_seed(provider_id.value, data_dir)
