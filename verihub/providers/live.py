"""Placeholder for a hosted LLM backend."""

from ..errors import ProviderUnavailableError
from ..models import ProviderAnswer, Question


class PlaceholderLLMProvider:
    """Stands in for a live model; every call fails until a backend is wired."""

    name = "openai"

    def get_answer(self, question: Question) -> ProviderAnswer:
        raise ProviderUnavailableError(
            f"Live LLM provider is not configured (question {question.id})"
        )
