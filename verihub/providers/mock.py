"""Deterministic providers replaying canned answers."""

from pathlib import Path
from typing import Dict, Optional

from ..models import Language, ProviderAnswer, Question
from ..seed import load_mock_answers

FALLBACK_ANSWERS: Dict[Language, str] = {
    Language.FR: 'Je ne dispose pas d\'informations specifiques pour repondre a cette question sur "{topic}".',
    Language.NL: 'Ik heb geen specifieke informatie om deze vraag over "{topic}" te beantwoorden.',
}


class MockAnswerProvider:
    """Looks answers up by question id; unknown questions get a fallback sentence."""

    def __init__(self, name: str, answers: Dict[str, ProviderAnswer]):
        self.name = name
        self._answers = answers

    @classmethod
    def from_seed(cls, name: str, data_dir: Optional[Path] = None) -> "MockAnswerProvider":
        return cls(name, load_mock_answers(name, data_dir))

    def get_answer(self, question: Question) -> ProviderAnswer:
        answer = self._answers.get(question.id)
        if answer is not None:
            return answer.model_copy(deep=True)

        template = FALLBACK_ANSWERS.get(Language(question.lang), FALLBACK_ANSWERS[Language.FR])
        return ProviderAnswer(answer_text=template.format(topic=question.topic), citations=[])
