"""
Loading of the packaged seed data: facts, the demo question set and the
canned answers used by the mock providers.
"""

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .errors import SeedDataError
from .models import Fact, Language, ProviderAnswer, Question, QuestionSet

logger = logging.getLogger(__name__)

PACKAGE_DATA_DIR = Path(__file__).parent / "data"

FACTS_FILE = "facts_seed.json"
QUESTION_SET_FILE = "question_set_demoville_fr_nl.json"
RULES_FILE = "scoring_rules.yaml"
MOCK_ANSWER_FILES = {
    "mock-baseline": "mock_llm_answers_baseline.json",
    "mock-after": "mock_llm_answers_after.json",
}


def resolve_data_dir(data_dir: Optional[Path] = None) -> Path:
    return Path(data_dir) if data_dir else PACKAGE_DATA_DIR


def default_rules_path(data_dir: Optional[Path] = None) -> Path:
    return resolve_data_dir(data_dir) / RULES_FILE


def _read_json(path: Path) -> Optional[Any]:
    """Parse a JSON seed file; a missing file is reported and yields None."""
    if not path.exists():
        logger.warning(f"Seed file not found: {path}")
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise SeedDataError(f"Invalid JSON in seed file {path}: {e}") from e


def load_facts_seed(data_dir: Optional[Path] = None) -> List[Fact]:
    payload = _read_json(resolve_data_dir(data_dir) / FACTS_FILE)
    if payload is None:
        return []
    try:
        facts = [Fact.model_validate(item) for item in payload]
    except (ValidationError, TypeError) as e:
        raise SeedDataError(f"Invalid fact seed: {e}") from e
    return link_fact_pairs(facts)


def link_fact_pairs(facts: List[Fact]) -> List[Fact]:
    """
    Point each FR fact at its NL counterpart and vice versa.

    Only keys with exactly one fact per language are linked, and existing
    links are left alone.
    """
    by_key: Dict[str, Dict[Language, List[Fact]]] = defaultdict(lambda: defaultdict(list))
    for fact in facts:
        by_key[fact.key][fact.lang].append(fact)

    linked: Dict[str, str] = {}
    for group in by_key.values():
        fr_facts = group.get(Language.FR, [])
        nl_facts = group.get(Language.NL, [])
        if len(fr_facts) == 1 and len(nl_facts) == 1:
            linked[fr_facts[0].id] = nl_facts[0].id
            linked[nl_facts[0].id] = fr_facts[0].id

    return [
        fact if fact.linked_fact_id or fact.id not in linked
        else fact.model_copy(update={"linked_fact_id": linked[fact.id]})
        for fact in facts
    ]


def load_question_set_seed(data_dir: Optional[Path] = None) -> Optional[Tuple[QuestionSet, List[Question]]]:
    """Return the seeded question set and its questions in file order."""
    payload = _read_json(resolve_data_dir(data_dir) / QUESTION_SET_FILE)
    if payload is None:
        return None

    try:
        question_set = QuestionSet(
            id=payload["question_set_id"],
            title=payload["title"],
            version=payload.get("version", "1.0"),
            languages=payload.get("languages", ["fr", "nl"]),
            topics=payload.get("topics", []),
        )
        questions = [
            Question.model_validate({**item, "question_set_id": question_set.id})
            for item in payload.get("questions", [])
        ]
    except (KeyError, TypeError, ValidationError) as e:
        raise SeedDataError(f"Invalid question set seed: {e}") from e

    return question_set, questions


def load_mock_answers(provider_id: str, data_dir: Optional[Path] = None) -> Dict[str, ProviderAnswer]:
    """Canned answers for a mock provider, keyed by question id."""
    file_name = MOCK_ANSWER_FILES.get(str(provider_id))
    if file_name is None:
        raise ValueError(f"No mock answers for provider: {provider_id}")

    payload = _read_json(resolve_data_dir(data_dir) / file_name)
    if payload is None:
        return {}
    try:
        return {qid: ProviderAnswer.model_validate(item) for qid, item in payload.items()}
    except (AttributeError, ValidationError) as e:
        raise SeedDataError(f"Invalid mock answers in {file_name}: {e}") from e


def seed_storage(storage, data_dir: Optional[Path] = None) -> bool:
    """
    Populate an empty storage with the seed facts and question set.

    Returns:
        True when data was written, False when storage already held data
    """
    if not storage.is_empty():
        logger.debug("Storage already populated, skipping seed")
        return False

    facts = load_facts_seed(data_dir)
    for fact in facts:
        storage.create_fact(fact)

    loaded = load_question_set_seed(data_dir)
    question_count = 0
    if loaded is not None:
        question_set, questions = loaded
        storage.create_question_set(question_set)
        for question in questions:
            storage.create_question(question)
        question_count = len(questions)

    logger.info(f"Seeded {len(facts)} facts and {question_count} questions")
    return True
