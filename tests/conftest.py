"""Shared fixtures for the audit engine tests."""

from datetime import date

import pytest

from verihub.audit import ScoringRules
from verihub.models import Fact, Language, Question, RiskTag
from verihub.seed import seed_storage
from verihub.storage import MemoryStorage

# Seed facts were verified in January 2025; this keeps them fresh
FRESH_AS_OF = date(2025, 3, 1)


def make_fact(key: str, value: str, lang: str = "fr", topic: str = None,
              last_verified: date = date(2025, 1, 15), **kwargs) -> Fact:
    return Fact(key=key, lang=Language(lang), value=value, source_ref="/data/sources/test.md",
                last_verified=last_verified, topic=topic, **kwargs)


def make_question(qid: str, lang: str, topic: str, fact_key: str = None,
                  risk_tag: str = None, question_set_id: str = "qs_test") -> Question:
    return Question(
        id=qid,
        question_set_id=question_set_id,
        lang=Language(lang),
        topic=topic,
        risk_tag=RiskTag(risk_tag or topic),
        text=f"Question about {topic}?",
        expected_fact_keys=[fact_key] if fact_key else [],
    )


@pytest.fixture
def rules() -> ScoringRules:
    return ScoringRules.defaults()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def seeded_storage() -> MemoryStorage:
    storage = MemoryStorage()
    seed_storage(storage)
    return storage
