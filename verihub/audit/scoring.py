"""
Per-answer scoring: flags ungrounded, incorrect and outdated answers.

Value kinds are inferred from keywords in the fact key (see the ``incorrect``
section of the scoring rules); an answer without an extractable value simply
produces no signal.
"""

import logging
import re
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Union

from ..models import Fact, Finding, FindingType, Question
from .extractor import ValueExtractor, find_integers, find_times, pad_time
from .rules import DEFAULT_RULES, ScoringRules

logger = logging.getLogger(__name__)

DEFAULT_CITATION_MARKERS = tuple(DEFAULT_RULES["ungrounded"]["citation_markers"])
DEFAULT_STALE_AFTER_DAYS = DEFAULT_RULES["outdated"]["stale_after_days"]

_NON_WORD = re.compile(r"[^\w\s]")

DateLike = Union[date, datetime, str]


def normalize_value(value: str) -> str:
    """Lowercase, strip every non-word/non-space character and trim."""
    return _NON_WORD.sub("", (value or "").lower()).strip()


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO-8601 string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def days_since(last_verified: DateLike, as_of: Optional[date] = None) -> int:
    """Whole days elapsed between last_verified and as_of (today by default)."""
    return ((as_of or date.today()) - to_date(last_verified)).days


def score_incorrect(expected: str, actual: str) -> bool:
    """True when two values differ after normalisation."""
    return normalize_value(expected) != normalize_value(actual)


def score_outdated(last_verified: DateLike,
                   stale_after_days: int = DEFAULT_STALE_AFTER_DAYS,
                   as_of: Optional[date] = None) -> bool:
    """True when a fact was last verified more than stale_after_days ago."""
    return days_since(last_verified, as_of) > stale_after_days


def score_ungrounded(answer_text: str,
                     citations: Sequence[str],
                     markers: Iterable[str] = DEFAULT_CITATION_MARKERS) -> bool:
    """True when an answer has no citations and no inline citation marker."""
    if citations:
        return False
    text = answer_text or ""
    return not any(marker in text for marker in markers)


def _mentions(key: str, markers: Iterable[str]) -> bool:
    return any(marker.lower() in key for marker in markers)


class AnswerScorer:
    """Scores one answer against the facts its question expects"""

    def __init__(self, rules: ScoringRules, extractor: Optional[ValueExtractor] = None):
        self.rules = rules
        self.extractor = extractor or ValueExtractor(rules.drift.patterns)

    def expected_facts(self, question: Question, facts: Iterable[Fact]) -> List[Fact]:
        """Facts whose key the question expects, in the question's language."""
        return [
            fact for fact in facts
            if fact.key in question.expected_fact_keys and fact.lang == question.lang
        ]

    def score(self,
              question: Question,
              answer,
              facts: Iterable[Fact],
              run_id: str,
              as_of: Optional[date] = None) -> List[Finding]:
        """
        Score a single answer.

        Args:
            question: The question that was asked
            answer: Anything with ``answer_text`` and ``citations`` attributes
            facts: Fact base; filtered to the question's expected facts
            run_id: Audit run the findings belong to
            as_of: Reference date for staleness (defaults to today)

        Returns:
            Findings in check order: ungrounded, incorrect, outdated
        """
        answer_text = answer.answer_text or ""
        citations = list(answer.citations or [])
        expected = self.expected_facts(question, facts)
        as_of = as_of or date.today()

        findings: List[Finding] = []

        ungrounded = self.check_ungrounded(question, answer_text, citations, expected, run_id)
        if ungrounded:
            findings.append(ungrounded)

        for fact in expected:
            incorrect = self.check_incorrect(question, answer_text, fact, run_id)
            if incorrect:
                findings.append(incorrect)

        for fact in expected:
            outdated = self.check_outdated(question, answer_text, fact, run_id, as_of)
            if outdated:
                findings.append(outdated)

        if findings:
            logger.debug(f"Question {question.id}: {len(findings)} finding(s) "
                         f"({', '.join(f.type.value for f in findings)})")
        return findings

    # -- ungrounded ---------------------------------------------------------

    def is_grounded(self, answer_text: str, citations: Sequence[str], expected: Sequence[Fact]) -> bool:
        rules = self.rules.ungrounded
        if citations:
            return True
        if rules.require_citation_marker and any(m in answer_text for m in rules.citation_markers):
            return True

        text_lower = answer_text.lower()
        for fact in expected:
            prefix = fact.value.lower()[:rules.fact_prefix_length]
            if prefix and prefix in text_lower:
                return True
        return False

    def check_ungrounded(self,
                         question: Question,
                         answer_text: str,
                         citations: Sequence[str],
                         expected: Sequence[Fact],
                         run_id: str) -> Optional[Finding]:
        if self.is_grounded(answer_text, citations, expected):
            return None

        return Finding(
            audit_run_id=run_id,
            question_id=question.id,
            lang=question.lang,
            type=FindingType.UNGROUNDED,
            severity=self.rules.finding_severity(self.rules.ungrounded.base_severity, question.risk_tag),
            evidence={
                "topic": question.topic,
                "reason": "No citations provided and answer does not match verified facts",
                "answer_snippet": answer_text[:100],
            },
            suggested_fix="Add proper citations to sources or update answer to match verified facts",
        )

    # -- incorrect ----------------------------------------------------------

    def detect_incorrect_value(self, fact: Fact, answer_text: str) -> Optional[str]:
        """
        Return the mismatching fragment annotated with the expected value,
        or None when the answer does not contradict the fact.
        """
        rules = self.rules.incorrect
        key = fact.key.lower()

        if _mentions(key, rules.numeric_key_markers):
            fact_numbers = find_integers(fact.value)
            answer_numbers = find_integers(answer_text)
            if fact_numbers and answer_numbers:
                known = {int(n) for n in fact_numbers}
                differing = next((n for n in answer_numbers if int(n) not in known), None)
                if differing is not None:
                    return f"{differing} (expected: {fact_numbers[0]})"

        if _mentions(key, rules.time_key_markers):
            fact_times = find_times(fact.value)
            answer_times = find_times(answer_text)
            if fact_times and answer_times:
                known = {pad_time(t) for t in fact_times}
                if any(pad_time(t) not in known for t in answer_times):
                    return f"{'-'.join(answer_times)} (expected: {'-'.join(fact_times)})"

        if _mentions(key, rules.url_key_markers):
            fact_url = self.extractor.extract_url(fact.value)
            answer_url = self.extractor.extract_url(answer_text)
            if fact_url and answer_url:
                fact_lower, answer_lower = fact_url.lower(), answer_url.lower()
                if fact_lower not in answer_lower and answer_lower not in fact_lower:
                    return f"{answer_url} (expected: {fact_url})"

        return None

    def check_incorrect(self,
                        question: Question,
                        answer_text: str,
                        fact: Fact,
                        run_id: str) -> Optional[Finding]:
        actual = self.detect_incorrect_value(fact, answer_text)
        if actual is None:
            return None

        return Finding(
            audit_run_id=run_id,
            question_id=question.id,
            lang=question.lang,
            type=FindingType.INCORRECT,
            severity=self.rules.finding_severity(self.rules.incorrect.base_severity, question.risk_tag),
            evidence={
                "topic": question.topic,
                "expected_value": fact.value,
                "actual_value": actual,
                "fact_key": fact.key,
            },
            suggested_fix=f"Update the answer to use the correct value: {fact.value}",
        )

    # -- outdated -----------------------------------------------------------

    def detect_outdated_signal(self, fact: Fact, answer_text: str) -> bool:
        """True when the answer carries a value that looks like an older version of the fact."""
        if _mentions(fact.key.lower(), self.rules.incorrect.time_key_markers):
            fact_times = find_times(fact.value)
            answer_times = find_times(answer_text)
            if fact_times and answer_times:
                return pad_time(fact_times[0]) != pad_time(answer_times[0])
        return False

    def check_outdated(self,
                       question: Question,
                       answer_text: str,
                       fact: Fact,
                       run_id: str,
                       as_of: date) -> Optional[Finding]:
        stale_after = self.rules.outdated.stale_after_days
        if not score_outdated(fact.last_verified, stale_after, as_of):
            return None

        if normalize_value(fact.value) in normalize_value(answer_text):
            return None

        if not self.detect_outdated_signal(fact, answer_text):
            return None

        return Finding(
            audit_run_id=run_id,
            question_id=question.id,
            lang=question.lang,
            type=FindingType.OUTDATED,
            severity=self.rules.finding_severity(self.rules.outdated.base_severity, question.risk_tag),
            evidence={
                "topic": question.topic,
                "last_verified": fact.last_verified.isoformat(),
                "days_since_verification": days_since(fact.last_verified, as_of),
                "expected_value": fact.value,
            },
            suggested_fix=(f"Verify and update the fact: {fact.key}. "
                           f"Last verified: {fact.last_verified.isoformat()}"),
        )
