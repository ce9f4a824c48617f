"""
Cross-language drift detection between paired French and Dutch answers
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Union

from ..models import Answer, Finding, FindingType, Language, Question
from .extractor import ExtractedValues, ValueExtractor, strip_language_suffix
from .rules import ScoringRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriftIssue:
    """First divergent field between a French and a Dutch answer"""
    field: str
    fr_value: str
    nl_value: str


def _amount_key(amount: str) -> Decimal:
    # "25", "25,00" and "25.00" are the same amount
    return Decimal(amount.replace(",", "."))


class DriftDetector:
    """Pairs FR/NL answers sharing a fact key and flags diverging values"""

    def __init__(self, rules: ScoringRules, extractor: Optional[ValueExtractor] = None):
        self.rules = rules
        self.extractor = extractor or ValueExtractor(rules.drift.patterns)

    def detect(self,
               run_id: str,
               answers: Iterable[Answer],
               questions: Union[Mapping[str, Question], Iterable[Question]]) -> List[Finding]:
        """
        Detect drift over the complete answer set of one run.

        Args:
            run_id: Audit run the findings belong to
            answers: Every answer of the run
            questions: Questions of the run, as a mapping by id or an iterable

        Returns:
            At most one drift finding per fact key, ordered by fact key
        """
        if not isinstance(questions, Mapping):
            questions = {question.id: question for question in questions}

        groups: Dict[str, Dict[Language, List[tuple]]] = defaultdict(lambda: defaultdict(list))
        for answer in answers:
            question = questions.get(answer.question_id)
            if question is None:
                continue
            fact_key = question.pairing_key
            if not fact_key:
                continue
            groups[fact_key][question.lang].append((answer, question))

        findings: List[Finding] = []
        for fact_key in sorted(groups):
            by_lang = groups[fact_key]
            fr_entries = by_lang.get(Language.FR, [])
            nl_entries = by_lang.get(Language.NL, [])
            if len(fr_entries) != 1 or len(nl_entries) != 1:
                continue

            fr_answer, fr_question = fr_entries[0]
            nl_answer, _ = nl_entries[0]

            issue = self.check_pair(fr_answer.answer_text, nl_answer.answer_text, fr_question.topic)
            if issue is None:
                continue

            findings.append(self._build_finding(run_id, fr_question, fact_key, issue))

        logger.info(f"Drift detection for run {run_id}: {len(groups)} fact key(s), "
                    f"{len(findings)} drift finding(s)")
        return findings

    def check_pair(self, fr_text: str, nl_text: str, topic: str) -> Optional[DriftIssue]:
        """Compare the topic's fields in both answers; the first divergence wins."""
        fr = self.extractor.extract(fr_text)
        nl = self.extractor.extract(nl_text)

        if topic == "contact":
            return (self._compare(fr, nl, "phone", "phone")
                    or self._compare_urls(fr, nl)
                    or self._compare(fr, nl, "email", "email", key=str.lower))
        if topic == "hours":
            return self._compare(fr, nl, "time_range", "hours")
        if topic == "deadline":
            return self._compare(fr, nl, "day_count", "deadline_days", key=int)
        if topic == "fees":
            return self._compare(fr, nl, "amount", "amount", key=_amount_key)
        if topic == "location":
            return self._compare(fr, nl, "postal_code", "address")
        return None

    def _compare(self,
                 fr: ExtractedValues,
                 nl: ExtractedValues,
                 attribute: str,
                 field: str,
                 key=None) -> Optional[DriftIssue]:
        if not self.rules.compares(field):
            return None
        fr_value = getattr(fr, attribute)
        nl_value = getattr(nl, attribute)
        if not fr_value or not nl_value:
            return None
        normalise = key or (lambda value: value)
        if normalise(fr_value) == normalise(nl_value):
            return None
        return DriftIssue(field=field, fr_value=fr_value, nl_value=nl_value)

    def _compare_urls(self, fr: ExtractedValues, nl: ExtractedValues) -> Optional[DriftIssue]:
        if not self.rules.compares("url") or not fr.url or not nl.url:
            return None
        # A language path suffix alone is not drift
        if strip_language_suffix(fr.url) == strip_language_suffix(nl.url):
            return None
        return DriftIssue(field="url", fr_value=fr.url, nl_value=nl.url)

    def _build_finding(self, run_id: str, question: Question, fact_key: str, issue: DriftIssue) -> Finding:
        return Finding(
            audit_run_id=run_id,
            question_id=question.id,
            lang=question.lang,
            type=FindingType.DRIFT,
            severity=self.rules.drift_severity(question.risk_tag),
            evidence={
                "topic": question.topic,
                "fact_key": fact_key,
                "fr_value": issue.fr_value,
                "nl_value": issue.nl_value,
                "field": issue.field,
            },
            suggested_fix=(f'Align FR and NL values for {issue.field}: '
                           f'FR="{issue.fr_value}" vs NL="{issue.nl_value}"'),
        )
