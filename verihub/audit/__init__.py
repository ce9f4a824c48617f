"""
Audit engine: rule configuration, value extraction, scoring, drift detection
and run orchestration
"""

from .drift import DriftDetector, DriftIssue
from .extractor import ExtractedValues, ValueExtractor, extract_values, normalize_phone
from .rules import DEFAULT_RULES, ScoringRules, load_scoring_rules
from .runner import AuditRunner
from .scoring import (
    AnswerScorer,
    normalize_value,
    score_incorrect,
    score_outdated,
    score_ungrounded,
)

__all__ = [
    "AnswerScorer",
    "AuditRunner",
    "DEFAULT_RULES",
    "DriftDetector",
    "DriftIssue",
    "ExtractedValues",
    "ScoringRules",
    "ValueExtractor",
    "extract_values",
    "load_scoring_rules",
    "normalize_phone",
    "normalize_value",
    "score_incorrect",
    "score_outdated",
    "score_ungrounded",
]
