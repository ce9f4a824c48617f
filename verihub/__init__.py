"""VeriHub: FR/NL assistant answer audit engine."""

__version__ = "0.1.0"
__author__ = "verihub"

from .audit import AnswerScorer, AuditRunner, DriftDetector, ScoringRules, load_scoring_rules
from .models import Answer, AuditRun, AuditStatus, Fact, Finding, FindingType, Language, Question, RiskTag
from .storage import MemoryStorage, SqliteStorage

__all__ = [
    "AnswerScorer",
    "AuditRunner",
    "DriftDetector",
    "ScoringRules",
    "load_scoring_rules",
    "Answer",
    "AuditRun",
    "AuditStatus",
    "Fact",
    "Finding",
    "FindingType",
    "Language",
    "Question",
    "RiskTag",
    "MemoryStorage",
    "SqliteStorage",
]
