"""
Rule configuration shared by the answer scorer and the drift detector.

Rules are loaded once per process from ``scoring_rules.yaml`` (deep-merged over
the defaults below) and passed explicitly to the components that read them.
The scorer and the drift detector deliberately keep separate risk tables:
``risk_weights`` is a 1-5 scale divided by 5, ``drift.risk_multipliers`` is a
direct multiplier around 1.0.
"""

import logging
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..utils.config import merge_dicts, read_yaml_mapping

logger = logging.getLogger(__name__)

MIN_SEVERITY = 0
MAX_SEVERITY = 10


DEFAULT_RULES: Dict[str, Any] = {
    "version": 1,
    "risk_weights": {
        "deadline": 5,
        "eligibility": 5,
        "location": 4,
        "contact": 4,
        "docs": 4,
        "fees": 3,
        "hours": 3,
        "general": 1,
    },
    "ungrounded": {
        "base_severity": 6,
        "require_citation_marker": True,
        "citation_markers": ["[SRC:", "Source:", "Sources:"],
        "fact_prefix_length": 20,
    },
    "incorrect": {
        "base_severity": 8,
        "numeric_key_markers": ["deadline", "days", "fee", "eur"],
        "time_key_markers": ["hours", "opening"],
        "url_key_markers": ["url", "link"],
    },
    "outdated": {
        "base_severity": 5,
        "stale_after_days": 180,
    },
    "drift": {
        "base_severity": 7,
        "compare_fields": ["phone", "url", "email", "hours", "deadline_days", "amount", "address"],
        "patterns": {
            "phone": r"(\+?\d{1,3}(?:[\s.-]?(?:\(\d{1,4}\)|\d)){6,})",
            "url": r"(https?://[^\s)\]]+)",
            "email": r"([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})",
            "time_range": r"(\d{1,2}:\d{2}\s*(?:-|à|a|tot)\s*\d{1,2}:\d{2})",
            "days": r"(\d{1,3})\s*(?:jours|jour|dagen|dag|days|day)\b",
            "amount": r"(\d+(?:[.,]\d+)?)\s*EUR",
            "postal_code": r"\b(\d{4})\b",
        },
        "risk_multipliers": {
            "deadline": 1.5,
            "eligibility": 1.4,
            "fees": 1.3,
            "contact": 1.2,
            "location": 1.1,
            "docs": 1.2,
            "hours": 1.0,
            "general": 0.8,
        },
    },
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp_severity(value: int) -> int:
    return max(MIN_SEVERITY, min(MAX_SEVERITY, value))


class UngroundedRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_severity: int = Field(6, ge=0)
    require_citation_marker: bool = True
    citation_markers: List[str] = Field(default_factory=list)
    fact_prefix_length: int = Field(20, ge=1)


class IncorrectRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_severity: int = Field(8, ge=0)
    numeric_key_markers: List[str] = Field(default_factory=list)
    time_key_markers: List[str] = Field(default_factory=list)
    url_key_markers: List[str] = Field(default_factory=list)


class OutdatedRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_severity: int = Field(5, ge=0)
    stale_after_days: int = Field(180, ge=0)


class DriftRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_severity: int = Field(7, ge=0)
    compare_fields: List[str] = Field(default_factory=list)
    patterns: Dict[str, str] = Field(default_factory=dict)
    risk_multipliers: Dict[str, float] = Field(default_factory=dict)

    @field_validator("patterns")
    @classmethod
    def _patterns_compile(cls, patterns: Dict[str, str]) -> Dict[str, str]:
        for name, pattern in patterns.items():
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid regex for pattern '{name}': {e}") from e
        return patterns


class ScoringRules(BaseModel):
    """Immutable rule set read by the scorer and the drift detector"""
    model_config = ConfigDict(frozen=True)

    version: int = 1
    risk_weights: Dict[str, float] = Field(default_factory=dict)
    ungrounded: UngroundedRules = Field(default_factory=UngroundedRules)
    incorrect: IncorrectRules = Field(default_factory=IncorrectRules)
    outdated: OutdatedRules = Field(default_factory=OutdatedRules)
    drift: DriftRules = Field(default_factory=DriftRules)

    @classmethod
    def defaults(cls) -> "ScoringRules":
        return cls.model_validate(DEFAULT_RULES)

    def risk_weight(self, risk_tag: Any) -> float:
        """Scorer weight (1-5 scale) for a risk tag; unknown tags weigh 1."""
        return float(self.risk_weights.get(_tag_name(risk_tag), 1))

    def drift_multiplier(self, risk_tag: Any) -> float:
        """Drift multiplier for a risk tag; unknown tags use 1.0."""
        return float(self.drift.risk_multipliers.get(_tag_name(risk_tag), 1.0))

    def finding_severity(self, base_severity: int, risk_tag: Any) -> int:
        """Severity of a scorer finding: round(base * weight / 5), clamped to 0-10."""
        return clamp_severity(round_half_up(base_severity * self.risk_weight(risk_tag) / 5))

    def drift_severity(self, risk_tag: Any) -> int:
        """Severity of a drift finding: round(base * multiplier), clamped to 0-10."""
        return clamp_severity(round_half_up(self.drift.base_severity * self.drift_multiplier(risk_tag)))

    def compares(self, field: str) -> bool:
        return field in self.drift.compare_fields


def _tag_name(risk_tag: Any) -> str:
    return getattr(risk_tag, "value", risk_tag)


def load_scoring_rules(rules_path: Optional[Path] = None) -> ScoringRules:
    """
    Load scoring rules from a YAML file, falling back to the built-in defaults.

    Args:
        rules_path: Path to a rules YAML file; None selects the defaults

    Returns:
        ScoringRules with file values deep-merged over DEFAULT_RULES
    """
    if rules_path is None:
        logger.debug("No scoring rules file configured, using defaults")
        return ScoringRules.defaults()

    rules_path = Path(rules_path)
    if not rules_path.exists():
        logger.warning(f"Scoring rules not found: {rules_path}, using defaults")
        return ScoringRules.defaults()

    file_rules = read_yaml_mapping(rules_path)
    if file_rules is None:
        return ScoringRules.defaults()

    try:
        rules = ScoringRules.model_validate(merge_dicts(DEFAULT_RULES, file_rules))
    except ValidationError as e:
        logger.error(f"Invalid scoring rules in {rules_path}, using defaults: {e}")
        return ScoringRules.defaults()

    logger.info(f"Loaded scoring rules v{rules.version} from {rules_path}")
    return rules
