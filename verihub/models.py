"""
Data models for the fact base, audit runs and their findings
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .errors import StatusTransitionError


class Language(str, Enum):
    """Languages audited side by side"""
    FR = "fr"
    NL = "nl"


class RiskTag(str, Enum):
    """Real-world consequence category of getting a question wrong"""
    DEADLINE = "deadline"
    ELIGIBILITY = "eligibility"
    LOCATION = "location"
    CONTACT = "contact"
    DOCS = "docs"
    FEES = "fees"
    HOURS = "hours"
    GENERAL = "general"


class FindingType(str, Enum):
    """Categories of quality issues flagged by an audit"""
    INCORRECT = "incorrect"
    OUTDATED = "outdated"
    UNGROUNDED = "ungrounded"
    DRIFT = "drift"


class AuditStatus(str, Enum):
    """Lifecycle of an audit run"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProviderId(str, Enum):
    """Answer providers an audit run can be created with"""
    MOCK_BASELINE = "mock-baseline"
    MOCK_AFTER = "mock-after"
    OPENAI = "openai"


# Forward-only state machine; completed and failed are terminal
ALLOWED_TRANSITIONS: Dict[AuditStatus, frozenset] = {
    AuditStatus.PENDING: frozenset({AuditStatus.RUNNING}),
    AuditStatus.RUNNING: frozenset({AuditStatus.COMPLETED, AuditStatus.FAILED}),
    AuditStatus.COMPLETED: frozenset(),
    AuditStatus.FAILED: frozenset(),
}


def check_transition(current: AuditStatus, requested: AuditStatus) -> None:
    """Raise StatusTransitionError unless current -> requested is allowed."""
    current = AuditStatus(current)
    requested = AuditStatus(requested)
    if requested == current and not ALLOWED_TRANSITIONS[current]:
        return
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise StatusTransitionError(current.value, requested.value)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Fact(BaseModel):
    """A verified piece of ground truth in one language"""
    id: str = Field(default_factory=_new_id)
    key: str = Field(description="Semantic identifier shared across languages")
    lang: Language
    value: str
    source_ref: str = ""
    last_verified: date
    linked_fact_id: Optional[str] = Field(None, description="Id of the same fact in the other language")
    topic: Optional[str] = None


class QuestionSet(BaseModel):
    """A versioned collection of audit questions"""
    id: str = Field(default_factory=_new_id)
    title: str
    languages: List[Language] = Field(default_factory=lambda: [Language.FR, Language.NL])
    topics: List[str] = Field(default_factory=list)
    version: str = "1.0"


class Question(BaseModel):
    """A single question asked to the answer provider"""
    id: str = Field(default_factory=_new_id)
    question_set_id: str
    lang: Language
    topic: str
    risk_tag: RiskTag
    text: str
    expected_fact_keys: List[str] = Field(
        default_factory=list,
        description="Fact keys the answer should ground on; the first one pairs FR/NL answers"
    )

    @property
    def pairing_key(self) -> Optional[str]:
        return self.expected_fact_keys[0] if self.expected_fact_keys else None


class ProviderAnswer(BaseModel):
    """Raw response returned by an answer provider"""
    answer_text: str
    citations: List[str] = Field(default_factory=list)


class Answer(BaseModel):
    """A provider's answer to one question within one audit run"""
    id: str = Field(default_factory=_new_id)
    audit_run_id: str
    question_id: str
    lang: Language
    answer_text: str
    citations: List[str] = Field(default_factory=list)


class Finding(BaseModel):
    """A scored quality issue tied to one question in one audit run"""
    id: str = Field(default_factory=_new_id)
    audit_run_id: str
    question_id: str
    lang: Language
    type: FindingType
    severity: int = Field(ge=0, le=10)
    evidence: Dict[str, Any] = Field(default_factory=dict)
    suggested_fix: Optional[str] = None


class AuditRun(BaseModel):
    """One execution of an audit over a question set"""
    id: str = Field(default_factory=_new_id)
    question_set_id: str
    provider: ProviderId = ProviderId.MOCK_BASELINE
    status: AuditStatus = AuditStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)
    baseline_run_id: Optional[str] = None


class AuditRunRequest(BaseModel):
    """Payload accepted when creating an audit run"""
    question_set_id: str
    provider: ProviderId = ProviderId.MOCK_BASELINE
    baseline_run_id: Optional[str] = None


class FactInput(BaseModel):
    """Payload accepted when creating a fact"""
    key: str
    lang: Language
    value: str
    source_ref: str
    last_verified: date
    linked_fact_id: Optional[str] = None
    topic: Optional[str] = None


class FactUpdate(BaseModel):
    """Partial update of a fact; unset fields are left untouched"""
    key: Optional[str] = None
    lang: Optional[Language] = None
    value: Optional[str] = None
    source_ref: Optional[str] = None
    last_verified: Optional[date] = None
    linked_fact_id: Optional[str] = None
    topic: Optional[str] = None


class SeverityBands(BaseModel):
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class DashboardMetrics(BaseModel):
    """Aggregated view over every finding and run in storage"""
    total_findings: int
    findings_by_type: Dict[FindingType, int]
    findings_by_severity: SeverityBands
    findings_by_lang: Dict[Language, int]
    top_severity_findings: List[Finding]
    last_run_date: Optional[datetime] = None
    total_audit_runs: int


class TypeChange(BaseModel):
    type: FindingType
    change: int


class Comparison(BaseModel):
    """Finding-level difference between a baseline run and a current run"""
    baseline_run_id: str
    current_run_id: str
    baseline_date: datetime
    current_date: datetime
    baseline_counts: Dict[FindingType, int]
    current_counts: Dict[FindingType, int]
    improvements: List[TypeChange]
    new_findings: List[Finding]
    resolved_findings: List[Finding]
