"""
Aggregated views over stored findings: dashboard metrics and run comparison
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from .models import (
    Comparison,
    DashboardMetrics,
    Finding,
    FindingType,
    Language,
    SeverityBands,
    TypeChange,
)

TOP_FINDINGS_LIMIT = 5

FindingKey = Tuple[str, FindingType, Language]


def severity_band(severity: int) -> str:
    if severity >= 8:
        return "critical"
    if severity >= 6:
        return "high"
    if severity >= 4:
        return "medium"
    return "low"


def count_by_type(findings: Iterable[Finding]) -> Dict[FindingType, int]:
    """Finding counts per type; every type is present, zero when absent."""
    counts = Counter(f.type for f in findings)
    return {finding_type: counts.get(finding_type, 0) for finding_type in FindingType}


def dashboard_metrics(storage) -> DashboardMetrics:
    findings = storage.list_findings()
    runs = storage.list_audit_runs()

    bands = Counter(severity_band(f.severity) for f in findings)
    by_lang = Counter(f.lang for f in findings)

    return DashboardMetrics(
        total_findings=len(findings),
        findings_by_type=count_by_type(findings),
        findings_by_severity=SeverityBands(**bands),
        findings_by_lang={lang: by_lang.get(lang, 0) for lang in Language},
        top_severity_findings=sorted(findings, key=lambda f: f.severity, reverse=True)[:TOP_FINDINGS_LIMIT],
        last_run_date=runs[0].created_at if runs else None,
        total_audit_runs=len(runs),
    )


def _finding_key(finding: Finding) -> FindingKey:
    return finding.question_id, finding.type, finding.lang


def compare_runs(storage, baseline_run_id: str, current_run_id: str) -> Optional[Comparison]:
    """
    Compare the findings of two runs.

    A finding is matched across runs on (question id, type, language).

    Returns:
        The comparison, or None when either run does not exist
    """
    baseline_run = storage.get_audit_run(baseline_run_id)
    current_run = storage.get_audit_run(current_run_id)
    if baseline_run is None or current_run is None:
        return None

    baseline_findings = storage.list_findings_by_run(baseline_run_id)
    current_findings = storage.list_findings_by_run(current_run_id)

    baseline_counts = count_by_type(baseline_findings)
    current_counts = count_by_type(current_findings)

    baseline_keys = {_finding_key(f) for f in baseline_findings}
    current_keys = {_finding_key(f) for f in current_findings}

    new_findings: List[Finding] = [f for f in current_findings if _finding_key(f) not in baseline_keys]
    resolved_findings: List[Finding] = [f for f in baseline_findings if _finding_key(f) not in current_keys]

    return Comparison(
        baseline_run_id=baseline_run_id,
        current_run_id=current_run_id,
        baseline_date=baseline_run.created_at,
        current_date=current_run.created_at,
        baseline_counts=baseline_counts,
        current_counts=current_counts,
        improvements=[
            TypeChange(type=finding_type, change=current_counts[finding_type] - baseline_counts[finding_type])
            for finding_type in FindingType
        ],
        new_findings=new_findings,
        resolved_findings=resolved_findings,
    )
