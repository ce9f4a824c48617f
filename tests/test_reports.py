"""
Tests for dashboard metrics and run comparison.
"""

from datetime import datetime, timedelta, timezone

import pytest

from verihub.audit import AuditRunner
from verihub.models import AuditRun, Finding, FindingType, Language, ProviderId
from verihub.reports import compare_runs, count_by_type, dashboard_metrics, severity_band

from conftest import FRESH_AS_OF

SEED_SET_ID = "qs_demoville_fr_nl_v2"


def _finding(run_id, question_id, finding_type, severity, lang=Language.FR):
    return Finding(audit_run_id=run_id, question_id=question_id, lang=lang, type=finding_type, severity=severity)


class TestSeverityBands:

    @pytest.mark.parametrize("severity,band", [
        (10, "critical"), (8, "critical"), (7, "high"), (6, "high"),
        (5, "medium"), (4, "medium"), (3, "low"), (0, "low"),
    ])
    def test_band(self, severity, band):
        assert severity_band(severity) == band


class TestDashboardMetrics:

    def test_empty_storage(self, storage):
        metrics = dashboard_metrics(storage)
        assert metrics.total_findings == 0
        assert metrics.total_audit_runs == 0
        assert metrics.last_run_date is None
        assert metrics.findings_by_type == {t: 0 for t in FindingType}

    def test_counts(self, storage):
        now = datetime.now(timezone.utc)
        storage.create_audit_run(AuditRun(question_set_id="qs", created_at=now - timedelta(days=1)))
        latest = storage.create_audit_run(AuditRun(question_set_id="qs", created_at=now))
        for i, severity in enumerate([9, 8, 6, 5, 4, 2, 1]):
            lang = Language.FR if i % 2 == 0 else Language.NL
            storage.create_finding(_finding(latest.id, f"q{i}", FindingType.INCORRECT, severity, lang))
        storage.create_finding(_finding(latest.id, "qd", FindingType.DRIFT, 10))

        metrics = dashboard_metrics(storage)

        assert metrics.total_findings == 8
        assert metrics.total_audit_runs == 2
        assert metrics.last_run_date == latest.created_at
        assert metrics.findings_by_type[FindingType.INCORRECT] == 7
        assert metrics.findings_by_type[FindingType.DRIFT] == 1
        assert metrics.findings_by_severity.model_dump() == {"critical": 3, "high": 1, "medium": 2, "low": 2}
        assert metrics.findings_by_lang == {Language.FR: 5, Language.NL: 3}
        assert [f.severity for f in metrics.top_severity_findings] == [10, 9, 8, 6, 5]


class TestCompareRuns:

    def test_missing_run(self, storage):
        run = storage.create_audit_run(AuditRun(question_set_id="qs"))
        assert compare_runs(storage, run.id, "missing") is None
        assert compare_runs(storage, "missing", run.id) is None

    def test_new_and_resolved_keyed_on_question_type_lang(self, storage):
        baseline = storage.create_audit_run(AuditRun(question_set_id="qs"))
        current = storage.create_audit_run(AuditRun(question_set_id="qs"))
        storage.create_finding(_finding(baseline.id, "q1", FindingType.INCORRECT, 8))
        storage.create_finding(_finding(baseline.id, "q2", FindingType.UNGROUNDED, 5))
        # Same question and type with a different severity is still the same finding
        storage.create_finding(_finding(current.id, "q1", FindingType.INCORRECT, 6))
        storage.create_finding(_finding(current.id, "q2", FindingType.UNGROUNDED, 5, Language.NL))

        comparison = compare_runs(storage, baseline.id, current.id)

        assert [f.question_id for f in comparison.resolved_findings] == ["q2"]
        assert [(f.question_id, f.lang) for f in comparison.new_findings] == [("q2", Language.NL)]
        changes = {c.type: c.change for c in comparison.improvements}
        assert changes == {t: 0 for t in FindingType}

    def test_seeded_baseline_vs_improved(self, seeded_storage, rules):
        runner = AuditRunner(seeded_storage, rules)
        baseline = seeded_storage.create_audit_run(AuditRun(question_set_id=SEED_SET_ID))
        runner.run(baseline.id, as_of=FRESH_AS_OF)
        after = seeded_storage.create_audit_run(AuditRun(question_set_id=SEED_SET_ID,
                                                         provider=ProviderId.MOCK_AFTER,
                                                         baseline_run_id=baseline.id))
        runner.run(after.id, as_of=FRESH_AS_OF)

        comparison = compare_runs(seeded_storage, baseline.id, after.id)

        assert comparison.baseline_counts == count_by_type(seeded_storage.list_findings_by_run(baseline.id))
        assert sum(comparison.current_counts.values()) == 0
        assert {c.type: c.change for c in comparison.improvements} == {
            FindingType.INCORRECT: -3,
            FindingType.OUTDATED: 0,
            FindingType.UNGROUNDED: -3,
            FindingType.DRIFT: -3,
        }
        assert comparison.new_findings == []
        assert len(comparison.resolved_findings) == 9
