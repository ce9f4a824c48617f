"""
Tests for the Flask HTTP API and tool endpoints.
"""

from unittest.mock import Mock

import pytest

from verihub.audit import AuditRunner
from verihub.models import AuditRun, AuditStatus
from verihub.seed import seed_storage
from verihub.storage import MemoryStorage
from verihub.utils.config import ConfigManager
from verihub.web import create_app

from conftest import FRESH_AS_OF

SEED_SET_ID = "qs_demoville_fr_nl_v2"


@pytest.fixture
def app_parts(rules):
    storage = MemoryStorage()
    seed_storage(storage)
    runner = AuditRunner(storage, rules)
    app = create_app(ConfigManager(), storage=storage, runner=runner)
    app.config["TESTING"] = True
    yield app, storage, runner
    runner.shutdown()


@pytest.fixture
def client(app_parts):
    return app_parts[0].test_client()


@pytest.fixture
def completed_run(app_parts):
    _, storage, runner = app_parts
    run = storage.create_audit_run(AuditRun(question_set_id=SEED_SET_ID))
    runner.run(run.id, as_of=FRESH_AS_OF)
    return run


class TestAppFactory:

    def test_default_app_seeds_storage(self):
        app = create_app()
        storage = app.extensions["verihub"]["storage"]
        assert len(storage.list_facts()) == 14
        app.extensions["verihub"]["runner"].shutdown()

    def test_seed_can_be_disabled(self):
        config = ConfigManager()
        config.set("data.seed_on_start", False)
        app = create_app(config)
        assert app.extensions["verihub"]["storage"].is_empty()


class TestFactRoutes:

    def test_list_facts(self, client):
        response = client.get("/api/facts")
        assert response.status_code == 200
        assert len(response.get_json()) == 14

    def test_create_fact(self, client):
        response = client.post("/api/facts", json={
            "key": "library_hours", "lang": "fr", "value": "10:00-18:00",
            "source_ref": "/data/sources/library.md", "last_verified": "2025-02-01", "topic": "hours",
        })
        assert response.status_code == 201
        fact_id = response.get_json()["id"]
        assert client.get(f"/api/facts/{fact_id}").get_json()["value"] == "10:00-18:00"

    def test_create_fact_validation_error(self, client):
        response = client.post("/api/facts", json={"key": "x", "lang": "de"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid request"

    def test_update_and_delete(self, client):
        fact_id = client.get("/api/facts").get_json()[0]["id"]

        updated = client.put(f"/api/facts/{fact_id}", json={"value": "+32 2 999 99 99"})
        assert updated.status_code == 200
        assert updated.get_json()["value"] == "+32 2 999 99 99"

        assert client.delete(f"/api/facts/{fact_id}").status_code == 204
        assert client.get(f"/api/facts/{fact_id}").status_code == 404
        assert client.delete(f"/api/facts/{fact_id}").status_code == 404

    def test_search(self, client):
        response = client.get("/api/facts/search?q=appointment&lang=fr")
        assert [f["key"] for f in response.get_json()] == ["online_appointment_url"]
        assert client.get("/api/facts/search").status_code == 400


class TestQuestionRoutes:

    def test_question_sets(self, client):
        sets = client.get("/api/question-sets").get_json()
        assert [s["id"] for s in sets] == [SEED_SET_ID]

        detail = client.get(f"/api/question-sets/{SEED_SET_ID}").get_json()
        assert len(detail["questions"]) == 14
        assert client.get("/api/question-sets/nope").status_code == 404

    def test_questions(self, client):
        assert len(client.get("/api/questions").get_json()) == 14
        assert len(client.get(f"/api/questions?question_set_id={SEED_SET_ID}").get_json()) == 14
        assert client.get("/api/questions/q_hours_fr").get_json()["risk_tag"] == "hours"
        assert client.get("/api/questions/nope").status_code == 404


class TestAuditRunRoutes:

    def test_create_launches_in_background(self, app_parts, rules):
        _, storage, _ = app_parts
        runner = Mock()
        app = create_app(ConfigManager(), storage=storage, runner=runner)

        response = app.test_client().post("/api/audit-runs", json={"question_set_id": SEED_SET_ID})

        assert response.status_code == 201
        body = response.get_json()
        assert body["status"] == "pending"
        assert body["provider"] == "mock-baseline"
        runner.submit.assert_called_once_with(body["id"])

    def test_create_runs_to_completion(self, app_parts, client):
        _, storage, runner = app_parts
        response = client.post("/api/audit-runs", json={"question_set_id": SEED_SET_ID, "provider": "mock-after"})
        run_id = response.get_json()["id"]

        runner.shutdown(wait=True)

        assert storage.get_audit_run(run_id).status == AuditStatus.COMPLETED
        assert client.get(f"/api/audit-runs/{run_id}").get_json()["status"] == "completed"

    def test_create_rejects_bad_payload(self, client):
        assert client.post("/api/audit-runs", json={}).status_code == 400
        assert client.post("/api/audit-runs", json={"question_set_id": SEED_SET_ID,
                                                    "provider": "gpt"}).status_code == 400
        assert client.post("/api/audit-runs", json={"question_set_id": "nope"}).status_code == 400

    def test_run_findings(self, client, completed_run):
        findings = client.get(f"/api/audit-runs/{completed_run.id}/findings").get_json()
        assert len(findings) == 9
        assert client.get("/api/audit-runs/nope/findings").status_code == 404
        assert client.get("/api/audit-runs/nope").status_code == 404

    def test_list_runs(self, client, completed_run):
        runs = client.get("/api/audit-runs").get_json()
        assert [r["id"] for r in runs] == [completed_run.id]

    def test_findings_filters(self, client, completed_run):
        drift = client.get("/api/findings?type=drift").get_json()
        assert len(drift) == 3
        assert all(f["lang"] == "fr" for f in client.get("/api/findings?lang=fr").get_json())

    def test_dashboard(self, client, completed_run):
        metrics = client.get("/api/dashboard/metrics").get_json()
        assert metrics["total_findings"] == 9
        assert metrics["total_audit_runs"] == 1
        assert metrics["findings_by_type"]["drift"] == 3
        assert len(metrics["top_severity_findings"]) == 5

    def test_comparison(self, app_parts, client, completed_run):
        _, storage, runner = app_parts
        after = storage.create_audit_run(AuditRun(question_set_id=SEED_SET_ID, provider="mock-after"))
        runner.run(after.id, as_of=FRESH_AS_OF)

        comparison = client.get(f"/api/comparison/{completed_run.id}/{after.id}").get_json()

        assert len(comparison["resolved_findings"]) == 9
        assert client.get(f"/api/comparison/{completed_run.id}/nope").status_code == 404


class TestToolEndpoints:

    def test_catalog(self, client):
        names = [tool["name"] for tool in client.get("/tools").get_json()["tools"]]
        assert names == ["search_facts", "list_findings"]

    def test_search_facts(self, client):
        response = client.post("/tools/search_facts", json={"query": "hours", "lang": "nl"})
        body = response.get_json()
        assert body["success"] is True
        assert [f["id"] for f in body["data"]] == ["fact_city_hall_hours_nl"]

    def test_search_facts_requires_query(self, client):
        response = client.post("/tools/search_facts", json={})
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_list_findings(self, client, completed_run):
        response = client.post("/tools/list_findings", json={
            "run_id": completed_run.id, "type": "drift", "min_severity": 8,
        })
        data = response.get_json()["data"]
        assert {f["evidence"]["field"] for f in data} == {"deadline_days", "url"}

    def test_list_findings_errors(self, client, completed_run):
        assert client.post("/tools/list_findings", json={}).status_code == 400
        assert client.post("/tools/list_findings", json={"run_id": "nope"}).status_code == 404
        bad = client.post("/tools/list_findings", json={"run_id": completed_run.id, "min_severity": "high"})
        assert bad.status_code == 400


class TestErrorHandling:

    def test_unknown_route_is_json_404(self, client):
        response = client.get("/api/nothing")
        assert response.status_code == 404
        assert "error" in response.get_json()

    def test_unexpected_error_is_500(self, rules):
        storage = MemoryStorage()
        storage.list_facts = Mock(side_effect=RuntimeError("boom"))
        app = create_app(ConfigManager(), storage=storage, runner=AuditRunner(storage, rules))

        response = app.test_client().get("/api/facts")

        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}
