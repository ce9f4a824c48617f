"""
Flask application exposing facts, question sets, audit runs and findings
as JSON, plus the tool endpoints used by assistant integrations.
"""

import json
import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from pydantic import BaseModel, ValidationError
from werkzeug.exceptions import HTTPException

from ..audit import AuditRunner, load_scoring_rules
from ..errors import RunNotFoundError
from ..models import AuditRun, AuditRunRequest, Fact, FactInput, FactUpdate, FindingType
from ..reports import compare_runs, dashboard_metrics
from ..seed import default_rules_path, seed_storage
from ..storage import create_storage
from ..utils.config import ConfigManager

logger = logging.getLogger(__name__)

TOOL_CATALOG = [
    {
        "name": "search_facts",
        "description": "Search verified facts by key, value or topic",
        "parameters": {
            "query": {"type": "string", "required": True},
            "lang": {"type": "string", "enum": ["fr", "nl"], "required": False},
        },
    },
    {
        "name": "list_findings",
        "description": "List the findings of an audit run",
        "parameters": {
            "run_id": {"type": "string", "required": True},
            "type": {"type": "string", "enum": [t.value for t in FindingType], "required": False},
            "min_severity": {"type": "integer", "required": False},
        },
    },
]


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _not_found(what: str):
    return jsonify({"error": f"{what} not found"}), 404


def create_app(config: Optional[ConfigManager] = None, storage=None, runner: Optional[AuditRunner] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Application configuration; defaults are used when None
        storage: Storage backend; built from ``storage.backend`` when None
        runner: Audit runner; built from the loaded scoring rules when None
    """
    config = config or ConfigManager()
    data_dir = config.path("data.dir")

    if storage is None:
        storage = create_storage(config)
        if config.get("data.seed_on_start", True):
            seed_storage(storage, data_dir)

    if runner is None:
        rules = load_scoring_rules(config.path("rules.path") or default_rules_path(data_dir))
        runner = AuditRunner(storage, rules, data_dir=data_dir,
                             max_workers=config.get("runner.max_workers", 4))

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["verihub"] = {"storage": storage, "runner": runner, "config": config}

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        return jsonify({"error": "Invalid request", "details": json.loads(e.json())}), 400

    @app.errorhandler(RunNotFoundError)
    def handle_run_not_found(e: RunNotFoundError):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.error(f"Unhandled error on {request.path}: {e}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    # -- dashboard -------------------------------------------------------------

    @app.route('/api/dashboard/metrics')
    def get_dashboard_metrics():
        return jsonify(_dump(dashboard_metrics(storage)))

    # -- facts -------------------------------------------------------------------

    @app.route('/api/facts', methods=['GET'])
    def list_facts():
        return jsonify(_dump(storage.list_facts()))

    @app.route('/api/facts', methods=['POST'])
    def create_fact():
        fact_input = FactInput.model_validate(_json_body())
        fact = storage.create_fact(Fact(**fact_input.model_dump()))
        logger.info(f"Created fact {fact.id} ({fact.key}/{fact.lang.value})")
        return jsonify(_dump(fact)), 201

    @app.route('/api/facts/search')
    def search_facts():
        query = request.args.get('q', '').strip()
        if not query:
            return jsonify({"error": "Query parameter 'q' is required"}), 400
        return jsonify(_dump(storage.search_facts(query, request.args.get('lang'))))

    @app.route('/api/facts/<fact_id>', methods=['GET'])
    def get_fact(fact_id: str):
        fact = storage.get_fact(fact_id)
        if fact is None:
            return _not_found("Fact")
        return jsonify(_dump(fact))

    @app.route('/api/facts/<fact_id>', methods=['PUT'])
    def update_fact(fact_id: str):
        changes = FactUpdate.model_validate(_json_body())
        fact = storage.update_fact(fact_id, changes)
        if fact is None:
            return _not_found("Fact")
        return jsonify(_dump(fact))

    @app.route('/api/facts/<fact_id>', methods=['DELETE'])
    def delete_fact(fact_id: str):
        if not storage.delete_fact(fact_id):
            return _not_found("Fact")
        return '', 204

    # -- question sets and questions -----------------------------------------------

    @app.route('/api/question-sets')
    def list_question_sets():
        return jsonify(_dump(storage.list_question_sets()))

    @app.route('/api/question-sets/<question_set_id>')
    def get_question_set(question_set_id: str):
        question_set = storage.get_question_set(question_set_id)
        if question_set is None:
            return _not_found("Question set")
        payload = _dump(question_set)
        payload["questions"] = _dump(storage.list_questions_by_set(question_set_id))
        return jsonify(payload)

    @app.route('/api/questions')
    def list_questions():
        question_set_id = request.args.get('question_set_id')
        if question_set_id:
            return jsonify(_dump(storage.list_questions_by_set(question_set_id)))
        return jsonify(_dump(storage.list_questions()))

    @app.route('/api/questions/<question_id>')
    def get_question(question_id: str):
        question = storage.get_question(question_id)
        if question is None:
            return _not_found("Question")
        return jsonify(_dump(question))

    # -- audit runs --------------------------------------------------------------------

    @app.route('/api/audit-runs', methods=['GET'])
    def list_audit_runs():
        return jsonify(_dump(storage.list_audit_runs()))

    @app.route('/api/audit-runs', methods=['POST'])
    def create_audit_run():
        run_request = AuditRunRequest.model_validate(_json_body())
        if storage.get_question_set(run_request.question_set_id) is None:
            return jsonify({"error": f"Unknown question set: {run_request.question_set_id}"}), 400

        run = storage.create_audit_run(AuditRun(**run_request.model_dump()))
        logger.info(f"Created audit run {run.id} ({run.provider.value})")
        runner.submit(run.id)
        return jsonify(_dump(run)), 201

    @app.route('/api/audit-runs/<run_id>')
    def get_audit_run(run_id: str):
        run = storage.get_audit_run(run_id)
        if run is None:
            return _not_found("Audit run")
        return jsonify(_dump(run))

    @app.route('/api/audit-runs/<run_id>/findings')
    def list_run_findings(run_id: str):
        if storage.get_audit_run(run_id) is None:
            return _not_found("Audit run")
        return jsonify(_dump(storage.list_findings_by_run(run_id)))

    @app.route('/api/findings')
    def list_findings():
        findings = storage.list_findings()
        finding_type = request.args.get('type')
        lang = request.args.get('lang')
        if finding_type:
            findings = [f for f in findings if f.type == finding_type]
        if lang:
            findings = [f for f in findings if f.lang == lang]
        return jsonify(_dump(findings))

    @app.route('/api/comparison/<baseline_id>/<current_id>')
    def get_comparison(baseline_id: str, current_id: str):
        comparison = compare_runs(storage, baseline_id, current_id)
        if comparison is None:
            return _not_found("Audit run")
        return jsonify(_dump(comparison))

    # -- tool endpoints -------------------------------------------------------------------

    @app.route('/tools')
    def list_tools():
        return jsonify({"tools": TOOL_CATALOG})

    @app.route('/tools/search_facts', methods=['POST'])
    def tool_search_facts():
        args = _json_body()
        query = args.get("query")
        if not isinstance(query, str) or not query.strip():
            return jsonify({"success": False, "error": "Parameter 'query' is required"}), 400
        facts = storage.search_facts(query.strip(), args.get("lang"))
        return jsonify({"success": True, "data": _dump(facts)})

    @app.route('/tools/list_findings', methods=['POST'])
    def tool_list_findings():
        args = _json_body()
        run_id = args.get("run_id")
        if not run_id:
            return jsonify({"success": False, "error": "Parameter 'run_id' is required"}), 400
        if storage.get_audit_run(run_id) is None:
            return jsonify({"success": False, "error": f"Audit run not found: {run_id}"}), 404

        min_severity = args.get("min_severity")
        if min_severity is not None and not isinstance(min_severity, int):
            return jsonify({"success": False, "error": "Parameter 'min_severity' must be an integer"}), 400

        findings = storage.list_findings_by_run(run_id)
        if args.get("type"):
            findings = [f for f in findings if f.type == args["type"]]
        if min_severity is not None:
            findings = [f for f in findings if f.severity >= min_severity]
        return jsonify({"success": True, "data": _dump(findings)})

    return app
