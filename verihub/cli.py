"""Command line entry-point for running and inspecting FR/NL answer audits."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import click

from .audit import AuditRunner, load_scoring_rules
from .errors import VeriHubError
from .models import AuditRun, ProviderId
from .reports import compare_runs
from .seed import default_rules_path, seed_storage
from .storage import create_storage
from .utils import ConfigManager, setup_logging

logger = logging.getLogger("verihub.cli")

PROVIDER_CHOICES = [p.value for p in ProviderId]


class AppContext:
    """Storage and runner shared by the commands of one invocation"""

    def __init__(self, config: ConfigManager):
        self.config = config
        self.data_dir = config.path("data.dir")
        self.storage = create_storage(config)
        if config.get("data.seed_on_start", True):
            seed_storage(self.storage, self.data_dir)
        rules = load_scoring_rules(config.path("rules.path") or default_rules_path(self.data_dir))
        self.runner = AuditRunner(self.storage, rules, data_dir=self.data_dir,
                                  max_workers=config.get("runner.max_workers", 4))


def _emit(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _default_question_set(app: AppContext) -> str:
    question_sets = app.storage.list_question_sets()
    if not question_sets:
        raise click.ClickException("No question set available; seed data is missing")
    return question_sets[0].id


def _execute(app: AppContext, question_set_id: str, provider: str,
             baseline_run_id: Optional[str] = None) -> AuditRun:
    run = app.storage.create_audit_run(AuditRun(
        question_set_id=question_set_id,
        provider=ProviderId(provider),
        baseline_run_id=baseline_run_id,
    ))
    try:
        return app.runner.run(run.id)
    except VeriHubError as e:
        raise click.ClickException(f"Audit run {run.id} failed: {e}")


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              envvar="VERIHUB_CONFIG", help="YAML configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """Audit FR/NL assistant answers against a verified fact base."""
    config = ConfigManager(config_path)
    setup_logging(config.get("logging.level", "WARNING"), verbose=verbose)
    ctx.obj = AppContext(config)


@main.command()
@click.option("--question-set", "question_set_id", help="Question set id (defaults to the first one)")
@click.option("--provider", type=click.Choice(PROVIDER_CHOICES), default=ProviderId.MOCK_BASELINE.value,
              show_default=True, help="Answer provider")
@click.option("--baseline-provider", type=click.Choice(PROVIDER_CHOICES),
              help="Run this provider first and compare the two runs")
@click.pass_obj
def run(app: AppContext, question_set_id: Optional[str], provider: str, baseline_provider: Optional[str]) -> None:
    """Execute an audit run and print its findings."""
    question_set_id = question_set_id or _default_question_set(app)
    if app.storage.get_question_set(question_set_id) is None:
        raise click.ClickException(f"Unknown question set: {question_set_id}")

    baseline = None
    if baseline_provider:
        baseline = _execute(app, question_set_id, baseline_provider)

    current = _execute(app, question_set_id, provider, baseline.id if baseline else None)
    output = {
        "run": current.model_dump(mode="json"),
        "findings": [f.model_dump(mode="json") for f in app.storage.list_findings_by_run(current.id)],
    }
    if baseline is not None:
        output["comparison"] = compare_runs(app.storage, baseline.id, current.id).model_dump(mode="json")
    _emit(output)


@main.command()
@click.argument("baseline_run_id")
@click.argument("current_run_id")
@click.pass_obj
def compare(app: AppContext, baseline_run_id: str, current_run_id: str) -> None:
    """Compare the findings of two stored runs."""
    comparison = compare_runs(app.storage, baseline_run_id, current_run_id)
    if comparison is None:
        raise click.ClickException("Audit run not found")
    _emit(comparison.model_dump(mode="json"))


@main.command()
@click.argument("run_id", required=False)
@click.option("--min-severity", type=click.IntRange(0, 10), default=0, help="Lowest severity to show")
@click.pass_obj
def findings(app: AppContext, run_id: Optional[str], min_severity: int) -> None:
    """List findings, for one run or across all runs."""
    if run_id:
        if app.storage.get_audit_run(run_id) is None:
            raise click.ClickException(f"Audit run not found: {run_id}")
        results = app.storage.list_findings_by_run(run_id)
    else:
        results = app.storage.list_findings()
    _emit([f.model_dump(mode="json") for f in results if f.severity >= min_severity])


@main.command()
@click.argument("query", required=False)
@click.option("--lang", type=click.Choice(["fr", "nl"]), help="Restrict to one language")
@click.pass_obj
def facts(app: AppContext, query: Optional[str], lang: Optional[str]) -> None:
    """List facts, or search them by key, value or topic."""
    if query:
        results = app.storage.search_facts(query, lang)
    else:
        results = [f for f in app.storage.list_facts() if lang is None or f.lang == lang]
    _emit([f.model_dump(mode="json") for f in results])


@main.command()
@click.option("--host", help="Bind address (defaults to web.host)")
@click.option("--port", type=int, help="Port (defaults to web.port)")
@click.option("--debug", is_flag=True, help="Enable the Flask debugger")
@click.pass_obj
def serve(app: AppContext, host: Optional[str], port: Optional[int], debug: bool) -> None:
    """Start the HTTP API."""
    from .web import create_app

    flask_app = create_app(app.config, storage=app.storage, runner=app.runner)
    host = host or app.config.get("web.host", "127.0.0.1")
    port = port or app.config.get("web.port", 8080)
    logger.info(f"Serving on http://{host}:{port}")
    try:
        flask_app.run(host=host, port=port, debug=debug)
    finally:
        app.runner.shutdown(wait=False)


if __name__ == "__main__":  # pragma: no cover
    main()
