"""
Audit orchestration: drives one run from pending to completed or failed
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import RunNotFoundError, StatusTransitionError
from ..models import Answer, AuditRun, AuditStatus, Finding, ProviderAnswer, Question
from ..providers import AnswerProvider, create_provider
from .drift import DriftDetector
from .rules import ScoringRules
from .scoring import AnswerScorer

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., AnswerProvider]


class AuditRunner:
    """Executes audit runs against a storage backend"""

    def __init__(self,
                 storage,
                 rules: ScoringRules,
                 provider_factory: ProviderFactory = create_provider,
                 scorer: Optional[AnswerScorer] = None,
                 detector: Optional[DriftDetector] = None,
                 data_dir: Optional[Path] = None,
                 max_workers: int = 4):
        self.storage = storage
        self.rules = rules
        self.provider_factory = provider_factory
        self.scorer = scorer or AnswerScorer(rules)
        self.detector = detector or DriftDetector(rules)
        self.data_dir = data_dir
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def run(self, run_id: str, as_of: Optional[date] = None) -> AuditRun:
        """
        Execute an audit run to completion.

        Args:
            run_id: Id of a stored run in the pending state
            as_of: Reference date for staleness checks (defaults to today)

        Returns:
            The run in its final state

        Raises:
            RunNotFoundError: If no run has this id; nothing is modified
            StatusTransitionError: If the run is no longer pending; nothing is modified
        """
        run = self.storage.get_audit_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)

        if run.status != AuditStatus.PENDING:
            raise StatusTransitionError(run.status.value, AuditStatus.RUNNING.value)
        # Claimed under the storage lock; a concurrent claim of the same run fails here
        self.storage.update_audit_run(run_id, AuditStatus.RUNNING)

        try:
            questions = self.storage.list_questions_by_set(run.question_set_id)
            facts = self.storage.list_facts()
            provider = self.provider_factory(run.provider, data_dir=self.data_dir)
            logger.info(f"Audit run {run_id}: {len(questions)} question(s) with provider {run.provider.value}")

            answers: List[Answer] = []
            finding_count = 0
            for question in questions:
                response = self._fetch_answer(provider, question)
                answer = self.storage.create_answer(Answer(
                    audit_run_id=run_id,
                    question_id=question.id,
                    lang=question.lang,
                    answer_text=response.answer_text,
                    citations=list(response.citations),
                ))
                answers.append(answer)

                for finding in self.scorer.score(question, answer, facts, run_id, as_of=as_of):
                    self.storage.create_finding(finding)
                    finding_count += 1

            drift_findings: List[Finding] = self.detector.detect(run_id, answers, questions)
            for finding in drift_findings:
                self.storage.create_finding(finding)
            finding_count += len(drift_findings)

            completed = self.storage.update_audit_run(run_id, AuditStatus.COMPLETED)
            logger.info(f"Audit run {run_id} completed: {len(answers)} answer(s), {finding_count} finding(s)")
            return completed

        except Exception:
            logger.exception(f"Audit run {run_id} failed")
            self._mark_failed(run_id)
            raise

    def _fetch_answer(self, provider: AnswerProvider, question: Question) -> ProviderAnswer:
        # TODO: bound provider calls with a timeout once a live provider exists
        return provider.get_answer(question)

    def _mark_failed(self, run_id: str) -> None:
        current = self.storage.get_audit_run(run_id)
        if current is None or current.status in (AuditStatus.FAILED, AuditStatus.COMPLETED):
            return
        self.storage.update_audit_run(run_id, AuditStatus.FAILED)

    # -- background execution ---------------------------------------------------

    @property
    def executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                                    thread_name_prefix="audit-run")
            return self._executor

    def submit(self, run_id: str) -> Future:
        """Start a run in the background; failures are logged, not raised."""
        future = self.executor.submit(self.run, run_id)
        future.add_done_callback(lambda f: self._log_outcome(run_id, f))
        return future

    @staticmethod
    def _log_outcome(run_id: str, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"Background audit run {run_id} ended with error: {error}")
        else:
            logger.debug(f"Background audit run {run_id} finished")

    def shutdown(self, wait: bool = True) -> None:
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
