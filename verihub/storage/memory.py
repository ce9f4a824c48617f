"""
Thread-safe in-memory storage
"""

import threading
from typing import Dict, List, Optional

from ..models import (
    Answer,
    AuditRun,
    AuditStatus,
    Fact,
    FactUpdate,
    Finding,
    Question,
    QuestionSet,
    check_transition,
)
from .base import matches_query


def _by_severity(findings: List[Finding]) -> List[Finding]:
    return sorted(findings, key=lambda f: f.severity, reverse=True)


class MemoryStorage:
    """Dict-backed storage; insertion order is preserved for every collection"""

    def __init__(self):
        self._lock = threading.RLock()
        self._facts: Dict[str, Fact] = {}
        self._question_sets: Dict[str, QuestionSet] = {}
        self._questions: Dict[str, Question] = {}
        self._runs: Dict[str, AuditRun] = {}
        self._answers: Dict[str, Answer] = {}
        self._findings: Dict[str, Finding] = {}

    # -- facts ---------------------------------------------------------------

    def list_facts(self) -> List[Fact]:
        with self._lock:
            return list(self._facts.values())

    def get_fact(self, fact_id: str) -> Optional[Fact]:
        with self._lock:
            return self._facts.get(fact_id)

    def get_fact_by_key(self, key: str, lang: str) -> Optional[Fact]:
        with self._lock:
            return next((f for f in self._facts.values() if f.key == key and f.lang == lang), None)

    def search_facts(self, query: str, lang: Optional[str] = None) -> List[Fact]:
        with self._lock:
            return [
                fact for fact in self._facts.values()
                if matches_query(fact, query) and (lang is None or fact.lang == lang)
            ]

    def create_fact(self, fact: Fact) -> Fact:
        with self._lock:
            self._facts[fact.id] = fact
            return fact

    def update_fact(self, fact_id: str, changes: FactUpdate) -> Optional[Fact]:
        with self._lock:
            fact = self._facts.get(fact_id)
            if fact is None:
                return None
            updated = fact.model_copy(update=changes.model_dump(exclude_unset=True))
            self._facts[fact_id] = updated
            return updated

    def delete_fact(self, fact_id: str) -> bool:
        with self._lock:
            return self._facts.pop(fact_id, None) is not None

    # -- question sets and questions -----------------------------------------

    def list_question_sets(self) -> List[QuestionSet]:
        with self._lock:
            return list(self._question_sets.values())

    def get_question_set(self, question_set_id: str) -> Optional[QuestionSet]:
        with self._lock:
            return self._question_sets.get(question_set_id)

    def create_question_set(self, question_set: QuestionSet) -> QuestionSet:
        with self._lock:
            self._question_sets[question_set.id] = question_set
            return question_set

    def list_questions(self) -> List[Question]:
        with self._lock:
            return list(self._questions.values())

    def list_questions_by_set(self, question_set_id: str) -> List[Question]:
        with self._lock:
            return [q for q in self._questions.values() if q.question_set_id == question_set_id]

    def get_question(self, question_id: str) -> Optional[Question]:
        with self._lock:
            return self._questions.get(question_id)

    def create_question(self, question: Question) -> Question:
        with self._lock:
            self._questions[question.id] = question
            return question

    # -- audit runs ------------------------------------------------------------

    def list_audit_runs(self) -> List[AuditRun]:
        with self._lock:
            return sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)

    def get_audit_run(self, run_id: str) -> Optional[AuditRun]:
        with self._lock:
            return self._runs.get(run_id)

    def create_audit_run(self, run: AuditRun) -> AuditRun:
        with self._lock:
            self._runs[run.id] = run
            return run

    def update_audit_run(self, run_id: str, status: AuditStatus) -> Optional[AuditRun]:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return None
            check_transition(run.status, status)
            updated = run.model_copy(update={"status": AuditStatus(status)})
            self._runs[run_id] = updated
            return updated

    # -- answers and findings ---------------------------------------------------

    def list_answers_by_run(self, run_id: str) -> List[Answer]:
        with self._lock:
            return [a for a in self._answers.values() if a.audit_run_id == run_id]

    def create_answer(self, answer: Answer) -> Answer:
        with self._lock:
            self._answers[answer.id] = answer
            return answer

    def list_findings(self) -> List[Finding]:
        with self._lock:
            return _by_severity(list(self._findings.values()))

    def list_findings_by_run(self, run_id: str) -> List[Finding]:
        with self._lock:
            return _by_severity([f for f in self._findings.values() if f.audit_run_id == run_id])

    def create_finding(self, finding: Finding) -> Finding:
        with self._lock:
            self._findings[finding.id] = finding
            return finding

    def is_empty(self) -> bool:
        with self._lock:
            return not self._facts and not self._question_sets
