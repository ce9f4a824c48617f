"""
Storage interface shared by the in-memory and SQLite backends
"""

from typing import List, Optional, Protocol

from ..models import (
    Answer,
    AuditRun,
    AuditStatus,
    Fact,
    FactUpdate,
    Finding,
    Question,
    QuestionSet,
)


def matches_query(fact: Fact, query: str) -> bool:
    """Case-insensitive substring match over a fact's key, value and topic."""
    needle = query.lower()
    return (needle in fact.key.lower()
            or needle in fact.value.lower()
            or (fact.topic is not None and needle in fact.topic.lower()))


class AuditStorage(Protocol):
    """Persistence operations used by the runner, reports and HTTP layer."""

    # facts
    def list_facts(self) -> List[Fact]: ...
    def get_fact(self, fact_id: str) -> Optional[Fact]: ...
    def get_fact_by_key(self, key: str, lang: str) -> Optional[Fact]: ...
    def search_facts(self, query: str, lang: Optional[str] = None) -> List[Fact]: ...
    def create_fact(self, fact: Fact) -> Fact: ...
    def update_fact(self, fact_id: str, changes: FactUpdate) -> Optional[Fact]: ...
    def delete_fact(self, fact_id: str) -> bool: ...

    # question sets and questions
    def list_question_sets(self) -> List[QuestionSet]: ...
    def get_question_set(self, question_set_id: str) -> Optional[QuestionSet]: ...
    def create_question_set(self, question_set: QuestionSet) -> QuestionSet: ...
    def list_questions(self) -> List[Question]: ...
    def list_questions_by_set(self, question_set_id: str) -> List[Question]: ...
    def get_question(self, question_id: str) -> Optional[Question]: ...
    def create_question(self, question: Question) -> Question: ...

    # audit runs
    def list_audit_runs(self) -> List[AuditRun]: ...
    def get_audit_run(self, run_id: str) -> Optional[AuditRun]: ...
    def create_audit_run(self, run: AuditRun) -> AuditRun: ...
    def update_audit_run(self, run_id: str, status: AuditStatus) -> Optional[AuditRun]: ...

    # answers and findings
    def list_answers_by_run(self, run_id: str) -> List[Answer]: ...
    def create_answer(self, answer: Answer) -> Answer: ...
    def list_findings(self) -> List[Finding]: ...
    def list_findings_by_run(self, run_id: str) -> List[Finding]: ...
    def create_finding(self, finding: Finding) -> Finding: ...

    def is_empty(self) -> bool: ...
