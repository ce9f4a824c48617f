"""
SQLite-backed storage for deployments that need runs to survive a restart
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel

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

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

MEMORY_PATH = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS facts (
    id TEXT PRIMARY KEY,
    key TEXT NOT NULL,
    lang TEXT NOT NULL,
    value TEXT NOT NULL,
    source_ref TEXT NOT NULL DEFAULT '',
    last_verified TEXT NOT NULL,
    linked_fact_id TEXT,
    topic TEXT
);
CREATE INDEX IF NOT EXISTS idx_facts_key_lang ON facts(key, lang);

CREATE TABLE IF NOT EXISTS question_sets (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    languages TEXT NOT NULL,
    topics TEXT NOT NULL,
    version TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    question_set_id TEXT NOT NULL,
    lang TEXT NOT NULL,
    topic TEXT NOT NULL,
    risk_tag TEXT NOT NULL,
    text TEXT NOT NULL,
    expected_fact_keys TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_questions_set ON questions(question_set_id);

CREATE TABLE IF NOT EXISTS audit_runs (
    id TEXT PRIMARY KEY,
    question_set_id TEXT NOT NULL,
    provider TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    baseline_run_id TEXT
);

CREATE TABLE IF NOT EXISTS answers (
    id TEXT PRIMARY KEY,
    audit_run_id TEXT NOT NULL,
    question_id TEXT NOT NULL,
    lang TEXT NOT NULL,
    answer_text TEXT NOT NULL,
    citations TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_answers_run ON answers(audit_run_id);

CREATE TABLE IF NOT EXISTS findings (
    id TEXT PRIMARY KEY,
    audit_run_id TEXT NOT NULL,
    question_id TEXT NOT NULL,
    lang TEXT NOT NULL,
    type TEXT NOT NULL,
    severity INTEGER NOT NULL,
    evidence TEXT NOT NULL,
    suggested_fix TEXT
);
CREATE INDEX IF NOT EXISTS idx_findings_run ON findings(audit_run_id);
"""

# Columns holding JSON-encoded lists or dicts
JSON_COLUMNS = {
    "question_sets": ("languages", "topics"),
    "questions": ("expected_fact_keys",),
    "answers": ("citations",),
    "findings": ("evidence",),
}


class SqliteStorage:
    """Storage over a single SQLite file, one connection per operation"""

    def __init__(self, database_path: Optional[str] = None):
        self.database_path = str(database_path or "data/verihub.db")
        self._lock = threading.RLock()
        self._shared: Optional[sqlite3.Connection] = None

        if self.database_path == MEMORY_PATH:
            # Every connection to :memory: is a fresh database
            self._shared = sqlite3.connect(MEMORY_PATH, check_same_thread=False)
        else:
            Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

    def _init_database(self) -> None:
        with self._connect() as conn:
            if self._shared is None:
                conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
        logger.info(f"SQLite storage ready at {self.database_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._shared or sqlite3.connect(self.database_path)
            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                if conn is not self._shared:
                    conn.close()

    # -- row helpers -------------------------------------------------------------

    def _encode(self, table: str, model: BaseModel) -> Dict[str, Any]:
        row = model.model_dump(mode="json")
        for column in JSON_COLUMNS.get(table, ()):
            row[column] = json.dumps(row[column], ensure_ascii=False)
        return row

    def _decode(self, table: str, model_cls: Type[ModelT], row: sqlite3.Row) -> ModelT:
        data = dict(row)
        for column in JSON_COLUMNS.get(table, ()):
            data[column] = json.loads(data[column])
        return model_cls.model_validate(data)

    def _insert(self, table: str, model: ModelT) -> ModelT:
        row = self._encode(table, model)
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        with self._connect() as conn:
            conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", tuple(row.values()))
        return model

    def _update(self, table: str, model: ModelT) -> ModelT:
        row = self._encode(table, model)
        row_id = row.pop("id")
        assignments = ", ".join(f"{column} = ?" for column in row)
        with self._connect() as conn:
            conn.execute(f"UPDATE {table} SET {assignments} WHERE id = ?", (*row.values(), row_id))
        return model

    def _select(self, table: str, model_cls: Type[ModelT], where: str = "",
                params: tuple = (), order_by: str = "rowid") -> List[ModelT]:
        query = f"SELECT * FROM {table}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {order_by}"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._decode(table, model_cls, row) for row in rows]

    def _select_one(self, table: str, model_cls: Type[ModelT], where: str, params: tuple) -> Optional[ModelT]:
        results = self._select(table, model_cls, where, params)
        return results[0] if results else None

    # -- facts ---------------------------------------------------------------------

    def list_facts(self) -> List[Fact]:
        return self._select("facts", Fact)

    def get_fact(self, fact_id: str) -> Optional[Fact]:
        return self._select_one("facts", Fact, "id = ?", (fact_id,))

    def get_fact_by_key(self, key: str, lang: str) -> Optional[Fact]:
        return self._select_one("facts", Fact, "key = ? AND lang = ?", (key, str(getattr(lang, "value", lang))))

    def search_facts(self, query: str, lang: Optional[str] = None) -> List[Fact]:
        return [
            fact for fact in self.list_facts()
            if matches_query(fact, query) and (lang is None or fact.lang == lang)
        ]

    def create_fact(self, fact: Fact) -> Fact:
        return self._insert("facts", fact)

    def update_fact(self, fact_id: str, changes: FactUpdate) -> Optional[Fact]:
        with self._lock:
            fact = self.get_fact(fact_id)
            if fact is None:
                return None
            updated = fact.model_copy(update=changes.model_dump(exclude_unset=True))
            return self._update("facts", updated)

    def delete_fact(self, fact_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM facts WHERE id = ?", (fact_id,))
            return cursor.rowcount > 0

    # -- question sets and questions -------------------------------------------------

    def list_question_sets(self) -> List[QuestionSet]:
        return self._select("question_sets", QuestionSet)

    def get_question_set(self, question_set_id: str) -> Optional[QuestionSet]:
        return self._select_one("question_sets", QuestionSet, "id = ?", (question_set_id,))

    def create_question_set(self, question_set: QuestionSet) -> QuestionSet:
        return self._insert("question_sets", question_set)

    def list_questions(self) -> List[Question]:
        return self._select("questions", Question)

    def list_questions_by_set(self, question_set_id: str) -> List[Question]:
        return self._select("questions", Question, "question_set_id = ?", (question_set_id,))

    def get_question(self, question_id: str) -> Optional[Question]:
        return self._select_one("questions", Question, "id = ?", (question_id,))

    def create_question(self, question: Question) -> Question:
        return self._insert("questions", question)

    # -- audit runs --------------------------------------------------------------------

    def list_audit_runs(self) -> List[AuditRun]:
        return self._select("audit_runs", AuditRun, order_by="created_at DESC, rowid DESC")

    def get_audit_run(self, run_id: str) -> Optional[AuditRun]:
        return self._select_one("audit_runs", AuditRun, "id = ?", (run_id,))

    def create_audit_run(self, run: AuditRun) -> AuditRun:
        return self._insert("audit_runs", run)

    def update_audit_run(self, run_id: str, status: AuditStatus) -> Optional[AuditRun]:
        with self._lock:
            run = self.get_audit_run(run_id)
            if run is None:
                return None
            check_transition(run.status, status)
            return self._update("audit_runs", run.model_copy(update={"status": AuditStatus(status)}))

    # -- answers and findings ------------------------------------------------------------

    def list_answers_by_run(self, run_id: str) -> List[Answer]:
        return self._select("answers", Answer, "audit_run_id = ?", (run_id,))

    def create_answer(self, answer: Answer) -> Answer:
        return self._insert("answers", answer)

    def list_findings(self) -> List[Finding]:
        return self._select("findings", Finding, order_by="severity DESC, rowid")

    def list_findings_by_run(self, run_id: str) -> List[Finding]:
        return self._select("findings", Finding, "audit_run_id = ?", (run_id,),
                            order_by="severity DESC, rowid")

    def create_finding(self, finding: Finding) -> Finding:
        return self._insert("findings", finding)

    def is_empty(self) -> bool:
        with self._connect() as conn:
            facts = conn.execute("SELECT COUNT(*) FROM facts").fetchone()[0]
            sets = conn.execute("SELECT COUNT(*) FROM question_sets").fetchone()[0]
        return facts == 0 and sets == 0
