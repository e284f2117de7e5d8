from __future__ import annotations  # SQLite persistence for sessions and stage results

import datetime as dt
import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence
from uuid import uuid4

from .errors import NotFoundError, PersistenceError
from .models import InterviewSession, Question, QuestionScore, SessionStatus, StageResult

SCHEMA: Sequence[str] = (
    """
    CREATE TABLE IF NOT EXISTS interview_sessions (
        id TEXT PRIMARY KEY,
        candidate_id TEXT NOT NULL,
        current_stage_order INTEGER NOT NULL,
        stages_completed TEXT NOT NULL,
        status TEXT NOT NULL,
        overall_score REAL,
        overall_feedback TEXT,
        started_at TEXT,
        completed_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stage_results (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id TEXT NOT NULL,
        stage_name TEXT NOT NULL,
        stage_order INTEGER NOT NULL,
        questions_json TEXT NOT NULL,
        answers_json TEXT,
        ai_score REAL,
        ai_feedback TEXT,
        passed INTEGER,
        strengths_json TEXT NOT NULL,
        improvements_json TEXT NOT NULL,
        question_scores_json TEXT NOT NULL,
        recording_url TEXT,
        booked_slot TEXT,
        completed_at TEXT,
        created_at TEXT NOT NULL,
        UNIQUE(session_id, stage_order),
        FOREIGN KEY(session_id) REFERENCES interview_sessions(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_candidate ON interview_sessions(candidate_id)",
)

_SESSION_COLUMNS = (
    "id, candidate_id, current_stage_order, stages_completed, status, overall_score, overall_feedback, "
    "started_at, completed_at, created_at, updated_at"
)
_RESULT_COLUMNS = (
    "id, session_id, stage_name, stage_order, questions_json, answers_json, ai_score, ai_feedback, passed, "
    "strengths_json, improvements_json, question_scores_json, recording_url, booked_slot, completed_at, created_at"
)


def utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")


class StoreTransaction:  # Reads and writes bound to one open transaction
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get_session(self, session_id: str) -> InterviewSession:
        row = self._conn.execute(
            f"SELECT {_SESSION_COLUMNS} FROM interview_sessions WHERE id = ?",
            (session_id,),
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Interview session '{session_id}' not found")
        return _session_from_row(row)

    def list_sessions(self, candidate_id: Optional[str] = None, limit: int = 50) -> List[InterviewSession]:
        if candidate_id is None:
            rows = self._conn.execute(
                f"SELECT {_SESSION_COLUMNS} FROM interview_sessions ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM interview_sessions
                WHERE candidate_id = ?
                ORDER BY created_at DESC, id DESC LIMIT ?
                """,
                (candidate_id, limit),
            ).fetchall()
        return [_session_from_row(row) for row in rows]

    def insert_session(self, candidate_id: str, first_stage_order: int, status: SessionStatus) -> InterviewSession:
        session_id = str(uuid4())
        now = utc_now()
        started_at = now if status == "in_progress" else None
        self._conn.execute(
            """
            INSERT INTO interview_sessions (
                id, candidate_id, current_stage_order, stages_completed, status,
                started_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (session_id, candidate_id, first_stage_order, "[]", status, started_at, now, now),
        )
        return self.get_session(session_id)

    def update_session(self, session: InterviewSession) -> InterviewSession:
        updated_at = utc_now()
        self._conn.execute(
            """
            UPDATE interview_sessions
            SET current_stage_order = ?,
                stages_completed = ?,
                status = ?,
                overall_score = ?,
                overall_feedback = ?,
                started_at = ?,
                completed_at = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                session.current_stage_order,
                json.dumps(session.stages_completed),
                session.status,
                session.overall_score,
                session.overall_feedback,
                session.started_at,
                session.completed_at,
                updated_at,
                session.id,
            ),
        )
        return session.model_copy(update={"updated_at": updated_at})

    def get_stage_result(self, session_id: str, stage_order: int) -> Optional[StageResult]:
        row = self._conn.execute(
            f"SELECT {_RESULT_COLUMNS} FROM stage_results WHERE session_id = ? AND stage_order = ?",
            (session_id, stage_order),
        ).fetchone()
        return _result_from_row(row) if row is not None else None

    def list_stage_results(self, session_id: str) -> List[StageResult]:
        rows = self._conn.execute(
            f"SELECT {_RESULT_COLUMNS} FROM stage_results WHERE session_id = ? ORDER BY stage_order ASC",
            (session_id,),
        ).fetchall()
        return [_result_from_row(row) for row in rows]

    def save_stage_result(self, result: StageResult) -> StageResult:
        """Insert or overwrite the row for (session, stage order)."""

        created_at = result.created_at or utc_now()
        params = (
            result.stage_name,
            json.dumps([question.model_dump(by_alias=True) for question in result.questions]),
            json.dumps(result.answers) if result.answers is not None else None,
            result.ai_score,
            result.ai_feedback,
            None if result.passed is None else int(result.passed),
            json.dumps(result.strengths),
            json.dumps(result.improvements),
            json.dumps([score.model_dump(by_alias=True) for score in result.question_scores]),
            result.recording_url,
            result.booked_slot,
            result.completed_at,
        )
        existing = self.get_stage_result(result.session_id, result.stage_order)
        if existing is None:
            self._conn.execute(
                """
                INSERT INTO stage_results (
                    stage_name, questions_json, answers_json, ai_score, ai_feedback, passed,
                    strengths_json, improvements_json, question_scores_json, recording_url, booked_slot,
                    completed_at, session_id, stage_order, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                params + (result.session_id, result.stage_order, created_at),
            )
        else:
            self._conn.execute(
                """
                UPDATE stage_results
                SET stage_name = ?, questions_json = ?, answers_json = ?, ai_score = ?, ai_feedback = ?,
                    passed = ?, strengths_json = ?, improvements_json = ?, question_scores_json = ?,
                    recording_url = ?, booked_slot = ?, completed_at = ?
                WHERE session_id = ? AND stage_order = ?
                """,
                params + (result.session_id, result.stage_order),
            )
        stored = self.get_stage_result(result.session_id, result.stage_order)
        if stored is None:
            raise PersistenceError(f"Stage result for stage {result.stage_order} was not persisted")
        return stored


class StageStore:  # SQLite-backed persistence for interview sessions
    def __init__(self, path: Path) -> None:  # Initialize store and schema
        self._path = Path(path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:  # Open SQLite connection in manual transaction mode
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, isolation_level=None, timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:  # Create persistence tables if missing
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to open database: {exc}") from exc
        try:
            for statement in SCHEMA:
                conn.execute(statement)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to create schema: {exc}") from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Run a block atomically; writers are serialised with BEGIN IMMEDIATE."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to open database: {exc}") from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield StoreTransaction(conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise PersistenceError(f"Database write failed: {exc}") from exc
        finally:
            conn.close()

    def create_session(
        self, candidate_id: str, first_stage_order: int, *, status: SessionStatus = "in_progress"
    ) -> InterviewSession:
        with self.transaction() as tx:
            return tx.insert_session(candidate_id, first_stage_order, status)

    def get_session(self, session_id: str) -> InterviewSession:
        with self.transaction() as tx:
            return tx.get_session(session_id)

    def list_sessions(self, candidate_id: Optional[str] = None, limit: int = 50) -> List[InterviewSession]:
        with self.transaction() as tx:
            return tx.list_sessions(candidate_id, limit)

    def get_stage_result(self, session_id: str, stage_order: int) -> Optional[StageResult]:
        with self.transaction() as tx:
            return tx.get_stage_result(session_id, stage_order)

    def list_stage_results(self, session_id: str) -> List[StageResult]:
        with self.transaction() as tx:
            return tx.list_stage_results(session_id)


def _load_json(raw: Optional[str], default: Any) -> Any:
    if raw is None or raw == "":
        return default
    return json.loads(raw)


def _session_from_row(row: sqlite3.Row) -> InterviewSession:
    return InterviewSession(
        id=row["id"],
        candidate_id=row["candidate_id"],
        current_stage_order=row["current_stage_order"],
        stages_completed=[str(name) for name in _load_json(row["stages_completed"], [])],
        status=row["status"],
        overall_score=row["overall_score"],
        overall_feedback=row["overall_feedback"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _result_from_row(row: sqlite3.Row) -> StageResult:
    passed = row["passed"]
    return StageResult(
        id=row["id"],
        session_id=row["session_id"],
        stage_name=row["stage_name"],
        stage_order=row["stage_order"],
        questions=[Question.model_validate(item) for item in _load_json(row["questions_json"], [])],
        answers=_load_json(row["answers_json"], None),
        ai_score=row["ai_score"],
        ai_feedback=row["ai_feedback"],
        passed=None if passed is None else bool(passed),
        strengths=_load_json(row["strengths_json"], []),
        improvements=_load_json(row["improvements_json"], []),
        question_scores=[QuestionScore.model_validate(item) for item in _load_json(row["question_scores_json"], [])],
        recording_url=row["recording_url"],
        booked_slot=row["booked_slot"],
        completed_at=row["completed_at"],
        created_at=row["created_at"],
    )


__all__ = ["SCHEMA", "StageStore", "StoreTransaction", "utc_now"]
