from __future__ import annotations  # Candidate profile storage helpers

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from interview_stages.errors import NotFoundError, PersistenceError
from interview_stages.models import CandidateProfile


class CandidateStore:  # SQLite-backed candidate profile storage
    def __init__(self, path: Path) -> None:  # Initialize store and schema
        self._path = Path(path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:  # Create SQLite connection
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:  # Ensure candidate table exists
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS candidate_profiles (
                    candidate_id TEXT PRIMARY KEY,
                    full_name TEXT,
                    email TEXT,
                    profile_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to create candidate table: {exc}") from exc
        finally:
            conn.close()

    def list_candidates(self) -> List[CandidateProfile]:  # List candidates ordered by recency
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT candidate_id, profile_json
                FROM candidate_profiles
                ORDER BY datetime(created_at) DESC, candidate_id DESC
                """
            ).fetchall()
            return [_profile_from_row(row) for row in rows]
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to list candidates: {exc}") from exc
        finally:
            conn.close()

    def get_candidate(self, candidate_id: str) -> Optional[CandidateProfile]:  # Fetch one profile or None
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT candidate_id, profile_json FROM candidate_profiles WHERE candidate_id = ?",
                (candidate_id,),
            ).fetchone()
            return _profile_from_row(row) if row is not None else None
        except sqlite3.Error as exc:
            raise PersistenceError(f"Unable to load candidate '{candidate_id}': {exc}") from exc
        finally:
            conn.close()

    def require_candidate(self, candidate_id: str) -> CandidateProfile:
        profile = self.get_candidate(candidate_id)
        if profile is None:
            raise NotFoundError(f"Candidate '{candidate_id}' not found")
        return profile

    def create_candidate(self, profile: CandidateProfile) -> CandidateProfile:  # Persist a new candidate
        candidate_id = profile.candidate_id or uuid4().hex
        stored = profile.model_copy(update={"candidate_id": candidate_id})
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO candidate_profiles (candidate_id, full_name, email, profile_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    candidate_id,
                    stored.full_name,
                    stored.email,
                    json.dumps(stored.model_dump(by_alias=True)),
                    now,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise PersistenceError(f"Candidate '{candidate_id}' already exists") from exc
        finally:
            conn.close()
        return stored


def _profile_from_row(row: sqlite3.Row) -> CandidateProfile:
    profile = CandidateProfile.model_validate(json.loads(row["profile_json"]))
    return profile.model_copy(update={"candidate_id": row["candidate_id"]})


__all__ = ["CandidateStore"]
