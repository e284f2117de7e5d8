"""Lightweight CLI helpers for inspecting interview session tables."""
from __future__ import annotations

import argparse
import json
import sqlite3
from typing import List, Optional

from config.settings import settings


def tail_sessions(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT updated_at, id, candidate_id, current_stage_order, status, overall_score, stages_completed
            FROM interview_sessions
            ORDER BY updated_at DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, session_id, candidate_id, stage_order, status, score, completed = row
            done = len(json.loads(completed or "[]"))
            score_text = "-" if score is None else f"{score:.1f}"
            print(f"[{ts}] {session_id}/{candidate_id} stage={stage_order} status={status} score={score_text} done={done}")
    finally:
        conn.close()


def show_session(session_id: str) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT candidate_id, current_stage_order, status, overall_score FROM interview_sessions WHERE id = ?",
            (session_id,),
        )
        session = cursor.fetchone()
        if session is None:
            print(f"session {session_id} not found")
            return
        candidate_id, stage_order, status, score = session
        print(f"{session_id} candidate={candidate_id} stage={stage_order} status={status} score={score}")
        cursor.execute(
            """
            SELECT stage_order, stage_name, ai_score, passed, booked_slot, completed_at
            FROM stage_results
            WHERE session_id = ?
            ORDER BY stage_order ASC
            """,
            (session_id,),
        )
        for stage_order, name, ai_score, passed, slot, completed_at in cursor.fetchall():
            verdict = "-" if passed is None else ("pass" if passed else "fail")
            extra = f" slot={slot}" if slot else ""
            print(f"  {stage_order}. {name} score={ai_score} {verdict} completed={completed_at}{extra}")
    finally:
        conn.close()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-sessions", type=int, help="Show the most recently updated sessions")
    parser.add_argument("--session", help="Show one session with its stage results")
    args = parser.parse_args(argv)

    if args.tail_sessions:
        tail_sessions(args.tail_sessions)
    if args.session:
        show_session(args.session)


if __name__ == "__main__":
    main()
