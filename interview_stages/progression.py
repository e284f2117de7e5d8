"""Session progression controller: stage completion, pointer advance and final scoring."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from .catalog import StageCatalog
from .errors import NotFoundError, SessionStateError, StageValidationError
from .models import InterviewSession, StageDefinition, StageResult
from .store import StageStore, StoreTransaction, utc_now

CLOSING_FEEDBACK = "You have completed all interview stages."

StageResultBuilder = Callable[[Optional[StageResult]], StageResult]


@dataclass(frozen=True)
class Progression:
    """Outcome of completing one stage."""

    session: InterviewSession
    result: StageResult
    stage: StageDefinition
    next_stage: Optional[StageDefinition]
    replayed: bool = False

    @property
    def is_complete(self) -> bool:
        return self.session.is_completed

    @property
    def requires_slot_booking(self) -> bool:
        return self.next_stage is not None and self.next_stage.requires_slot_booking

    @property
    def should_send_email(self) -> bool:
        if self.replayed or self.next_stage is None:
            return False
        return self.stage.auto_progress_after_completion and self.next_stage.stage_type != "slot_booking"


def overall_score(results: List[StageResult]) -> Optional[float]:
    """Arithmetic mean of the scored stage results, or None when nothing was scored."""

    scores = [result.ai_score for result in results if result.ai_score is not None]
    if not scores:
        return None
    return sum(scores) / len(scores)


def ensure_open(session: InterviewSession) -> None:
    if session.is_completed:
        raise SessionStateError(f"Interview session '{session.id}' is already completed")


def ensure_current(session: InterviewSession, stage: StageDefinition) -> None:
    if session.current_stage_order != stage.order:
        raise StageValidationError(
            f"Stage {stage.order} is not the current stage (current stage: {session.current_stage_order})"
        )


class SessionProgressionController:
    """Moves a session through the catalog.

    Every completed stage advances the pointer, whether it passed or failed;
    the last stage closes the session with the mean of all stage scores.
    """

    def __init__(self, catalog: StageCatalog) -> None:
        self._catalog = catalog

    def complete_stage(
        self,
        store: StageStore,
        session_id: str,
        stage: StageDefinition,
        build: StageResultBuilder,
        *,
        require_existing: bool = False,
    ) -> Progression:
        """Persist the completed stage row and advance the session in one transaction.

        ``build`` receives the stored row (or None) and returns the row to save;
        it must set ``completed_at``. A stage that is already completed is
        returned unchanged with ``replayed=True``.
        """

        with store.transaction() as tx:
            session = tx.get_session(session_id)
            existing = tx.get_stage_result(session_id, stage.order)
            if existing is not None and existing.is_completed:
                return self.replay(session, existing, stage)
            if existing is None and require_existing:
                raise NotFoundError(
                    f"No questions generated for stage {stage.order} of session '{session_id}'"
                )
            ensure_open(session)
            ensure_current(session, stage)
            completed = build(existing)
            if completed.completed_at is None:
                completed = completed.model_copy(update={"completed_at": utc_now()})
            saved = tx.save_stage_result(completed)
            return self.advance(tx, session, stage, saved)

    def advance(
        self,
        tx: StoreTransaction,
        session: InterviewSession,
        stage: StageDefinition,
        result: StageResult,
    ) -> Progression:
        stages_completed = list(session.stages_completed)
        if stage.name not in stages_completed:
            stages_completed.append(stage.name)
        next_stage = self._catalog.next_after(stage.order)
        if next_stage is not None:
            updated = session.model_copy(
                update={
                    "current_stage_order": max(session.current_stage_order, next_stage.order),
                    "stages_completed": stages_completed,
                    "status": "in_progress",
                    "started_at": session.started_at or utc_now(),
                }
            )
        else:
            now = utc_now()
            updated = session.model_copy(
                update={
                    "stages_completed": stages_completed,
                    "status": "completed",
                    "overall_score": overall_score(tx.list_stage_results(session.id)),
                    "overall_feedback": CLOSING_FEEDBACK,
                    "completed_at": now,
                }
            )
        saved = tx.update_session(updated)
        return Progression(session=saved, result=result, stage=stage, next_stage=next_stage)

    def replay(self, session: InterviewSession, result: StageResult, stage: StageDefinition) -> Progression:
        next_stage = self._catalog.next_after(stage.order)
        return Progression(session=session, result=result, stage=stage, next_stage=next_stage, replayed=True)


__all__ = [
    "CLOSING_FEEDBACK",
    "Progression",
    "SessionProgressionController",
    "StageResultBuilder",
    "ensure_current",
    "ensure_open",
    "overall_score",
]
