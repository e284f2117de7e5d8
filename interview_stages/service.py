"""Stage actions: question generation, evaluation, checkpoints and session start."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from notifications import Notifier, StageInvitation, dispatch_stage_invitation
from observability import log_event, span

from .answer_evaluator import AnswerEvaluator
from .catalog import StageCatalog
from .errors import ExternalServiceError, NotFoundError, PersistenceError, SessionStateError, StageValidationError
from .inference import InferenceClient
from .models import (
    Answer,
    CandidateProfile,
    EvaluationOutcome,
    InterviewSession,
    Question,
    StageDefinition,
    StageResult,
)
from .progression import Progression, SessionProgressionController, ensure_current, ensure_open
from .question_generator import QuestionGenerator
from .store import StageStore

logger = logging.getLogger(__name__)

CHECKPOINT_TYPES = ("email_info", "slot_booking", "feedback")


class CandidateLookup(Protocol):
    def get_candidate(self, candidate_id: str) -> Optional[CandidateProfile]: ...


@dataclass(frozen=True)
class StageEvaluation:
    """Evaluation of one stage plus where the session went next."""

    outcome: EvaluationOutcome
    progression: Progression

    @property
    def replayed(self) -> bool:
        return self.progression.replayed


@dataclass(frozen=True)
class SessionView:
    session: InterviewSession
    current_stage: Optional[StageDefinition] = None
    results: List[StageResult] = field(default_factory=list)


class InterviewStageService:
    """Entry point for every stage action; one instance per request is fine."""

    def __init__(
        self,
        store: StageStore,
        catalog: StageCatalog,
        inference: Optional[InferenceClient],
        *,
        notifier: Optional[Notifier] = None,
        candidates: Optional[CandidateLookup] = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._inference = inference
        self._generator = QuestionGenerator(inference)
        self._evaluator = AnswerEvaluator(inference)
        self._controller = SessionProgressionController(catalog)
        self._notifier = notifier
        self._candidates = candidates

    def get_stages(self) -> List[StageDefinition]:
        return self._catalog.stages

    def get_session(self, session_id: str) -> SessionView:
        session = self._store.get_session(session_id)
        current = None if session.is_completed else self._catalog.definition_for_order(session.current_stage_order)
        results = self._store.list_stage_results(session_id)
        return SessionView(session=session, current_stage=current, results=results)

    def list_sessions(self, candidate_id: Optional[str] = None, limit: int = 50) -> List[InterviewSession]:
        return self._store.list_sessions(candidate_id, limit)

    def start_session(self, candidate_id: str, profile: Optional[CandidateProfile] = None) -> InterviewSession:
        """Open a session at the first stage and invite the candidate to it."""

        if not candidate_id or not candidate_id.strip():
            raise StageValidationError("candidateId is required")
        first = self._catalog.first
        session = self._store.create_session(candidate_id.strip(), first.order)
        log_event("session_started", session.id, candidate_id=session.candidate_id, stage_order=first.order)
        self._invite(session, first, self._profile_for(session, profile))
        return session

    def generate_questions(
        self,
        session_id: str,
        stage_order: Optional[int],
        profile: Optional[CandidateProfile] = None,
    ) -> List[Question]:
        """Generate and store questions for the session's current stage.

        An unevaluated row is replaced; stages without questions return an
        empty list and store nothing.
        """

        stage = self._catalog.definition_for_order(stage_order)
        session = self._store.get_session(session_id)
        ensure_open(session)
        existing = self._store.get_stage_result(session_id, stage.order)
        if existing is not None and existing.is_completed:
            raise SessionStateError(f"Stage {stage.order} has already been evaluated")
        ensure_current(session, stage)
        if not stage.has_questions:
            return []

        self._require_inference()
        with span("llm_generate_questions", session_id, stage_order=stage.order):
            questions = self._generator.generate(stage, self._profile_for(session, profile))

        with self._store.transaction() as tx:
            current = tx.get_session(session_id)
            ensure_open(current)
            stored = tx.get_stage_result(session_id, stage.order)
            if stored is not None and stored.is_completed:
                raise SessionStateError(f"Stage {stage.order} has already been evaluated")
            ensure_current(current, stage)
            tx.save_stage_result(
                StageResult(
                    session_id=session_id,
                    stage_name=stage.name,
                    stage_order=stage.order,
                    questions=questions,
                    created_at=stored.created_at if stored is not None else None,
                )
            )
        log_event("questions_generated", session_id, stage_order=stage.order, stage=stage.name, count=len(questions))
        return questions

    def evaluate_answers(
        self,
        session_id: str,
        stage_order: Optional[int],
        answers: Optional[Sequence[Answer]],
        *,
        recording_url: Optional[str] = None,
        profile: Optional[CandidateProfile] = None,
    ) -> StageEvaluation:
        """Score the stage, store the result and advance the session.

        Repeating the call for an evaluated stage returns the stored
        evaluation without calling the model.
        """

        stage = self._catalog.definition_for_order(stage_order)
        if not stage.has_questions:
            raise StageValidationError(f"Stage {stage.order} has no questions to evaluate")
        session = self._store.get_session(session_id)
        existing = self._store.get_stage_result(session_id, stage.order)
        if existing is None or not existing.questions:
            raise NotFoundError(f"No questions generated for stage {stage.order} of session '{session_id}'")
        if existing.is_completed:
            return self._replayed(self._controller.replay(session, existing, stage))
        ensure_open(session)
        ensure_current(session, stage)
        if answers is None:
            raise StageValidationError("answers are required")
        submitted = list(answers)
        questions = existing.questions

        self._require_inference()
        with span("llm_evaluate_answers", session_id, stage_order=stage.order):
            outcome = self._evaluator.evaluate(stage, questions, submitted, self._profile_for(session, profile))

        def build(row: Optional[StageResult]) -> StageResult:
            if row is None:
                raise NotFoundError(f"No questions generated for stage {stage.order} of session '{session_id}'")
            return row.model_copy(
                update={
                    "answers": submitted,
                    "ai_score": outcome.overall_score,
                    "ai_feedback": outcome.feedback,
                    "passed": outcome.passed,
                    "strengths": outcome.strengths,
                    "improvements": outcome.improvements,
                    "question_scores": outcome.question_scores,
                    "recording_url": recording_url,
                }
            )

        progression = self._controller.complete_stage(
            self._store, session_id, stage, build, require_existing=True
        )
        if progression.replayed:
            return self._replayed(progression)
        log_event(
            "stage_evaluated",
            session_id,
            stage_order=stage.order,
            stage=stage.name,
            score=outcome.overall_score,
            passed=outcome.passed,
        )
        self._after_progression(progression, profile)
        return StageEvaluation(outcome=outcome, progression=progression)

    def complete_instructions(self, session_id: str, stage_order: Optional[int]) -> Progression:
        stage = self._checkpoint_stage(stage_order, "email_info")
        return self._complete_checkpoint(session_id, stage, lambda row: row)

    def book_slot(self, session_id: str, stage_order: Optional[int], booked_slot: Optional[str]) -> Progression:
        stage = self._checkpoint_stage(stage_order, "slot_booking")
        slot = (booked_slot or "").strip()
        if not slot:
            raise StageValidationError("bookedSlot is required")
        return self._complete_checkpoint(
            session_id, stage, lambda row: row.model_copy(update={"booked_slot": slot})
        )

    def complete_demo_feedback(self, session_id: str, stage_order: Optional[int]) -> Progression:
        """Close the feedback stage, carrying over the demo round's strengths and improvements."""

        stage = self._checkpoint_stage(stage_order, "feedback")
        demo = self._latest_demo_result(session_id, stage.order)

        def build(row: StageResult) -> StageResult:
            if demo is None:
                return row
            return row.model_copy(
                update={
                    "ai_feedback": demo.ai_feedback,
                    "strengths": list(demo.strengths),
                    "improvements": list(demo.improvements),
                }
            )

        return self._complete_checkpoint(session_id, stage, build)

    def acknowledge_stage(self, session_id: str, stage_order: Optional[int]) -> Progression:
        stage = self._catalog.definition_for_order(stage_order)
        if stage.has_questions or stage.stage_type in CHECKPOINT_TYPES:
            raise StageValidationError(f"Stage {stage.order} cannot be acknowledged")
        return self._complete_checkpoint(session_id, stage, lambda row: row)

    def _checkpoint_stage(self, stage_order: Optional[int], stage_type: str) -> StageDefinition:
        stage = self._catalog.definition_for_order(stage_order)
        if stage.stage_type != stage_type or stage.has_questions:
            raise StageValidationError(f"Stage {stage.order} is not a {stage_type} stage")
        return stage

    def _complete_checkpoint(
        self,
        session_id: str,
        stage: StageDefinition,
        decorate: Callable[[StageResult], StageResult],
    ) -> Progression:
        def build(row: Optional[StageResult]) -> StageResult:
            base = StageResult(
                session_id=session_id,
                stage_name=stage.name,
                stage_order=stage.order,
                created_at=row.created_at if row is not None else None,
            )
            return decorate(base)

        progression = self._controller.complete_stage(self._store, session_id, stage, build)
        if not progression.replayed:
            log_event("checkpoint_completed", session_id, stage_order=stage.order, stage=stage.name)
            self._after_progression(progression, None)
        return progression

    def _latest_demo_result(self, session_id: str, before_order: int) -> Optional[StageResult]:
        demo_orders = {stage.order for stage in self._catalog if stage.stage_type == "demo"}
        evaluated = [
            result
            for result in self._store.list_stage_results(session_id)
            if result.stage_order in demo_orders
            and result.stage_order < before_order
            and result.ai_score is not None
        ]
        return evaluated[-1] if evaluated else None

    def _replayed(self, progression: Progression) -> StageEvaluation:
        outcome = progression.result.outcome()
        if outcome is None:
            raise SessionStateError(f"Stage {progression.stage.order} was completed without an evaluation")
        log_event("stage_evaluated", progression.session.id, stage_order=progression.stage.order, action="replayed")
        return StageEvaluation(outcome=outcome, progression=progression)

    def _after_progression(self, progression: Progression, profile: Optional[CandidateProfile]) -> None:
        session = progression.session
        if progression.is_complete:
            log_event(
                "session_completed",
                session.id,
                score=session.overall_score,
                status=session.status,
            )
            return
        log_event(
            "session_advanced",
            session.id,
            stage_order=progression.stage.order,
            next_stage_order=session.current_stage_order,
            status=session.status,
        )
        if progression.should_send_email and progression.next_stage is not None:
            self._invite(
                session,
                progression.next_stage,
                self._profile_for(session, profile),
                booked_slot=progression.result.booked_slot,
            )

    def _invite(
        self,
        session: InterviewSession,
        stage: StageDefinition,
        profile: Optional[CandidateProfile],
        *,
        booked_slot: Optional[str] = None,
    ) -> bool:
        if profile is None or not profile.email:
            logger.info("No candidate email for session=%s; skipping invitation", session.id)
            return False
        invitation = StageInvitation(
            candidate_email=profile.email,
            candidate_name=profile.full_name or "Candidate",
            session_id=session.id,
            stage_order=stage.order,
            stage_name=stage.name,
            stage_description=stage.description,
            stage_type=stage.stage_type,
            total_stages=len(self._catalog),
            question_count=stage.question_count,
            time_per_question_seconds=stage.time_per_question_seconds,
            booked_slot=booked_slot,
        )
        return dispatch_stage_invitation(self._notifier, invitation)

    def _require_inference(self) -> None:
        if self._inference is None:
            raise ExternalServiceError("No inference client configured")

    def _profile_for(
        self, session: InterviewSession, profile: Optional[CandidateProfile]
    ) -> Optional[CandidateProfile]:
        if profile is not None:
            return profile
        if self._candidates is None:
            return None
        try:
            return self._candidates.get_candidate(session.candidate_id)
        except PersistenceError as exc:
            logger.warning("Candidate lookup failed for session=%s: %s", session.id, exc.message)
            log_event("notification_failed", session.id, level=logging.WARNING, error=exc.message)
            return None


__all__ = [
    "CandidateLookup",
    "InterviewStageService",
    "SessionView",
    "StageEvaluation",
]
