"""FastAPI routes for mock interview stage actions."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

from fastapi import APIRouter, HTTPException

from api.schemas import (
    ACTIONS,
    LLM_ACTIONS,
    ActionReq,
    EvaluationResp,
    ProgressionResp,
    QuestionsResp,
    SessionResp,
    StagesResp,
    StartSessionReq,
)
from candidate_management import CandidateStore
from config import INFERENCE_KEY, NOTIFIER_KEY, get_model, is_bound
from config.settings import settings
from interview_stages import (
    CandidateProfile,
    ExternalServiceError,
    InterviewStageError,
    InterviewStageService,
    Progression,
    StageStore,
    StageValidationError,
    load_catalog,
    user_message,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/mock-interviews")
candidates_router = APIRouter(prefix="/api/candidates")


def _candidate_store() -> CandidateStore:
    return CandidateStore(Path(settings.DB_PATH))


def _service(*, inference_required: bool = True) -> InterviewStageService:  # Build from current settings and bindings
    if inference_required and not is_bound(INFERENCE_KEY):
        raise ExternalServiceError("No inference client configured")
    return InterviewStageService(
        StageStore(Path(settings.DB_PATH)),
        load_catalog(settings.STAGE_CATALOG_PATH),
        get_model(INFERENCE_KEY) if is_bound(INFERENCE_KEY) else None,
        notifier=get_model(NOTIFIER_KEY) if is_bound(NOTIFIER_KEY) else None,
        candidates=_candidate_store(),
    )


def _raise_http(exc: InterviewStageError) -> NoReturn:
    if exc.status_code >= 500:
        logger.error("Stage action failed: %s", exc.message)
    else:
        logger.info("Stage action rejected (%s): %s", exc.code, exc.message)
    raise HTTPException(
        status_code=exc.status_code,
        detail={"code": exc.code, "message": user_message(exc)},
    ) from exc


def _progression_payload(progression: Progression) -> Dict[str, Any]:
    return dict(
        session=progression.session,
        next_stage=progression.next_stage,
        session_completed=progression.is_complete,
        requires_slot_booking=progression.requires_slot_booking,
        should_send_email=progression.should_send_email,
        replayed=progression.replayed,
    )


def _require_session_id(req: ActionReq) -> str:
    if not req.session_id or not req.session_id.strip():
        raise StageValidationError("sessionId is required")
    return req.session_id.strip()


def _dispatch(service: InterviewStageService, req: ActionReq) -> Dict[str, Any]:
    if req.action not in ACTIONS:
        raise StageValidationError(f"Invalid action: {req.action}")
    session_id = _require_session_id(req)
    if req.action == "generate_questions":
        questions = service.generate_questions(session_id, req.stage_order, req.candidate_profile)
        return QuestionsResp(questions=questions).model_dump(by_alias=True)
    if req.action == "evaluate_answers":
        result = service.evaluate_answers(
            session_id,
            req.stage_order,
            req.answers,
            recording_url=req.recording_url,
            profile=req.candidate_profile,
        )
        payload = _progression_payload(result.progression)
        return EvaluationResp(evaluation=result.outcome, **payload).model_dump(by_alias=True)

    if req.action == "complete_instructions":
        progression = service.complete_instructions(session_id, req.stage_order)
    elif req.action == "book_slot":
        progression = service.book_slot(session_id, req.stage_order, req.booked_slot)
    elif req.action == "complete_demo_feedback":
        progression = service.complete_demo_feedback(session_id, req.stage_order)
    else:
        progression = service.acknowledge_stage(session_id, req.stage_order)
    return ProgressionResp(**_progression_payload(progression)).model_dump(by_alias=True)


@router.post("/actions")
def run_action(req: ActionReq) -> Dict[str, Any]:
    if req.action == "get_stages":
        return list_stages()
    try:
        return _dispatch(_service(inference_required=req.action in LLM_ACTIONS), req)
    except InterviewStageError as exc:
        _raise_http(exc)


@router.get("/stages")
def list_stages() -> Dict[str, Any]:
    try:
        stages = _service(inference_required=False).get_stages()
    except InterviewStageError as exc:
        _raise_http(exc)
    return StagesResp(stages=stages).model_dump(by_alias=True)


@router.post("/sessions", status_code=201)
def start_session(req: StartSessionReq) -> Dict[str, Any]:
    try:
        session = _service(inference_required=False).start_session(req.candidate_id, req.candidate_profile)
    except InterviewStageError as exc:
        _raise_http(exc)
    return session.model_dump(by_alias=True)


@router.get("/sessions")
def list_sessions(candidate_id: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    try:
        sessions = _service(inference_required=False).list_sessions(candidate_id, limit)
    except InterviewStageError as exc:
        _raise_http(exc)
    return [session.model_dump(by_alias=True) for session in sessions]


@router.get("/sessions/{session_id}")
def fetch_session(session_id: str) -> Dict[str, Any]:
    try:
        view = _service(inference_required=False).get_session(session_id)
    except InterviewStageError as exc:
        _raise_http(exc)
    return SessionResp(session=view.session, current_stage=view.current_stage, results=view.results).model_dump(
        by_alias=True
    )


@candidates_router.get("")
def list_candidates() -> List[Dict[str, Any]]:
    try:
        profiles = _candidate_store().list_candidates()
    except InterviewStageError as exc:
        _raise_http(exc)
    return [profile.model_dump(by_alias=True) for profile in profiles]


@candidates_router.post("", status_code=201)
def create_candidate(profile: CandidateProfile) -> Dict[str, Any]:
    try:
        stored = _candidate_store().create_candidate(profile)
    except InterviewStageError as exc:
        _raise_http(exc)
    return stored.model_dump(by_alias=True)


@candidates_router.get("/{candidate_id}")
def fetch_candidate(candidate_id: str) -> Dict[str, Any]:
    try:
        profile = _candidate_store().require_candidate(candidate_id)
    except InterviewStageError as exc:
        _raise_http(exc)
    return profile.model_dump(by_alias=True)
