"""Pydantic schemas for the mock interview API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from interview_stages.models import (
    Answer,
    CamelModel,
    CandidateProfile,
    EvaluationOutcome,
    InterviewSession,
    Question,
    StageDefinition,
    StageResult,
)

ACTIONS = (
    "get_stages",
    "generate_questions",
    "evaluate_answers",
    "complete_instructions",
    "book_slot",
    "complete_demo_feedback",
    "acknowledge_stage",
)
LLM_ACTIONS = ("generate_questions", "evaluate_answers")


class ActionReq(CamelModel):
    action: str
    session_id: Optional[str] = None
    stage_order: Optional[int] = None
    candidate_profile: Optional[CandidateProfile] = None
    answers: Optional[List[Answer]] = None
    recording_url: Optional[str] = None
    booked_slot: Optional[str] = None


class StartSessionReq(CamelModel):
    candidate_id: str
    candidate_profile: Optional[CandidateProfile] = None


class StagesResp(CamelModel):
    stages: List[StageDefinition] = Field(default_factory=list)


class QuestionsResp(CamelModel):
    questions: List[Question] = Field(default_factory=list)


class ProgressionResp(CamelModel):
    success: bool = True
    session: InterviewSession
    next_stage: Optional[StageDefinition] = None
    session_completed: bool = False
    requires_slot_booking: bool = False
    should_send_email: bool = False
    replayed: bool = False


class EvaluationResp(ProgressionResp):
    evaluation: EvaluationOutcome


class SessionResp(CamelModel):
    session: InterviewSession
    current_stage: Optional[StageDefinition] = None
    results: List[StageResult] = Field(default_factory=list)


class ErrorBody(CamelModel):
    code: str
    message: str


class ErrorResp(CamelModel):
    error: ErrorBody
