"""Domain models for the interview stage protocol."""
from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

StageType = Literal["email_info", "slot_booking", "assessment", "demo", "feedback", "hr_documents", "review"]
QuestionType = Literal["text", "multiple_choice", "scenario"]
SessionStatus = Literal["pending", "in_progress", "completed"]
Answer = Union[str, int, None]


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire (API payloads and LLM tool schemas)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StageDefinition(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    order: int = Field(ge=1)
    description: str
    question_count: int = Field(default=0, ge=0)
    time_per_question_seconds: int = Field(default=0, ge=0)
    passing_score_percent: int = Field(default=0, ge=0, le=100)
    stage_type: StageType = "assessment"
    requires_slot_booking: bool = False
    auto_progress_after_completion: bool = True

    @property
    def has_questions(self) -> bool:
        return self.question_count > 0


class Question(CamelModel):
    id: int
    question: str
    type: QuestionType = "text"
    options: List[str] = Field(default_factory=list)
    expected_points: List[str] = Field(default_factory=list)
    category: str = "General"

    @model_validator(mode="after")
    def _options_only_for_choice(self) -> "Question":
        # options are present iff the question is multiple choice
        if self.type != "multiple_choice":
            self.options = []
        elif not self.options:
            self.type = "text"
        return self


class QuestionSet(CamelModel):
    """Tool arguments returned by the question generation call."""

    questions: List[Question] = Field(default_factory=list)


class QuestionScore(CamelModel):
    question_id: int
    score: float
    feedback: str = ""


class EvaluationOutcome(CamelModel):
    overall_score: float
    passed: bool
    feedback: str
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    question_scores: List[QuestionScore] = Field(default_factory=list)


class CandidateProfile(CamelModel):
    """Loosely structured candidate attributes; every field may be absent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    candidate_id: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    preferred_role: Optional[str] = None
    experience_level: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    highest_qualification: Optional[str] = None
    primary_subject: Optional[str] = None
    classes_handled: Optional[str] = None
    segment: Optional[str] = None

    @field_validator("skills", mode="before")
    @classmethod
    def _split_skills(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("classes_handled", mode="before")
    @classmethod
    def _join_classes(cls, value):
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value)
        return value


class StageResult(CamelModel):
    id: Optional[int] = None
    session_id: str
    stage_name: str
    stage_order: int
    questions: List[Question] = Field(default_factory=list)
    answers: Optional[List[Answer]] = None
    ai_score: Optional[float] = None
    ai_feedback: Optional[str] = None
    passed: Optional[bool] = None
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    question_scores: List[QuestionScore] = Field(default_factory=list)
    recording_url: Optional[str] = None
    booked_slot: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def outcome(self) -> Optional[EvaluationOutcome]:
        """Rebuild the stored evaluation, or None for unscored rows."""

        if self.ai_score is None or self.passed is None:
            return None
        return EvaluationOutcome(
            overall_score=self.ai_score,
            passed=self.passed,
            feedback=self.ai_feedback or "",
            strengths=list(self.strengths),
            improvements=list(self.improvements),
            question_scores=list(self.question_scores),
        )


class InterviewSession(CamelModel):
    id: str
    candidate_id: str
    current_stage_order: int = 1
    stages_completed: List[str] = Field(default_factory=list)
    status: SessionStatus = "pending"
    overall_score: Optional[float] = None
    overall_feedback: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


__all__ = [
    "Answer",
    "CamelModel",
    "CandidateProfile",
    "EvaluationOutcome",
    "InterviewSession",
    "Question",
    "QuestionScore",
    "QuestionSet",
    "QuestionType",
    "SessionStatus",
    "StageDefinition",
    "StageResult",
    "StageType",
]
