"""Staged mock interview protocol: catalog, questions, evaluation and progression."""
from .answer_evaluator import AnswerEvaluator, normalize_outcome
from .catalog import DEFAULT_STAGES, StageCatalog, default_catalog, load_catalog
from .errors import (
    ExternalServiceError,
    InterviewStageError,
    NotFoundError,
    PersistenceError,
    QuotaExhaustedError,
    RateLimitedError,
    SessionStateError,
    StageValidationError,
    user_message,
)
from .inference import GatewayInferenceClient, InferenceClient, Prompt, gateway_client_from_config
from .models import (
    CandidateProfile,
    EvaluationOutcome,
    InterviewSession,
    Question,
    QuestionScore,
    QuestionSet,
    StageDefinition,
    StageResult,
)
from .progression import Progression, SessionProgressionController
from .question_generator import QuestionGenerator
from .service import InterviewStageService, SessionView, StageEvaluation
from .store import StageStore

__all__ = [
    "AnswerEvaluator",
    "CandidateProfile",
    "DEFAULT_STAGES",
    "EvaluationOutcome",
    "ExternalServiceError",
    "GatewayInferenceClient",
    "InferenceClient",
    "InterviewSession",
    "InterviewStageError",
    "InterviewStageService",
    "NotFoundError",
    "PersistenceError",
    "Progression",
    "Prompt",
    "Question",
    "QuestionGenerator",
    "QuestionScore",
    "QuestionSet",
    "QuotaExhaustedError",
    "RateLimitedError",
    "SessionProgressionController",
    "SessionStateError",
    "SessionView",
    "StageCatalog",
    "StageDefinition",
    "StageEvaluation",
    "StageResult",
    "StageStore",
    "StageValidationError",
    "default_catalog",
    "gateway_client_from_config",
    "load_catalog",
    "normalize_outcome",
    "user_message",
]
