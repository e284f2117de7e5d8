"""Inference client abstraction over the LLM gateway."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel

from config import LlmRoute, load_app_registry
from llm_gateway import (
    HttpClient,
    LlmGatewayError,
    LlmQuotaExceededError,
    LlmRateLimitedError,
    Tool,
    call,
)

from .errors import ExternalServiceError, QuotaExhaustedError, RateLimitedError
from .models import EvaluationOutcome, QuestionSet

T = TypeVar("T", bound=BaseModel)

QUESTIONS_ROUTE_KEY = "interview_stages.generate_questions"
EVALUATION_ROUTE_KEY = "interview_stages.evaluate_answers"


@dataclass(frozen=True)
class Prompt:
    """System instruction, user task and the tool the model must call."""

    system: str
    task: str
    tool_name: str
    tool_description: str = ""


class InferenceClient(Protocol):
    def complete(self, prompt: Prompt, schema: Type[T]) -> T: ...


class GatewayInferenceClient:
    """InferenceClient backed by configured LLM routes, one per output schema."""

    def __init__(self, routes: Dict[Type[BaseModel], LlmRoute], *, client: Optional[HttpClient] = None) -> None:
        self._routes = dict(routes)
        self._client = client

    def complete(self, prompt: Prompt, schema: Type[T]) -> T:
        route = self._routes.get(schema)
        if route is None:
            raise ExternalServiceError(f"No LLM route configured for {schema.__name__}")
        try:
            return call(
                prompt.task,
                schema,
                cfg=route,
                tool=Tool(name=prompt.tool_name, description=prompt.tool_description),
                system=prompt.system,
                client=self._client,
            )
        except LlmRateLimitedError as exc:
            raise RateLimitedError("Rate limit exceeded, please try again later.") from exc
        except LlmQuotaExceededError as exc:
            raise QuotaExhaustedError("AI credits exhausted, please add funds.") from exc
        except LlmGatewayError as exc:
            raise ExternalServiceError(f"AI request failed: {exc}") from exc


def gateway_client_from_config(config_path: Path, *, client: Optional[HttpClient] = None) -> GatewayInferenceClient:
    """Build the gateway client from the JSON app config."""

    registry = load_app_registry(
        config_path,
        {QUESTIONS_ROUTE_KEY: QuestionSet, EVALUATION_ROUTE_KEY: EvaluationOutcome},
    )
    routes = {schema: route for route, schema in registry.values()}
    return GatewayInferenceClient(routes, client=client)


__all__ = [
    "EVALUATION_ROUTE_KEY",
    "GatewayInferenceClient",
    "InferenceClient",
    "Prompt",
    "QUESTIONS_ROUTE_KEY",
    "gateway_client_from_config",
]
