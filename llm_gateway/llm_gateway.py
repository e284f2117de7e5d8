"""Structured-output LLM calls over an OpenAI-compatible chat completions API.

The model is forced to call a single function tool whose parameters are the
JSON schema of the requested pydantic model; the tool arguments are validated
against that model, with a bounded number of corrective retries.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from contextlib import contextmanager, nullcontext
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config import LlmRoute

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()


class HttpResponse(Protocol):
    @property
    def status_code(self) -> int: ...

    @property
    def text(self) -> str: ...

    def json(self) -> Any: ...


class HttpClient(Protocol):  # Anything with an httpx-style post()
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> HttpResponse: ...


class LlmGatewayError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LlmRateLimitedError(LlmGatewayError):  # 429
    pass


class LlmQuotaExceededError(LlmGatewayError):  # 402
    pass


class Tool(BaseModel):
    name: str
    description: str = ""


def call(
    task: str,
    schema: Type[T],
    *,
    cfg: LlmRoute,
    tool: Tool,
    system: Optional[str] = None,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Single-turn convenience wrapper around :func:`chat`."""

    messages = [{"role": "system", "content": system}] if system else []
    messages.append({"role": "user", "content": task})
    return chat(messages, schema, cfg=cfg, tool=tool, client=client, options=options)


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    tool: Tool,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:
    """Send ``messages`` and return the forced tool call's arguments as ``schema``.

    Raises LlmRateLimitedError on 429, LlmQuotaExceededError on 402 and
    LlmGatewayError for any other failure, including arguments that still
    fail validation after ``cfg.max_retries`` retries.
    """

    conversation = _checked_messages(messages)
    attempts = cfg.max_retries + 1
    logger.info("LLM call route=%s model=%s tool=%s attempts=%d", cfg.name, cfg.model, tool.name, attempts)
    failure: Optional[Exception] = None
    with _route_lock(cfg):
        for attempt in range(1, attempts + 1):
            sent = conversation if failure is None else conversation + [_retry_hint(failure)]
            payload = _payload(cfg, tool, schema, sent, options)
            arguments = _tool_arguments(_send(cfg, payload, client))
            try:
                result = schema.model_validate_json(_strip_code_fences(arguments))
            except (ValidationError, ValueError) as exc:
                logger.warning("LLM tool arguments rejected route=%s attempt=%d: %s", cfg.name, attempt, exc)
                failure = exc
                continue
            logger.info("LLM call done route=%s attempt=%d", cfg.name, attempt)
            return result
    raise LlmGatewayError(f"LLM output failed validation after {attempts} attempts") from failure


def _route_lock(cfg: LlmRoute) -> ContextManager[Any]:  # Serialise calls on sequential routes
    if not cfg.sequential:
        return nullcontext()
    with _ROUTE_LOCKS_GUARD:
        return _ROUTE_LOCKS.setdefault(cfg.name or cfg.url, threading.Lock())


def _checked_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    checked: List[Dict[str, str]] = []
    for message in messages:
        role = str(message.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        checked.append({"role": role, "content": str(message.get("content", ""))})
    return checked


def _payload(
    cfg: LlmRoute,
    tool: Tool,
    schema: Type[BaseModel],
    messages: List[Dict[str, str]],
    options: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": cfg.model,
        "messages": messages,
        "tools": [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": schema.model_json_schema(),
                },
            }
        ],
        "tool_choice": {"type": "function", "function": {"name": tool.name}},
    }
    payload.update(cfg.options)
    payload.update(options or {})
    return payload


def _headers(cfg: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv(cfg.api_key_env) if cfg.api_key_env else None
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return headers


@contextmanager
def _http(client: Optional[HttpClient], timeout: float) -> Iterator[HttpClient]:
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=timeout) as owned:
        yield owned  # type: ignore[misc]


def _send(cfg: LlmRoute, payload: Dict[str, Any], client: Optional[HttpClient]) -> Any:
    """POST the payload and return the decoded JSON body."""

    try:
        with _http(client, cfg.timeout_s) as http:
            response = http.post(cfg.url, json=payload, headers=_headers(cfg), timeout=cfg.timeout_s)
            status = response.status_code
            if status == 429:
                raise LlmRateLimitedError("LLM gateway rate limit exceeded", status_code=status)
            if status == 402:
                raise LlmQuotaExceededError("LLM gateway credits exhausted", status_code=status)
            if status >= 400:
                logger.error("LLM error route=%s status=%s body=%s", cfg.name, status, (response.text or "")[:200])
                raise LlmGatewayError(f"LLM returned status {status}", status_code=status)
            return response.json()
    except LlmGatewayError:
        raise
    except httpx.HTTPError as exc:
        logger.error("LLM transport failure route=%s: %s", cfg.name, exc)
        raise LlmGatewayError("LLM transport failed") from exc
    except ValueError as exc:
        raise LlmGatewayError("LLM payload was not JSON") from exc


def _tool_arguments(data: Any) -> str:
    """Arguments of the first tool call, falling back to plain message content."""

    try:
        message = data["choices"][0]["message"]
    except (KeyError, IndexError, TypeError):
        raise LlmGatewayError("LLM response has no message") from None
    for tool_call in message.get("tool_calls") or []:
        arguments = (tool_call.get("function") or {}).get("arguments")
        if isinstance(arguments, dict):
            return json.dumps(arguments)
        if isinstance(arguments, str) and arguments.strip():
            return arguments
    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return content
    raise LlmGatewayError("LLM response missing tool call arguments")


def _strip_code_fences(content: str) -> str:
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _retry_hint(error: Exception) -> Dict[str, str]:
    reason = str(error).splitlines()[0].strip()[:200] if str(error) else ""
    text = "The previous tool call failed validation."
    if reason:
        text += f" Reason: {reason}."
    return {"role": "system", "content": text + " Call the tool again with arguments that match its schema."}


__all__ = [
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "LlmQuotaExceededError",
    "LlmRateLimitedError",
    "Tool",
    "call",
    "chat",
]
