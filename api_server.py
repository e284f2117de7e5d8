from __future__ import annotations  # FastAPI server exposing the mock interview stage protocol

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import candidates_router, router
from api.schemas import ErrorBody, ErrorResp
from config import INFERENCE_KEY, NOTIFIER_KEY, bind_model, is_bound
from config.settings import settings
from interview_stages import gateway_client_from_config
from notifications import notifier_from_settings


logger = logging.getLogger(__name__)


def bind_defaults() -> None:  # Bind gateway inference and email notifier unless already bound
    if not is_bound(INFERENCE_KEY):
        config_path = Path(settings.APP_CONFIG_PATH)
        if config_path.exists():
            bind_model(INFERENCE_KEY, gateway_client_from_config(config_path))
        else:
            logger.warning("LLM config %s not found; stage actions needing AI will fail", config_path)
    if not is_bound(NOTIFIER_KEY):
        bind_model(NOTIFIER_KEY, notifier_from_settings(settings))


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    bind_defaults()
    yield


app = FastAPI(title="Mock Interview Stages API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.exception_handler(HTTPException)
async def error_envelope(_: Request, exc: HTTPException) -> JSONResponse:  # Wrap errors as {"error": {code, message}}
    detail = exc.detail
    if isinstance(detail, dict) and "code" in detail:
        body = ErrorBody(code=detail["code"], message=detail.get("message", ""))
    else:
        body = ErrorBody(code="http_error", message=str(detail))
    return _envelope(exc.status_code, body)


@app.exception_handler(RequestValidationError)
async def request_validation_envelope(_: Request, exc: RequestValidationError) -> JSONResponse:  # Malformed bodies are 400s
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid {field}: {first.get('msg', '')}" if field else str(first.get("msg", message))
    return _envelope(400, ErrorBody(code="validation_error", message=message))


def _envelope(status_code: int, body: ErrorBody) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResp(error=body).model_dump(by_alias=True))


app.include_router(router)
app.include_router(candidates_router)
