"""Structured event logging for stage progression.

Every event is written twice: a one-line human summary (console and
``*-human.log``) and a JSON document (``LOG_FILE``) for later analysis.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from config.settings import settings

EVENT_LOGGER = "mock_interview"
HUMAN_FORMAT = "[%(asctime)s] %(levelname)s %(name)s :: %(message)s"
HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Shown in the human line, in this order, when present
SUMMARY_FIELDS = (
    "action",
    "stage_order",
    "stage",
    "score",
    "passed",
    "next_stage_order",
    "status",
    "count",
    "ms",
    "outcome",
    "error",
)


class _RecordKind(logging.Filter):  # Route JSON and human records to separate handlers
    def __init__(self, *, json_records: bool) -> None:
        super().__init__()
        self._json_records = json_records

    def filter(self, record: logging.LogRecord) -> bool:
        return bool(getattr(record, "is_json", False)) is self._json_records


def _human_handler(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(HUMAN_FORMAT, datefmt=HUMAN_DATEFMT))
    handler.addFilter(_RecordKind(json_records=False))
    return handler


def _human_log_path(log_file: Path) -> Path:
    return log_file.with_name(f"{log_file.stem}-human{log_file.suffix or '.log'}")


def configure_logging(
    *,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    file_logs: Optional[bool] = None,
) -> logging.Logger:
    """Attach handlers to the event logger once and return it."""

    logger = logging.getLogger(EVENT_LOGGER)
    if logger.handlers:
        return logger
    logger.setLevel((level or settings.LOG_LEVEL).upper())
    logger.propagate = False
    logger.addHandler(_human_handler(logging.StreamHandler(stream=sys.stdout)))

    if not (settings.ENABLE_FILE_LOGS if file_logs is None else file_logs):
        return logger

    path = Path(log_file or settings.LOG_FILE)
    path.parent.mkdir(parents=True, exist_ok=True)
    json_handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=settings.LOG_MAX_BYTES, backupCount=settings.LOG_BACKUP_COUNT
    )
    json_handler.setFormatter(logging.Formatter("%(message)s"))
    json_handler.addFilter(_RecordKind(json_records=True))
    logger.addHandler(json_handler)
    logger.addHandler(
        _human_handler(
            logging.handlers.RotatingFileHandler(
                _human_log_path(path), maxBytes=settings.LOG_MAX_BYTES, backupCount=settings.LOG_BACKUP_COUNT
            )
        )
    )
    return logger


def format_human(evt: dict[str, Any]) -> str:
    parts = [f"session={evt.get('session_id')}", f"kind={evt.get('kind')}"]
    parts.extend(f"{key}={evt[key]}" for key in SUMMARY_FIELDS if evt.get(key) is not None)
    return " ".join(parts)


def _emit(logger: logging.Logger, level: int, message: str, *, is_json: bool) -> None:
    record = logger.makeRecord(logger.name, level, fn="", lno=0, msg=message, args=(), exc_info=None)
    record.is_json = is_json  # type: ignore[attr-defined]
    logger.handle(record)


def log_event(kind: str, session_id: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Record one progression event (``questions_generated``, ``stage_evaluated`` ...)."""

    logger = configure_logging()
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        "trace": uuid.uuid4().hex,
        "kind": kind,
        "session_id": session_id,
        **fields,
    }
    _emit(logger, level, format_human(payload), is_json=False)
    if any(isinstance(handler, logging.FileHandler) for handler in logger.handlers):
        _emit(logger, level, json.dumps(payload, ensure_ascii=False, default=str), is_json=True)


__all__ = ["EVENT_LOGGER", "configure_logging", "format_human", "log_event"]
