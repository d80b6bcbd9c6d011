# shared/logger.py

from __future__ import annotations

import logging
import json
import sys
import os
import uuid
import time
import socket
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler

import pytz

from shared.constants import (
    LOGGING_ENABLED,
    LOG_LEVEL,
    LOG_DIR,
    LOG_MAX_BYTES,
    LOG_BACKUP_COUNT,
)
from shared.settings import get_timezone

# ======================================================
# RUN CONTEXT
# ======================================================

RUN_ID = uuid.uuid4().hex
_RUN_START_TIME = time.monotonic()

RUN_LOG_FILE = "pacewise.log"

# ======================================================
# REQUEST / EVALUATION CONTEXT
# ======================================================

_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)
_EVALUATION_ID: ContextVar[str | None] = ContextVar("evaluation_id", default=None)


def set_request_id(request_id: str) -> ContextVar.Token:
    return _REQUEST_ID.set(request_id)


def reset_request_id(token: ContextVar.Token) -> None:
    _REQUEST_ID.reset(token)


def get_request_id() -> str | None:
    return _REQUEST_ID.get()


def set_evaluation_id(evaluation_id: str) -> ContextVar.Token:
    return _EVALUATION_ID.set(evaluation_id)


def reset_evaluation_id(token: ContextVar.Token) -> None:
    _EVALUATION_ID.reset(token)


def get_evaluation_id() -> str | None:
    return _EVALUATION_ID.get()


def _env_flag(key: str, default: str) -> bool:
    return os.getenv(key, default).strip().lower() in ("1", "true", "yes", "on")


_HOST_CONTEXT: dict[str, str] | None = None


def _get_host_context() -> dict[str, str]:
    global _HOST_CONTEXT
    if _HOST_CONTEXT is None:
        context = {
            "host": os.getenv("HOSTNAME") or socket.gethostname(),
            "app_env": os.getenv("APP_ENV", "").strip(),
            "service": os.getenv("SERVICE_NAME", "pacewise").strip(),
        }
        _HOST_CONTEXT = {key: value for key, value in context.items() if value}
    return _HOST_CONTEXT

# ======================================================
# FORMATTER
# ======================================================

class JsonFormatter(logging.Formatter):
    """
    One JSON object per line. Request and evaluation ids come from the
    current context, so log calls only pass their own extra_fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log: dict = {
            "timestamp": datetime.now(pytz.timezone(get_timezone())).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": RUN_ID,
        }

        log.update(_get_host_context())

        request_id = get_request_id()
        if request_id:
            log["request_id"] = request_id

        evaluation_id = get_evaluation_id()
        if evaluation_id:
            log["evaluation_id"] = evaluation_id

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log.update(extra_fields)

        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)

        return json.dumps(log, default=str)

# ======================================================
# HANDLERS
# ======================================================

def _create_file_handler() -> logging.Handler:
    os.makedirs(LOG_DIR, exist_ok=True)

    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, RUN_LOG_FILE),
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    handler.setLevel(LOG_LEVEL)
    handler.name = "file"
    return handler


def _create_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.setLevel(LOG_LEVEL)
    handler.name = "console"
    return handler

# ======================================================
# LOGGER FACTORY
# ======================================================

def get_logger(name: str = "app") -> logging.Logger:
    """
    Get or create a logger.

    - File logging is on unless LOG_FILE_ENABLED is false
    - Console logging is on when LOG_CONSOLE_ENABLED is true
    """
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)

    if not LOGGING_ENABLED:
        logger.disabled = True
        return logger

    names = {getattr(h, "name", None) for h in logger.handlers}
    if "file" not in names and _env_flag("LOG_FILE_ENABLED", "true"):
        logger.addHandler(_create_file_handler())
    if "console" not in names and _env_flag("LOG_CONSOLE_ENABLED", "false"):
        logger.addHandler(_create_console_handler())

    logger.propagate = False
    return logger

# ======================================================
# RUN BOUNDARY HELPERS
# ======================================================

def log_run_start() -> None:
    get_logger("system").info(
        "===== RUN START =====",
        extra={"extra_fields": {"event": "run_start"}},
    )


def log_run_end() -> None:
    duration_s = time.monotonic() - _RUN_START_TIME
    get_logger("system").info(
        "===== RUN END =====",
        extra={
            "extra_fields": {
                "event": "run_end",
                "duration_ms": int(duration_s * 1000),
            }
        },
    )
