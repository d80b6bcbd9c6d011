from __future__ import annotations

import os
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logger import get_evaluation_id, get_logger
from shared.response import wrap_error
from shared.settings import (
    SettingsError,
    SettingsValidationError,
    build_settings_payload,
)


def _format_loc(loc: object) -> str:
    # ("query", "month") -> "month"
    if not isinstance(loc, (list, tuple)):
        return str(loc)
    parts = [str(item) for item in loc if item not in {"query", "path"}]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI, *, logger_name: str) -> None:
    logger = get_logger(logger_name)

    @app.exception_handler(SettingsError)
    async def settings_exception_handler(
        request: Request,
        exc: SettingsError,
    ) -> JSONResponse:
        if isinstance(exc, SettingsValidationError):
            payload = build_settings_payload(
                exc.app_name,
                missing=exc.missing,
                invalid=exc.invalid,
            )
        else:
            payload = {"detail": str(exc)}

        logger.warning(
            "Settings error",
            extra={
                "extra_fields": {
                    "path": str(request.url.path),
                    "error": str(exc),
                }
            },
        )
        return JSONResponse(status_code=400, content=wrap_error(payload, request))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            extra={
                "extra_fields": {
                    "path": str(request.url.path),
                    "method": request.method,
                    "error": str(exc),
                    "error_type": exc.__class__.__name__,
                }
            },
        )

        response_content = {
            "error": "Internal Server Error",
            "message": "Something went wrong. Please try again later.",
            "error_type": exc.__class__.__name__,
            "path": str(request.url.path),
            "request_id": getattr(request.state, "request_id", None),
        }
        evaluation_id = get_evaluation_id()
        if evaluation_id:
            response_content["evaluation_id"] = evaluation_id

        if os.getenv("APP_ENV", "").lower() in {"local", "dev", "development"}:
            response_content["detail"] = str(exc)
            response_content["traceback"] = traceback.format_exc().splitlines()

        return JSONResponse(
            status_code=500,
            content=wrap_error(response_content, request),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """
        Query parameter errors, e.g. ?compare=maybe, as one readable message.
        """
        errors = exc.errors()
        messages = [
            f"{_format_loc(err.get('loc')) or 'query'}: {err.get('msg') or 'Invalid value'}"
            for err in errors
        ]
        payload = {
            "error": "Invalid request",
            "message": "; ".join(messages) if messages else "Invalid request",
            "errors": [
                {k: v for k, v in err.items() if k in {"loc", "msg", "type"}}
                for err in errors
            ],
        }
        return JSONResponse(
            status_code=422,
            content=wrap_error(payload, request),
        )
