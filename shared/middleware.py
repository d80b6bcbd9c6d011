from __future__ import annotations

import json
import time

from fastapi import Request
from starlette.responses import JSONResponse, Response

from shared.logger import get_logger, set_request_id, reset_request_id
from shared.response import ensure_request_id, wrap_error, wrap_success
from shared.settings import SettingsValidationError, build_settings_payload
from shared.utils import now_iso

_API_LOGGER = get_logger("api")

_DOCS_SUFFIXES = ("/docs", "/docs/oauth2-redirect", "/redoc", "/openapi.json")
_MASKED_PARAMS = {"apikey", "key"}

# ============================================================
# PATH HELPERS
# ============================================================


def _is_docs_path(path: str) -> bool:
    return (path or "").rstrip("/").endswith(_DOCS_SUFFIXES)


def _normalize_path(path: str | None) -> str:
    if not path or path == "/":
        return "/"
    return path.rstrip("/")


def _prefixes(value: object) -> set[str]:
    if not value:
        return set()
    if isinstance(value, str):
        value = [value]
    return {_normalize_path(str(item)) for item in value if item is not None}


def _under_prefix(path: str, prefix: str) -> bool:
    path = _normalize_path(path)
    return path == prefix or path.startswith(prefix + "/")


def _is_passthrough_path(request: Request) -> bool:
    """
    Paths whose response bodies must reach the caller untouched.
    """
    prefixes = _prefixes(getattr(request.app.state, "passthrough_prefixes", None))
    return any(_under_prefix(request.url.path, prefix) for prefix in prefixes)


def _duration_since(request: Request, fallback_start: float) -> float:
    start_time = getattr(request.state, "start_time", None)
    if isinstance(start_time, (int, float)):
        return time.perf_counter() - start_time
    return time.perf_counter() - fallback_start

# ============================================================
# ENVELOPE
# ============================================================


def _parse_json(body: bytes) -> object | None:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def _already_wrapped(payload: object, key: str) -> bool:
    return isinstance(payload, dict) and "meta" in payload and key in payload


def _wrap_response_payload(
    request: Request,
    response: Response,
    response_body: bytes,
    *,
    duration_s: float,
) -> tuple[Response, object | None]:
    """
    Put JSON bodies in the {meta, data} or {meta, error} envelope.
    Docs, passthrough paths and non-JSON bodies are returned as they are.
    """
    headers = dict(response.headers)
    headers.pop("content-length", None)

    content_type = (response.headers.get("content-type") or "").lower()
    is_json = "application/json" in content_type
    payload = _parse_json(response_body) if response_body and is_json else None

    wrap = (
        is_json
        and not _is_docs_path(request.url.path)
        and not getattr(request.state, "passthrough", False)
        and response.status_code not in {204, 304}
    )

    if wrap:
        if payload is None and response_body:
            payload = response_body.decode("utf-8", errors="replace")
        if response.status_code < 400:
            data = payload["data"] if _already_wrapped(payload, "data") else payload
            body = wrap_success(data, request, duration_s=duration_s)
        else:
            error = payload["error"] if _already_wrapped(payload, "error") else payload
            body = wrap_error(error, request, duration_s=duration_s)

        headers.pop("content-type", None)
        wrapped = JSONResponse(
            content=body,
            status_code=response.status_code,
            headers=headers,
            background=response.background,
        )
        return wrapped, body

    passthrough = Response(
        content=response_body,
        status_code=response.status_code,
        headers=headers,
        media_type=response.media_type,
        background=response.background,
    )
    if payload is not None:
        return passthrough, payload
    if response_body:
        return passthrough, response_body.decode("utf-8", errors="replace")
    return passthrough, None


def _loggable_params(params: object) -> dict[str, object] | None:
    if not params:
        return None
    result: dict[str, object] = {}
    for key, value in params.multi_items():
        # API keys travel as query params on the relay
        if key.lower() in _MASKED_PARAMS:
            value = "***"
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def _loggable_body(body: object | None) -> object | None:
    # Pacing payloads are large; log the client count only
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        clients = body["data"].get("clients")
        if isinstance(clients, list):
            return {"type": "evaluation", "clients": len(clients)}
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return {"type": "list", "length": len(body["data"])}
    return body

# ============================================================
# SETTINGS VALIDATION
# ============================================================


def _resolve_settings_validator(
    path: str, registry: object
) -> tuple[str | None, object]:
    """
    Longest matching prefix wins. Entries are (prefixes, app_name, validator).
    """
    best: tuple[int, str | None, object] = (-1, None, None)
    for prefixes, app_name, validator in registry or ():
        if not callable(validator):
            continue
        for prefix in _prefixes(prefixes):
            if _under_prefix(path, prefix) and len(prefix) > best[0]:
                best = (len(prefix), app_name, validator)
    return best[1], best[2]


async def settings_validation_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    path = request.url.path or ""
    if _is_docs_path(path):
        return await call_next(request)

    registry = getattr(request.app.state, "settings_validator_registry", None)
    app_name, validator = _resolve_settings_validator(path, registry)
    if validator is None:
        return await call_next(request)

    try:
        validator()
    except SettingsValidationError as exc:
        payload = build_settings_payload(
            exc.app_name or app_name,
            missing=exc.missing,
            invalid=exc.invalid,
        )
        return JSONResponse(
            status_code=400,
            content=wrap_error(
                payload, request, duration_s=_duration_since(request, start_time)
            ),
        )

    return await call_next(request)

# ============================================================
# TIMING / LOGGING
# ============================================================


async def timing_middleware(request: Request, call_next):
    # Set start time BEFORE route executes
    if getattr(request.state, "start_time", None) is None:
        request.state.start_time = time.perf_counter()

    return await call_next(request)


async def request_response_logger_middleware(request: Request, call_next):
    start_time = time.perf_counter()
    request_id = ensure_request_id(request)
    # Mounted apps rewrite the scope, so decide before dispatching
    request.state.passthrough = _is_passthrough_path(request)
    token = set_request_id(request_id)

    try:
        response = await call_next(request)

        response_body = b""
        async for chunk in response.body_iterator:
            response_body += chunk

        duration_s = _duration_since(request, start_time)
        response, body_out = _wrap_response_payload(
            request,
            response,
            response_body,
            duration_s=duration_s,
        )

        _API_LOGGER.info(
            "HTTP request/response",
            extra={
                "extra_fields": {
                    "event": "http_request_response",
                    "timestamp": now_iso(),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": int(duration_s * 1000),
                    "request_params": _loggable_params(request.query_params),
                    "response_body": _loggable_body(body_out),
                }
            },
        )

        return response
    finally:
        reset_request_id(token)
