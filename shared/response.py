from __future__ import annotations

import time
import uuid

from fastapi import Request

from shared.logger import get_evaluation_id
from shared.utils import format_hms, now_iso


def ensure_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
    return request_id


def _mounted_app(request: Request) -> str | None:
    # "/api/pacewise" -> "pacewise"
    root_path = (request.scope.get("root_path") or "").rstrip("/")
    if not root_path:
        return None
    return root_path.rsplit("/", 1)[-1] or None


def _elapsed(request: Request) -> float:
    start_time = getattr(request.state, "start_time", None)
    if isinstance(start_time, (int, float)):
        return time.perf_counter() - start_time
    return 0.0


def build_meta(
    request: Request,
    *,
    duration_s: float | None = None,
) -> dict[str, object]:
    if duration_s is None:
        duration_s = _elapsed(request)

    meta: dict[str, object] = {
        "timestamp": now_iso(),
        "duration_ms": int(duration_s * 1000),
        "duration_hms": format_hms(duration_s),
        "request_id": ensure_request_id(request),
    }

    app_name = _mounted_app(request)
    if app_name:
        meta["app"] = app_name

    evaluation_id = getattr(request.state, "evaluation_id", None) or get_evaluation_id()
    if evaluation_id:
        meta["evaluation_id"] = evaluation_id

    return meta


def normalize_error_payload(raw: object | None) -> dict[str, object]:
    """
    Every error body ends up as a dict with a human readable "message".

    Pacewise errors arrive as {"error": ..., "detail": ...}; FastAPI
    validation errors arrive with a list under "detail".
    """
    if isinstance(raw, dict):
        payload = dict(raw)
    elif raw is None:
        payload = {}
    else:
        payload = {"detail": raw}

    if "message" in payload:
        return payload

    detail = payload.get("detail")
    err = payload.get("error")
    if isinstance(err, str) and err and isinstance(detail, str) and detail:
        payload["message"] = f"{err}: {detail}"
    elif isinstance(detail, str) and detail:
        payload["message"] = detail
    elif isinstance(detail, list) and detail:
        payload["message"] = "Validation error"
    elif isinstance(err, str) and err:
        payload["message"] = err
    else:
        payload["message"] = "Request failed"

    return payload


def wrap_success(
    data: object,
    request: Request,
    *,
    duration_s: float | None = None,
) -> dict[str, object]:
    return {
        "meta": build_meta(request, duration_s=duration_s),
        "data": data,
    }


def wrap_error(
    error: object | None,
    request: Request,
    *,
    duration_s: float | None = None,
) -> dict[str, object]:
    return {
        "meta": build_meta(request, duration_s=duration_s),
        "error": normalize_error_payload(error),
    }
