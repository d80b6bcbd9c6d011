from starlette.requests import Request

from shared.logger import reset_evaluation_id, set_evaluation_id
from shared.response import build_meta, normalize_error_payload, wrap_error


def _request(root_path: str = "") -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/v1/pacing",
            "root_path": root_path,
            "headers": [],
            "query_string": b"",
        }
    )


class TestBuildMeta:
    def test_base_fields(self):
        meta = build_meta(_request(), duration_s=1.5)
        assert meta["duration_ms"] == 1500
        assert meta["duration_hms"] == "00:00:01.500"
        assert len(meta["request_id"]) == 8
        assert "app" not in meta
        assert "evaluation_id" not in meta

    def test_request_id_is_stable(self):
        request = _request()
        first = build_meta(request, duration_s=0)["request_id"]
        assert build_meta(request, duration_s=0)["request_id"] == first

    def test_mounted_app_name(self):
        meta = build_meta(_request("/api/pacewise"), duration_s=0)
        assert meta["app"] == "pacewise"

    def test_evaluation_id_from_state(self):
        request = _request()
        request.state.evaluation_id = "abc123"
        assert build_meta(request, duration_s=0)["evaluation_id"] == "abc123"

    def test_evaluation_id_from_context(self):
        token = set_evaluation_id("ctx-1")
        try:
            meta = build_meta(_request(), duration_s=0)
        finally:
            reset_evaluation_id(token)
        assert meta["evaluation_id"] == "ctx-1"


class TestNormalizeErrorPayload:
    def test_keeps_explicit_message(self):
        assert normalize_error_payload({"message": "x", "detail": "y"})["message"] == "x"

    def test_error_and_detail_are_combined(self):
        payload = normalize_error_payload(
            {"error": "Configuration error", "detail": "Config tab is empty"}
        )
        assert payload["message"] == "Configuration error: Config tab is empty"
        assert payload["error"] == "Configuration error"

    def test_plain_string(self):
        assert normalize_error_payload("boom") == {"detail": "boom", "message": "boom"}

    def test_validation_list(self):
        payload = normalize_error_payload({"detail": [{"loc": ["query", "month"]}]})
        assert payload["message"] == "Validation error"

    def test_none(self):
        assert normalize_error_payload(None) == {"message": "Request failed"}


def test_wrap_error_shape():
    body = wrap_error({"detail": "Not Found"}, _request(), duration_s=0)
    assert set(body) == {"meta", "error"}
    assert body["error"]["message"] == "Not Found"
