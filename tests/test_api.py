from datetime import date
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from main import app

BASE = "/api/pacewise/v1"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def sheets(fake_sheet):
    with patch(
        "apps.pacewise.api.v1.helpers.ggSheet.read_sheet_values",
        side_effect=fake_sheet,
    ):
        yield fake_sheet


@pytest.fixture(autouse=True)
def fixed_today(today):
    with patch("apps.pacewise.api.v1.helpers.pipeline.get_today", return_value=today), patch(
        "apps.pacewise.api.v1.endpoints.periods.get_today", return_value=today
    ):
        yield


def test_ping(client):
    assert client.get("/ping").json()["data"] == {"status": "ok"}


class TestPeriods:
    def test_months(self, client):
        response = client.get(f"{BASE}/periods/months")
        assert response.status_code == 200
        body = response.json()
        assert set(body["meta"]) >= {"timestamp", "duration_ms", "request_id"}
        assert [m["value"] for m in body["data"]][:2] == ["current", "2025-01"]
        assert len(body["data"]) == 7

    def test_resolve(self, client):
        response = client.get(
            f"{BASE}/periods/resolve", params={"cycleType": "apollo", "month": "2025-03"}
        )
        assert response.json()["data"] == {
            "start": "2025-02-26",
            "end": "2025-03-25",
            "label": "Feb 26 - Mar 25",
            "cycleType": "apollo",
            "daysTotal": 28,
            "isHistorical": True,
        }

    def test_resolve_unknown_cycle(self, client):
        response = client.get(f"{BASE}/periods/resolve", params={"cycleType": "weekly"})
        assert response.status_code == 400
        assert "weekly" in response.json()["error"]["message"]


class TestClients:
    def test_lists_clients(self, client, sheets):
        response = client.get(f"{BASE}/clients")
        assert response.status_code == 200
        data = response.json()["data"]
        assert [c["name"] for c in data["clients"]] == ["Acme", "Brandon Trust"]
        assert data["excludedClients"] == []

    def test_empty_config_is_502(self, client, sheets):
        sheets.ranges["Config!A:G"] = []
        response = client.get(f"{BASE}/clients")
        assert response.status_code == 502
        assert response.json()["error"]["error"] == "Configuration error"

    def test_missing_spreadsheet_id_is_400(self, client, sheets, monkeypatch):
        monkeypatch.delenv("SPREADSHEET_ID")
        response = client.get(f"{BASE}/clients")
        assert response.status_code == 400
        assert response.json()["error"]["missing"] == ["SPREADSHEET_ID"]

    def test_invalid_settings_rejected_before_any_route(self, client, monkeypatch):
        monkeypatch.setenv("CYCLE_CUTOFFS", '{"acme": 31}')
        response = client.get(f"{BASE}/periods/months")
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["app"] == "Pacewise"
        assert error["invalid"] == ["CYCLE_CUTOFFS.acme"]
        assert error["missing"] == []

    def test_docs_skip_settings_validation(self, client, monkeypatch):
        monkeypatch.delenv("SPREADSHEET_ID")
        assert client.get("/api/pacewise/openapi.json").status_code == 200


class TestPacing:
    def test_latest_before_any_evaluation(self, client):
        response = client.get(f"{BASE}/pacing/latest")
        assert response.status_code == 404

    def test_evaluate_and_publish(self, client, sheets):
        response = client.get(f"{BASE}/pacing", params={"compare": "true"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["published"] is True
        assert data["today"] == date(2025, 6, 15).isoformat()

        acme = next(c for c in data["clients"] if c["client"] == "Acme")
        assert acme["pacing"]["status"] == "COLD"
        assert acme["aggregate"]["totalSpend"] == 500.0
        assert acme["recommendation"]["urgency"] == "increase"
        assert acme["comparison"]["previousStart"] == "2025-05-01"

        latest = client.get(f"{BASE}/pacing/latest").json()["data"]
        assert latest["evaluationId"] == data["evaluationId"]

    def test_client_filter(self, client, sheets):
        response = client.get(f"{BASE}/pacing", params={"clients": "Acme"})
        assert [c["client"] for c in response.json()["data"]["clients"]] == ["Acme"]

    def test_invalid_month(self, client):
        response = client.get(f"{BASE}/pacing", params={"month": "June"})
        assert response.status_code == 400

    def test_failed_source_is_reported(self, client, sheets):
        sheets.ranges["Acme Google!A:F"] = RuntimeError("backend error")
        response = client.get(f"{BASE}/pacing", params={"clients": "Acme"})
        acme = response.json()["data"]["clients"][0]
        assert acme["failedSources"] == ["Acme Google!A:F"]
        assert acme["sourceErrors"] == {"Acme Google!A:F": "backend error"}
        assert acme["aggregate"]["totalSpend"] == 200.0

    def test_bad_query_value_is_422(self, client):
        response = client.get(f"{BASE}/pacing", params={"compare": "maybe"})
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["error"] == "Invalid request"
        assert error["message"].startswith("compare: ")
