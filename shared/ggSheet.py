from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request

from google.oauth2 import service_account
from googleapiclient.discovery import build

from shared.constants import SHEETS_API_URL, SHEETS_REQUEST_TIMEOUT
from shared.utils import resolve_secret_path

# =====================================================
# CONFIG
# =====================================================

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


class SheetsApiError(RuntimeError):
    """Non-2xx answer from the Sheets values API (or a relay in front of it)."""

    def __init__(self, status: int, reason: str, body: str) -> None:
        self.status = status
        self.reason = reason
        self.body = body
        super().__init__(f"Google Sheets API error: {status} {reason}".strip())

# =====================================================
# SERVICE ACCOUNT CLIENT
# =====================================================

def _get_sheets_service():
    """
    Create Google Sheets service.

    IMPORTANT:
    - Build one service per call; the discovery client is not thread safe
    """
    cred_path = resolve_secret_path(
        "GOOGLE_APPLICATION_CREDENTIALS",
        "service-account.json",
    )

    credentials = service_account.Credentials.from_service_account_file(
        cred_path,
        scopes=SCOPES,
    )

    return build(
        "sheets",
        "v4",
        credentials=credentials,
        cache_discovery=False,  # critical on macOS
    )


def read_sheet_values(
    spreadsheet_id: str,
    range_name: str,
) -> list[list[str]]:
    """
    Raw rows (header row first) for a range via the service account.
    """
    service = _get_sheets_service()

    result = (
        service.spreadsheets()
        .values()
        .get(
            spreadsheetId=spreadsheet_id,
            range=range_name,
        )
        .execute()
    )

    return result.get("values", []) or []

# =====================================================
# API KEY ACCESS
# =====================================================

def build_values_url(spreadsheet_id: str, range_name: str, api_key: str) -> str:
    return (
        f"{SHEETS_API_URL}/{urllib.parse.quote(spreadsheet_id, safe='')}"
        f"/values/{urllib.parse.quote(range_name, safe='')}"
        f"?key={urllib.parse.quote(api_key, safe='')}"
    )


def build_relay_url(
    relay_url: str,
    spreadsheet_id: str,
    range_name: str,
    api_key: str,
) -> str:
    query = urllib.parse.urlencode(
        {
            "spreadsheetId": spreadsheet_id,
            "range": range_name,
            "apiKey": api_key,
        }
    )
    separator = "&" if "?" in relay_url else "?"
    return f"{relay_url}{separator}{query}"


def fetch_json(url: str, *, timeout: float = SHEETS_REQUEST_TIMEOUT) -> dict:
    """
    GET a JSON document. Raises SheetsApiError on an HTTP error status.
    """
    req = urllib.request.Request(
        url,
        headers={"Accept": "application/json"},
        method="GET",
    )

    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            raw = response.read()
    except urllib.error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
        raise SheetsApiError(exc.code, str(exc.reason or ""), body) from exc

    payload = json.loads(raw.decode("utf-8")) if raw else {}
    if not isinstance(payload, dict):
        raise ValueError("Sheets response is not a JSON object")
    return payload


def read_sheet_values_with_api_key(
    spreadsheet_id: str,
    range_name: str,
    api_key: str,
    *,
    relay_url: str | None = None,
) -> list[list[str]]:
    """
    Raw rows for a range using an API key, directly or through the relay.
    """
    if relay_url:
        url = build_relay_url(relay_url, spreadsheet_id, range_name, api_key)
    else:
        url = build_values_url(spreadsheet_id, range_name, api_key)

    values = fetch_json(url).get("values", [])
    return values if isinstance(values, list) else []
