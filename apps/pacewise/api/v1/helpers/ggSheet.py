from __future__ import annotations

from typing import Callable

from shared.ggSheet import read_sheet_values, read_sheet_values_with_api_key
from apps.pacewise.api.v1.helpers.clients import ClientConfig
from apps.pacewise.api.v1.helpers.config import (
    get_config_range,
    get_relay_url,
    get_sheets_api_key,
)
from apps.pacewise.api.v1.helpers.errors import SourceFetchError

# (spreadsheet_id, range_name) -> raw rows, header row first
SheetReader = Callable[[str, str], list[list[str]]]

GOOGLE = "google"
FACEBOOK = "facebook"
CONVERSIONS = "conversions"

SPEND_SOURCES = (GOOGLE, FACEBOOK)


def read_range(spreadsheet_id: str, range_name: str) -> list[list[str]]:
    """
    Read one range with the configured transport: API key (direct or via
    the relay) when SHEETS_API_KEY is set, else the service account.
    """
    api_key = get_sheets_api_key()
    if api_key:
        return read_sheet_values_with_api_key(
            spreadsheet_id,
            range_name,
            api_key,
            relay_url=get_relay_url(),
        )
    return read_sheet_values(spreadsheet_id, range_name)


def read_config_values(
    spreadsheet_id: str,
    reader: SheetReader | None = None,
) -> list[list[str]]:
    reader = reader or read_range
    return reader(spreadsheet_id, get_config_range())


def fetch_source(
    reader: SheetReader,
    spreadsheet_id: str,
    range_name: str,
) -> list[list[str]]:
    try:
        values = reader(spreadsheet_id, range_name)
    except Exception as exc:
        raise SourceFetchError(range_name, exc) from exc
    return values if isinstance(values, list) else []


def source_ranges_for(
    client: ClientConfig,
    templates: dict[str, str],
) -> list[tuple[str, str]]:
    """
    (source kind, range) pairs to fetch for a client. Spend tabs are
    skipped for clients flagged to skip them; conversions always load.
    """
    kinds = [] if client.skip_spend_sources else list(SPEND_SOURCES)
    kinds.append(CONVERSIONS)
    return [(kind, templates[kind].format(prefix=client.prefix)) for kind in kinds]
