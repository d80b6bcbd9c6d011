from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from apps.pacewise.api.v1.helpers.errors import ClientConfigError, ConfigurationError
from apps.pacewise.api.v1.helpers.normalizer import parse_number
from apps.pacewise.api.v1.helpers.periods import get_cycle_cutoff
from shared.constants import PLATFORMS, STANDARD_CYCLE
from shared.logger import get_logger

logger = get_logger("Client Config")

# Column order of the config tab
COL_NAME = 0
COL_BUDGET = 1
COL_CYCLE = 2
COL_PREFIX = 3
COL_SKIP = 4
COL_CAMPAIGNS = 5
COL_PLATFORM = 6

_PLATFORM_ALIASES = {
    "google": "google",
    "google ads": "google",
    "facebook": "facebook",
    "fb": "facebook",
    "meta": "facebook",
}


@dataclass(frozen=True)
class ClientConfig:
    name: str
    budget: float
    cycle_type: str = STANDARD_CYCLE
    source_prefix: str = ""
    skip_spend_sources: bool = False
    campaign_filter: frozenset[str] = field(default_factory=frozenset)
    single_platform: str | None = None

    @property
    def prefix(self) -> str:
        return self.source_prefix or self.name

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "budget": self.budget,
            "cycleType": self.cycle_type,
            "sourcePrefix": self.prefix,
            "skipSpendSources": self.skip_spend_sources,
            "campaignFilter": sorted(self.campaign_filter),
            "singlePlatform": self.single_platform,
        }


def _cell(row: Sequence[object], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx]).strip()


def _parse_campaign_filter(raw: str) -> frozenset[str]:
    names = {part.strip() for part in raw.split(",")}
    return frozenset(name for name in names if name)


def _parse_platform(raw: str, client_name: str) -> str | None:
    if not raw:
        return None
    platform = _PLATFORM_ALIASES.get(raw.lower())
    if platform not in PLATFORMS:
        raise ClientConfigError(client_name, f"unknown platform '{raw}'")
    return platform


def parse_client_row(
    row: Sequence[object],
    *,
    extra_cutoffs: dict[str, int] | None = None,
) -> ClientConfig | None:
    """
    One config row -> ClientConfig. Rows without a name give None.
    Raises ClientConfigError when the row cannot be used.
    """
    name = _cell(row, COL_NAME)
    if not name:
        return None

    raw_budget = _cell(row, COL_BUDGET)
    if not raw_budget:
        raise ClientConfigError(name, "missing budget")
    budget = parse_number(raw_budget)
    if budget <= 0:
        raise ClientConfigError(name, f"invalid budget '{raw_budget}'")

    cycle_type = _cell(row, COL_CYCLE).lower() or STANDARD_CYCLE
    try:
        get_cycle_cutoff(cycle_type, extra_cutoffs)
    except ValueError as exc:
        raise ClientConfigError(name, str(exc)) from exc

    return ClientConfig(
        name=name,
        budget=budget,
        cycle_type=cycle_type,
        source_prefix=_cell(row, COL_PREFIX) or name,
        skip_spend_sources=_cell(row, COL_SKIP).upper() == "TRUE",
        campaign_filter=_parse_campaign_filter(_cell(row, COL_CAMPAIGNS)),
        single_platform=_parse_platform(_cell(row, COL_PLATFORM), name),
    )


def parse_client_rows(
    values: Sequence[Sequence[object]] | None,
    *,
    extra_cutoffs: dict[str, int] | None = None,
) -> tuple[list[ClientConfig], list[ClientConfigError]]:
    """
    Config tab values (header row first) -> usable clients plus the
    errors of every excluded row.

    Raises ConfigurationError when the tab is empty or no row is usable.
    """
    if not values or len(values) < 2:
        raise ConfigurationError("Config tab has no client rows")

    clients: list[ClientConfig] = []
    excluded: list[ClientConfigError] = []
    seen: set[str] = set()

    for row in values[1:]:
        try:
            client = parse_client_row(row, extra_cutoffs=extra_cutoffs)
        except ClientConfigError as exc:
            excluded.append(exc)
            logger.warning(
                "Client excluded",
                extra={
                    "extra_fields": {
                        "client": exc.client_name,
                        "reason": exc.reason,
                    }
                },
            )
            continue

        if client is None:
            continue
        if client.name in seen:
            exc = ClientConfigError(client.name, "duplicate client name")
            excluded.append(exc)
            logger.warning(
                "Client excluded",
                extra={"extra_fields": {"client": client.name, "reason": exc.reason}},
            )
            continue

        seen.add(client.name)
        clients.append(client)

    if not clients:
        raise ConfigurationError("Config tab has no usable client rows")

    return clients, excluded
