from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from apps.pacewise.api.v1.helpers.aggregator import (
    AggregateResult,
    aggregate,
    window_metrics,
)
from apps.pacewise.api.v1.helpers.clients import ClientConfig, parse_client_rows
from apps.pacewise.api.v1.helpers.config import (
    get_cycle_cutoffs,
    get_source_ranges,
    get_spreadsheet_id,
)
from apps.pacewise.api.v1.helpers.errors import ConfigurationError, SourceFetchError
from apps.pacewise.api.v1.helpers.ggSheet import (
    CONVERSIONS,
    SheetReader,
    fetch_source,
    read_config_values,
    read_range,
    source_ranges_for,
)
from apps.pacewise.api.v1.helpers.normalizer import CanonicalRecord, normalize_rows
from apps.pacewise.api.v1.helpers.pacing import PacingResult, classify
from apps.pacewise.api.v1.helpers.periods import (
    BillingPeriod,
    MonthSelector,
    previous_window,
    resolve_period,
)
from apps.pacewise.api.v1.helpers.recommender import Recommendation, recommend
from shared.logger import get_logger, reset_evaluation_id, set_evaluation_id
from shared.utils import format_hms, get_today, now_iso, run_parallel

# =========================================================
# LOGGER
# =========================================================

logger = get_logger("Pacewise")

# =========================================================
# RESULT TYPES
# =========================================================


def _trend(current: float | None, previous: float | None) -> float | None:
    if current is None or not previous:
        return None
    return (current - previous) / previous * 100


@dataclass(frozen=True)
class PeriodComparison:
    previous_start: date
    previous_end: date
    current: dict[str, float | None]
    previous: dict[str, float | None]

    def trends(self) -> dict[str, float | None]:
        return {
            "spendTrend": _trend(self.current["spend"], self.previous["spend"]),
            "conversionsTrend": _trend(
                self.current["conversions"], self.previous["conversions"]
            ),
            "cpaTrend": _trend(self.current["cpa"], self.previous["cpa"]),
            "ctrTrend": _trend(self.current["ctr"], self.previous["ctr"]),
        }

    def to_dict(self) -> dict:
        return {
            "previousStart": self.previous_start.isoformat(),
            "previousEnd": self.previous_end.isoformat(),
            "current": dict(self.current),
            "previous": dict(self.previous),
            **self.trends(),
        }


@dataclass(frozen=True)
class ClientResult:
    client: ClientConfig
    period: BillingPeriod
    aggregate: AggregateResult
    pacing: PacingResult
    recommendation: Recommendation | None
    comparison: PeriodComparison | None = None
    source_errors: tuple[SourceFetchError, ...] = ()

    @property
    def failed_sources(self) -> tuple[str, ...]:
        return tuple(error.source_name for error in self.source_errors)

    def to_dict(self) -> dict:
        return {
            "client": self.client.name,
            "budget": self.client.budget,
            "cycleType": self.client.cycle_type,
            "period": self.period.to_dict(),
            "aggregate": self.aggregate.to_dict(),
            "pacing": self.pacing.to_dict(),
            "recommendation": (
                self.recommendation.to_dict() if self.recommendation else None
            ),
            "comparison": self.comparison.to_dict() if self.comparison else None,
            "failedSources": list(self.failed_sources),
            "sourceErrors": {
                error.source_name: str(error.cause) for error in self.source_errors
            },
        }


@dataclass(frozen=True)
class Evaluation:
    evaluation_id: str
    selector: str
    today: date
    results: tuple[ClientResult, ...]
    excluded: tuple[dict, ...] = field(default_factory=tuple)
    generated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "evaluationId": self.evaluation_id,
            "month": self.selector,
            "today": self.today.isoformat(),
            "generatedAt": self.generated_at,
            "clients": [result.to_dict() for result in self.results],
            "excludedClients": [dict(item) for item in self.excluded],
        }


# =========================================================
# HELPERS
# =========================================================


def normalize_client_names(client_names) -> set[str] | None:
    """
    - None, "" or []      → all clients
    - "Acme"              → single client
    - "Acme,Brandon"      → multiple clients
    """
    if client_names is None:
        return None

    if isinstance(client_names, str):
        client_names = client_names.split(",")

    cleaned = {
        name.strip()
        for name in client_names
        if isinstance(name, str) and name.strip()
    }
    return cleaned or None


def build_comparison(
    period: BillingPeriod,
    pacing: PacingResult,
    records_by_platform: dict[str, list[CanonicalRecord]],
    conversion_records: list[CanonicalRecord],
    campaign_filter: Iterable[str],
) -> PeriodComparison | None:
    window = previous_window(period, pacing.days_elapsed)
    if window is None:
        return None

    prev_start, prev_end = window
    current_end = period.start + timedelta(days=pacing.days_elapsed - 1)

    return PeriodComparison(
        previous_start=prev_start,
        previous_end=prev_end,
        current=window_metrics(
            records_by_platform,
            conversion_records,
            period.start,
            current_end,
            campaign_filter,
        ),
        previous=window_metrics(
            records_by_platform,
            conversion_records,
            prev_start,
            prev_end,
            campaign_filter,
        ),
    )


def evaluate_client(
    client: ClientConfig,
    period: BillingPeriod,
    sources: dict[str, list[CanonicalRecord]],
    today: date,
    *,
    compare: bool = False,
    source_errors: Iterable[SourceFetchError] = (),
) -> ClientResult:
    """
    Pure computation for one client over already-normalized sources.
    """
    conversion_records = sources.get(CONVERSIONS, [])
    records_by_platform = {
        kind: records for kind, records in sources.items() if kind != CONVERSIONS
    }

    totals = aggregate(
        records_by_platform,
        conversion_records,
        period,
        client.campaign_filter,
    )
    pacing = classify(totals.total_spend, client.budget, period, today)
    recommendation = recommend(
        pacing,
        totals.latest_daily_budget_by_platform,
        client.budget,
        totals.total_spend,
        client.single_platform,
    )

    comparison = None
    if compare:
        comparison = build_comparison(
            period,
            pacing,
            records_by_platform,
            conversion_records,
            client.campaign_filter,
        )

    return ClientResult(
        client=client,
        period=period,
        aggregate=totals,
        pacing=pacing,
        recommendation=recommendation,
        comparison=comparison,
        source_errors=tuple(source_errors),
    )


# =========================================================
# EVALUATION
# =========================================================


def load_clients(
    spreadsheet_id: str,
    reader: SheetReader,
    extra_cutoffs: dict[str, int],
) -> tuple[list[ClientConfig], list[dict]]:
    try:
        values = read_config_values(spreadsheet_id, reader)
    except Exception as exc:
        raise ConfigurationError(f"Unable to read config tab: {exc}") from exc

    clients, excluded = parse_client_rows(values, extra_cutoffs=extra_cutoffs)
    return clients, [
        {"client": exc.client_name, "reason": exc.reason} for exc in excluded
    ]


def evaluate_clients(
    selector: MonthSelector,
    today: date | None = None,
    *,
    client_names=None,
    compare: bool = False,
    reader: SheetReader | None = None,
) -> Evaluation:
    """
    Fetch every client's sources concurrently, then compute results.

    A failing source counts as empty and is reported on its client; config
    tab problems raise ConfigurationError and yield no partial results.
    """
    start = time.perf_counter()
    today = today or get_today()
    reader = reader or read_range
    evaluation_id = uuid.uuid4().hex
    token = set_evaluation_id(evaluation_id)

    try:
        spreadsheet_id = get_spreadsheet_id()
        templates = get_source_ranges()
        extra_cutoffs = get_cycle_cutoffs()

        clients, excluded = load_clients(spreadsheet_id, reader, extra_cutoffs)

        wanted = normalize_client_names(client_names)
        if wanted is not None:
            clients = [c for c in clients if c.name in wanted]

        logger.info(
            "Evaluation started",
            extra={
                "extra_fields": {
                    "month": selector.value,
                    "today": today.isoformat(),
                    "clients": len(clients),
                    "excluded": len(excluded),
                }
            },
        )

        periods = {
            client.name: resolve_period(
                client.cycle_type,
                selector,
                today,
                extra_cutoffs=extra_cutoffs,
            )
            for client in clients
        }

        # -------------------------------------------------
        # Fetch all sources before any aggregation
        # -------------------------------------------------
        plan: list[tuple[ClientConfig, str, str]] = [
            (client, kind, range_name)
            for client in clients
            for kind, range_name in source_ranges_for(client, templates)
        ]
        fetched = run_parallel(
            tasks=[
                (fetch_source, (reader, spreadsheet_id, range_name))
                for _, _, range_name in plan
            ],
            api_name="google_sheets",
            return_exceptions=True,
        )

        sources: dict[str, dict[str, list[CanonicalRecord]]] = {
            client.name: {} for client in clients
        }
        failed: dict[str, list[SourceFetchError]] = {client.name: [] for client in clients}

        for (client, kind, range_name), values in zip(plan, fetched):
            if isinstance(values, Exception):
                # Timeouts from the pool arrive unwrapped
                error = (
                    values
                    if isinstance(values, SourceFetchError)
                    else SourceFetchError(range_name, values)
                )
                logger.warning(
                    "Source fetch failed",
                    extra={
                        "extra_fields": {
                            "client": client.name,
                            "source": error.source_name,
                            "error": str(error.cause),
                        }
                    },
                )
                failed[client.name].append(error)
                values = []
            sources[client.name][kind] = normalize_rows(values)

        results = tuple(
            evaluate_client(
                client,
                periods[client.name],
                sources[client.name],
                today,
                compare=compare,
                source_errors=failed[client.name],
            )
            for client in clients
        )

        duration = time.perf_counter() - start
        logger.info(
            "Evaluation summary",
            extra={
                "extra_fields": {
                    "month": selector.value,
                    "clients": len(results),
                    "failed_sources": sum(len(v) for v in failed.values()),
                    "statuses": {r.client.name: r.pacing.status for r in results},
                    "duration_hms": format_hms(duration),
                }
            },
        )

        return Evaluation(
            evaluation_id=evaluation_id,
            selector=selector.value,
            today=today,
            results=results,
            excluded=tuple(excluded),
            generated_at=now_iso(),
        )
    finally:
        reset_evaluation_id(token)
