import ast
import json
import re

from shared.constants import CONFIG_RANGE, MAX_CUTOFF_DAY, SOURCE_RANGES
from shared.settings import SettingsValidationError, get_env

APP_NAME = "Pacewise"

_SPREADSHEET_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")
_CYCLE_NAME_RE = re.compile(r"^[a-z0-9_\-]+$")


def _require_env_value(key: str) -> str:
    raw = get_env(key)
    if raw is None or str(raw).strip() == "":
        raise SettingsValidationError(app_name=APP_NAME, missing=[key])
    return str(raw).strip()


def _optional_env_value(key: str) -> str | None:
    raw = get_env(key)
    if raw is None or str(raw).strip() == "":
        return None
    return str(raw).strip()


def _parse_raw_value(raw: str, key: str, expected_type):
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        try:
            parsed = ast.literal_eval(raw)
        except (ValueError, SyntaxError) as exc:
            raise SettingsValidationError(app_name=APP_NAME, invalid=[key]) from exc

    if not isinstance(parsed, expected_type):
        raise SettingsValidationError(app_name=APP_NAME, invalid=[key])
    return parsed


def get_spreadsheet_id() -> str:
    value = _require_env_value("SPREADSHEET_ID")
    if not _SPREADSHEET_ID_RE.fullmatch(value):
        raise SettingsValidationError(app_name=APP_NAME, invalid=["SPREADSHEET_ID"])
    return value


def get_config_range() -> str:
    return _optional_env_value("CONFIG_RANGE") or CONFIG_RANGE


def get_source_ranges() -> dict[str, str]:
    """
    Range templates per source kind; configured entries override defaults.
    """
    raw = _optional_env_value("SOURCE_RANGES")
    if raw is None:
        return dict(SOURCE_RANGES)

    parsed = _parse_raw_value(raw, "SOURCE_RANGES", dict)
    ranges = dict(SOURCE_RANGES)
    for key, value in parsed.items():
        kind = str(key).strip().lower()
        template = str(value).strip()
        if kind not in SOURCE_RANGES or "{prefix}" not in template:
            raise SettingsValidationError(
                app_name=APP_NAME,
                invalid=[f"SOURCE_RANGES.{key}"],
            )
        ranges[kind] = template
    return ranges


def get_cycle_cutoffs() -> dict[str, int]:
    raw = _optional_env_value("CYCLE_CUTOFFS")
    if raw is None:
        return {}

    parsed = _parse_raw_value(raw, "CYCLE_CUTOFFS", dict)
    cutoffs: dict[str, int] = {}
    for key, value in parsed.items():
        name = str(key).strip().lower()
        try:
            cutoff = int(value)
        except (TypeError, ValueError) as exc:
            raise SettingsValidationError(
                app_name=APP_NAME,
                invalid=[f"CYCLE_CUTOFFS.{key}"],
            ) from exc
        if not _CYCLE_NAME_RE.fullmatch(name) or not 1 < cutoff <= MAX_CUTOFF_DAY:
            raise SettingsValidationError(
                app_name=APP_NAME,
                invalid=[f"CYCLE_CUTOFFS.{key}"],
            )
        cutoffs[name] = cutoff
    return cutoffs


def get_sheets_api_key() -> str | None:
    return _optional_env_value("SHEETS_API_KEY")


def get_relay_url() -> str | None:
    return _optional_env_value("SHEETS_RELAY_URL")


def validate_app_config() -> None:
    """
    Collect every missing or invalid setting into one error.
    """
    missing: list[str] = []
    invalid: list[str] = []

    for check in (get_spreadsheet_id, get_source_ranges, get_cycle_cutoffs):
        try:
            check()
        except SettingsValidationError as exc:
            missing.extend(exc.missing)
            invalid.extend(exc.invalid)

    if missing or invalid:
        raise SettingsValidationError(
            app_name=APP_NAME,
            missing=missing,
            invalid=invalid,
        )
