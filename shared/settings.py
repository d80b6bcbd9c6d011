from __future__ import annotations

from pathlib import Path
import os
import threading
from typing import Any, Iterable

import yaml

from shared.constants import TIMEZONE as DEFAULT_TIMEZONE


class SettingsError(RuntimeError):
    pass


def format_settings_detail(
    app_name: str | None,
    *,
    missing: Iterable[str] | None = None,
    invalid: Iterable[str] | None = None,
) -> str:
    name = app_name or "App"
    missing_list = [str(item) for item in (missing or [])]
    invalid_list = [str(item) for item in (invalid or [])]

    parts: list[str] = []
    if missing_list:
        parts.append(f"missing: {', '.join(missing_list)}")
    if invalid_list:
        parts.append(f"invalid: {', '.join(invalid_list)}")
    if not parts:
        parts.append("missing required values")

    return f"{name} settings " + "; ".join(parts)


def build_settings_payload(
    app_name: str | None,
    *,
    missing: Iterable[str] | None = None,
    invalid: Iterable[str] | None = None,
) -> dict[str, object]:
    missing_list = [str(item) for item in (missing or [])]
    invalid_list = [str(item) for item in (invalid or [])]
    return {
        "app": app_name,
        "detail": format_settings_detail(
            app_name,
            missing=missing_list,
            invalid=invalid_list,
        ),
        "missing": missing_list,
        "invalid": invalid_list,
    }


class SettingsValidationError(SettingsError):
    def __init__(
        self,
        *,
        app_name: str | None = None,
        missing: Iterable[str] | None = None,
        invalid: Iterable[str] | None = None,
    ) -> None:
        self.app_name = app_name
        self.missing = [str(item) for item in (missing or [])]
        self.invalid = [str(item) for item in (invalid or [])]
        message = format_settings_detail(
            app_name,
            missing=self.missing,
            invalid=self.invalid,
        )
        super().__init__(message)


LOCAL_ETC_DIR = Path(__file__).resolve().parents[1] / "etc"
LOCAL_SECRETS_DIR = LOCAL_ETC_DIR / "secrets"
SETTINGS_FILENAMES = ("pacewise.yaml", "pacewise.yml")

_SETTINGS_CACHE: dict[str, tuple[float, dict[str, str]]] = {}
_CACHE_LOCK = threading.Lock()


def _resolve_settings_path() -> Path | None:
    explicit = os.getenv("PACEWISE_SETTINGS_FILE", "").strip()
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise SettingsError(f"Settings file not found: {path}")
        return path

    for base in (Path("/etc/secrets"), LOCAL_SECRETS_DIR):
        for filename in SETTINGS_FILENAMES:
            candidate = base / filename
            if candidate.is_file():
                return candidate
    return None


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _flatten_env(data: dict[str, Any]) -> dict[str, str]:
    env: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                env[str(sub_key)] = _stringify(sub_value)
        else:
            env[str(key)] = _stringify(value)
    return env


def _load_yaml_file(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Unable to read settings file: {exc}") from exc

    data = yaml.safe_load(raw) if raw.strip() else None
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file is empty or invalid: {path}")
    return data


def load_settings_env() -> dict[str, str]:
    """
    Flattened key/value settings from the YAML settings file.
    Cached per file mtime; empty when no file is present.
    """
    path = _resolve_settings_path()
    if path is None:
        return {}

    cache_key = str(path)
    try:
        mtime = path.stat().st_mtime
    except OSError as exc:
        raise SettingsError(f"Unable to read settings file: {exc}") from exc

    with _CACHE_LOCK:
        cached = _SETTINGS_CACHE.get(cache_key)
        if cached and cached[0] == mtime:
            return cached[1]

    env = _flatten_env(_load_yaml_file(path))

    with _CACHE_LOCK:
        _SETTINGS_CACHE[cache_key] = (mtime, env)

    return env


def clear_settings_cache() -> None:
    with _CACHE_LOCK:
        _SETTINGS_CACHE.clear()


def get_env(key: str, default: str | None = None) -> str | None:
    file_env = load_settings_env()
    if key in file_env:
        return file_env[key]
    return os.getenv(key, default)


def get_timezone(default: str | None = None) -> str:
    value = get_env("TIMEZONE", default or DEFAULT_TIMEZONE)
    if value is None or str(value).strip() == "":
        return default or DEFAULT_TIMEZONE
    return str(value).strip()
