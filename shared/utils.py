# shared/utils.py

from __future__ import annotations

from datetime import datetime, date
from contextvars import copy_context
from zoneinfo import ZoneInfo
import pytz
import time
import random
from pathlib import Path
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, TypeVar, Any

from dotenv import load_dotenv

from shared.constants import (
    PARALLEL_MAX_WORKERS,
    PARALLEL_MAX_RETRIES,
    PARALLEL_INITIAL_BACKOFF,
    PARALLEL_MAX_BACKOFF,
    PARALLEL_TASK_TIMEOUT,
    PARALLEL_JITTER_MIN,
    PARALLEL_JITTER_MAX,
)
from shared.logger import get_logger
from shared.settings import LOCAL_ETC_DIR, LOCAL_SECRETS_DIR, get_env, get_timezone

R = TypeVar("R")

ParallelTask = tuple[Callable[..., R], tuple[Any, ...]]

_utils_logger = None


def _get_logger():
    global _utils_logger
    if _utils_logger is None:
        _utils_logger = get_logger("Utils")
    return _utils_logger


# ======================================================
# DATE HELPERS
# ======================================================


def get_today() -> date:
    tz = pytz.timezone(get_timezone())
    return datetime.now(tz).date()


def now_iso() -> str:
    return datetime.now(ZoneInfo(get_timezone())).isoformat()


def format_hms(seconds: float) -> str:
    total_ms = int(seconds * 1000)
    s, ms = divmod(total_ms, 1000)
    m, s = divmod(s, 60)
    h, m = divmod(m, 60)
    return f"{h:02}:{m:02}:{s:02}.{ms:03}"


# ======================================================
# TASK EXECUTION
# ======================================================


def _validate_task(task: ParallelTask) -> None:
    if not isinstance(task, tuple) or len(task) != 2:
        raise TypeError("Task must be (callable, args_tuple)")

    func, args = task
    if not callable(func):
        raise TypeError("Task function must be callable")
    if not isinstance(args, tuple):
        raise TypeError("Args must be tuple")


def _describe_args(args: tuple[Any, ...]) -> list[Any]:
    # Readers and other callables are logged by type only
    return [
        a if isinstance(a, (str, int, float, bool)) or a is None
        else {"type": type(a).__name__}
        for a in args
    ]


def _run_with_retry(
    func: Callable[..., R],
    args: tuple[Any, ...],
    *,
    api_name: str,
    max_retries: int,
) -> R:
    attempts = 0
    start = time.monotonic()

    while True:
        attempts += 1
        try:
            if PARALLEL_JITTER_MAX > 0:
                time.sleep(random.uniform(PARALLEL_JITTER_MIN, PARALLEL_JITTER_MAX))

            result = func(*args)

            _get_logger().debug(
                "Task summary",
                extra={
                    "extra_fields": {
                        "api": api_name,
                        "function": func.__name__,
                        "params": _describe_args(args),
                        "rows": len(result) if isinstance(result, list) else None,
                        "status": "success",
                        "attempts": attempts,
                        "duration_ms": int((time.monotonic() - start) * 1000),
                    }
                },
            )
            return result

        except Exception as exc:
            if attempts >= max_retries:
                _get_logger().error(
                    "Task summary",
                    extra={
                        "extra_fields": {
                            "api": api_name,
                            "function": func.__name__,
                            "params": _describe_args(args),
                            "status": "failed",
                            "attempts": attempts,
                            "duration_ms": int((time.monotonic() - start) * 1000),
                            "error": str(exc),
                        }
                    },
                )
                raise

            backoff = min(
                PARALLEL_INITIAL_BACKOFF * (2 ** (attempts - 1)),
                PARALLEL_MAX_BACKOFF,
            )
            time.sleep(backoff)


def run_parallel(
    *,
    tasks: Iterable[ParallelTask],
    api_name: str = "default",
    max_workers: int = PARALLEL_MAX_WORKERS,
    max_retries: int = PARALLEL_MAX_RETRIES,
    timeout: int = PARALLEL_TASK_TIMEOUT,
    return_exceptions: bool = False,
) -> list[Any]:
    """
    Run (func, args) tasks on a thread pool, results in task order.

    Each task runs in a copy of the caller's context, so request and
    evaluation ids reach worker log lines. With return_exceptions=True a
    task that still fails after its retries leaves its exception in the
    result slot instead of aborting the batch.
    """
    task_list = list(tasks)
    if not task_list:
        return []

    for t in task_list:
        _validate_task(t)

    results: list[Any] = [None] * len(task_list)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_map = {
            executor.submit(
                copy_context().run,
                _run_with_retry,
                func,
                args,
                api_name=api_name,
                max_retries=max(1, max_retries),
            ): idx
            for idx, (func, args) in enumerate(task_list)
        }

        for future in as_completed(future_map):
            idx = future_map[future]
            try:
                results[idx] = future.result(timeout=timeout)
            except Exception as exc:
                if not return_exceptions:
                    raise
                results[idx] = exc

    return results


# ======================================================
# ENV / SECRET FILES
# ======================================================


def load_env() -> None:
    for path in (Path("/etc/.env"), LOCAL_ETC_DIR / ".env"):
        if path.is_file():
            load_dotenv(path)
            return


def resolve_secret_path(env_var: str, filename: str) -> str:
    env_value = get_env(env_var)
    if env_value and Path(env_value).is_file():
        return env_value

    for base in (Path("/etc/secrets"), LOCAL_SECRETS_DIR):
        candidate = base / filename
        if candidate.is_file():
            return str(candidate)

    if env_value:
        return env_value

    raise RuntimeError(
        f"Secret file not found for {env_var}. "
        f"Tried {filename} in /etc/secrets and etc/secrets."
    )
