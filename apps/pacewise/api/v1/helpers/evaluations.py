from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from shared.logger import get_logger
from shared.utils import now_iso

logger = get_logger("Evaluations")


@dataclass(frozen=True)
class EvaluationTicket:
    generation: int
    selector: str
    started_at: str


class EvaluationRegistry:
    """
    Holds the latest published evaluation.

    Every evaluation takes a ticket before fetching; only the holder of the
    most recently issued ticket may publish, so an older selector finishing
    late is dropped instead of overwriting newer results.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0
        self._latest: Any = None

    def begin(self, selector: str) -> EvaluationTicket:
        with self._lock:
            self._generation += 1
            return EvaluationTicket(
                generation=self._generation,
                selector=selector,
                started_at=now_iso(),
            )

    def publish(self, ticket: EvaluationTicket, evaluation: Any) -> bool:
        with self._lock:
            if ticket.generation != self._generation:
                logger.info(
                    "Stale evaluation discarded",
                    extra={
                        "extra_fields": {
                            "selector": ticket.selector,
                            "generation": ticket.generation,
                            "latest_generation": self._generation,
                        }
                    },
                )
                return False
            self._latest = evaluation
            return True

    def latest(self) -> Any:
        with self._lock:
            return self._latest

    def clear(self) -> None:
        with self._lock:
            self._generation = 0
            self._latest = None


REGISTRY = EvaluationRegistry()
