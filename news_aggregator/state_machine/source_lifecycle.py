import json
import threading
from collections.abc import Callable
from typing import Any

from news_aggregator.core.time import now_ms
from news_aggregator.models.entities import SourceStatus
from news_aggregator.schemas.article_text import SourceLifecycleState

RETRY_BASE_BACKOFF_MS = 250
RETRY_MAX_BACKOFF_MS = 8_000


def calculate_backoff_ms(attempt: int, base_backoff_ms: int, max_backoff_ms: int) -> int:
    return min(max_backoff_ms, base_backoff_ms * 2 ** max(0, attempt - 1))


def normalize_error_message(error: Any) -> str:
    if isinstance(error, BaseException):
        return str(error)
    if isinstance(error, str):
        return error
    try:
        return json.dumps(error)
    except (TypeError, ValueError):
        return str(error)


class SourceLifecycleTracker:
    def __init__(
        self,
        now: Callable[[], int] = now_ms,
        base_backoff_ms: int = RETRY_BASE_BACKOFF_MS,
        max_backoff_ms: int = RETRY_MAX_BACKOFF_MS,
    ) -> None:
        self._now = now
        self.base_backoff_ms = base_backoff_ms
        self.max_backoff_ms = max_backoff_ms
        self._states: dict[str, SourceLifecycleState] = {}
        self._lock = threading.Lock()

    def can_attempt(self, source_domain: str, at_ms: int | None = None) -> bool:
        with self._lock:
            state = self._states.get(source_domain)
        if state is None or state.next_retry_at is None:
            return True
        return (self._now() if at_ms is None else at_ms) >= state.next_retry_at

    def record_attempt(self, source_domain: str) -> SourceLifecycleState:
        now = self._now()
        return self._update(
            source_domain,
            lambda state: {"total_attempts": state.total_attempts + 1, "last_attempt_at": now},
        )

    def record_retry(self, source_domain: str, error: Any, attempt: int) -> SourceLifecycleState:
        now = self._now()
        delay_ms = calculate_backoff_ms(attempt, self.base_backoff_ms, self.max_backoff_ms)
        return self._update(
            source_domain,
            lambda state: {
                "status": SourceStatus.retrying,
                "retry_count": state.retry_count + 1,
                "last_retry_at": now,
                "next_retry_at": now + delay_ms,
                "last_backoff_ms": delay_ms,
                "last_error_message": normalize_error_message(error),
            },
        )

    def record_failure(self, source_domain: str, error: Any) -> SourceLifecycleState:
        now = self._now()
        return self._update(
            source_domain,
            lambda state: {
                "status": SourceStatus.failing,
                "total_failures": state.total_failures + 1,
                "consecutive_failures": state.consecutive_failures + 1,
                "last_failure_at": now,
                "next_retry_at": None,
                "last_error_message": normalize_error_message(error),
            },
        )

    def record_success(self, source_domain: str) -> SourceLifecycleState:
        now = self._now()
        return self._update(
            source_domain,
            lambda state: {
                "status": SourceStatus.healthy,
                "total_successes": state.total_successes + 1,
                "consecutive_failures": 0,
                "last_success_at": now,
                "next_retry_at": None,
                "last_backoff_ms": None,
                "last_error_message": None,
            },
        )

    def get_state(self, source_domain: str) -> SourceLifecycleState | None:
        with self._lock:
            return self._states.get(source_domain)

    def snapshot(self) -> list[SourceLifecycleState]:
        with self._lock:
            return sorted(self._states.values(), key=lambda state: state.source_domain)

    def _update(
        self,
        source_domain: str,
        changes: Callable[[SourceLifecycleState], dict[str, Any]],
    ) -> SourceLifecycleState:
        with self._lock:
            current = self._states.get(source_domain) or SourceLifecycleState(source_domain=source_domain)
            updated = current.model_copy(update=changes(current))
            self._states[source_domain] = updated
            return updated
