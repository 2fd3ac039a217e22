"""
Automatic retry for entries the UI sees in ``pending``.

The orchestrator triggers analysis once when an entry is first observed as
pending. Retryable failures are retried up to :data:`MAX_AUTO_RETRIES` times
with exponential backoff; afterwards (or on success, or on a non-retryable
failure) it polls the entry status a bounded number of times so the UI can
settle on the persisted state.
"""
import logging
import threading
from typing import Any, Callable, Dict, Hashable, Optional, Set

from journal_api.analysis.errors import AIErrorType, ClassifiedError, format_error_for_display
from journal_api.analysis.schemas import AIActionResult
from journal_api.core.ai_state import PENDING, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

INITIAL_DELAY_SECONDS = 2.0
MAX_DELAY_SECONDS = 10.0
MAX_AUTO_RETRIES = 2
REFRESH_ATTEMPTS = 5
REFRESH_INTERVAL_SECONDS = 2.0

Trigger = Callable[[Any], AIActionResult]
Refresh = Callable[[Any], str]
# (delay_seconds, callback) -> handle with a cancel() method
Scheduler = Callable[[float, Callable[[], None]], Any]


def backoff_delay(attempt_index: int) -> float:
    return min(INITIAL_DELAY_SECONDS * (2 ** attempt_index), MAX_DELAY_SECONDS)


def thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def _classified(result: AIActionResult) -> ClassifiedError:
    try:
        kind = AIErrorType(result.errorType)
    except ValueError:
        kind = AIErrorType.UNKNOWN
    message = result.error or "AI processing failed."
    return ClassifiedError(
        kind=kind,
        message=message,
        user_message=message,
        retryable=bool(result.canRetry),
        retry_after=result.retryAfter,
    )


class AIRetryOrchestrator:
    def __init__(self, trigger: Trigger, refresh: Refresh, scheduler: Scheduler = thread_timer):
        self._trigger = trigger
        self._refresh = refresh
        self._scheduler = scheduler
        self._lock = threading.Lock()
        self._timers: Dict[Hashable, Any] = {}
        self._retries: Dict[Hashable, int] = {}
        self._failures: Dict[Hashable, ClassifiedError] = {}
        self._started: Set[Hashable] = set()
        self._cancelled: Set[Hashable] = set()
        self._closed = False

    def observe(self, entry_id: Hashable, status: str) -> bool:
        """
        Reports the status the UI currently shows for an entry.

        Returns True if this observation started the automatic trigger.
        Only the first ``pending`` observation per entry does.
        """
        with self._lock:
            if self._closed or status != PENDING or entry_id in self._started or entry_id in self._cancelled:
                return False
            self._started.add(entry_id)
        self._attempt(entry_id)
        return True

    def failure_message(self, entry_id: Hashable) -> Optional[str]:
        """Display text for the last failed trigger of an entry, or None."""
        with self._lock:
            classified = self._failures.get(entry_id)
        if classified is None:
            return None
        return format_error_for_display(classified)

    def cancel(self, entry_id: Hashable) -> None:
        """Stops the entry for good, including a retry an in-flight trigger would schedule."""
        with self._lock:
            self._cancelled.add(entry_id)
            timer = self._timers.pop(entry_id, None)
        if timer is not None:
            timer.cancel()

    def teardown(self) -> None:
        """Cancels every pending timer; later callbacks and observations are ignored."""
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def _schedule(self, entry_id: Hashable, delay: float, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._closed or entry_id in self._cancelled:
                return
            self._timers[entry_id] = self._scheduler(delay, callback)

    def _begin_callback(self, entry_id: Hashable) -> bool:
        with self._lock:
            self._timers.pop(entry_id, None)
            return not self._closed and entry_id not in self._cancelled

    def _attempt(self, entry_id: Hashable) -> None:
        if not self._begin_callback(entry_id):
            return

        result = self._trigger(entry_id)
        if result.success:
            with self._lock:
                self._failures.pop(entry_id, None)
            logger.info(f"entry {entry_id}: analysis succeeded")
            self._converge(entry_id, REFRESH_ATTEMPTS)
            return

        with self._lock:
            self._failures[entry_id] = _classified(result)
            retries = self._retries.get(entry_id, 0)
            can_retry = bool(result.canRetry) and retries < MAX_AUTO_RETRIES
            if can_retry:
                self._retries[entry_id] = retries + 1

        if can_retry:
            delay = backoff_delay(retries)
            logger.info(
                f"entry {entry_id}: {result.errorType or 'failure'}, auto-retry {retries + 1}/{MAX_AUTO_RETRIES} in {delay:g}s"
            )
            self._schedule(entry_id, delay, lambda: self._attempt(entry_id))
            return

        logger.info(f"entry {entry_id}: not retrying automatically: {self.failure_message(entry_id)}")
        self._converge(entry_id, REFRESH_ATTEMPTS)

    def _converge(self, entry_id: Hashable, remaining: int) -> None:
        if not self._begin_callback(entry_id):
            return
        try:
            status = self._refresh(entry_id)
        except Exception as e:
            # counts as a non-terminal poll
            logger.warning(f"entry {entry_id}: status refresh failed: {e}")
            status = None
        if status in TERMINAL_STATUSES or remaining <= 1:
            return
        self._schedule(entry_id, REFRESH_INTERVAL_SECONDS, lambda: self._converge(entry_id, remaining - 1))
