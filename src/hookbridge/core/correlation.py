"""
Correlation Store for HookBridge

Process-wide mapping from correlation ID to the pending wait of a suspended
caller. ``take`` is the single serialization point: whichever of the
delivery path or the deadline reaches it first owns the wait, the other one
sees ``None``.
"""

import asyncio
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from .errors import DuplicateIdError

logger = logging.getLogger(__name__)


def generate_correlation_id(prefix: str = "req") -> str:
    """Generate a correlation ID from a millisecond timestamp and a random suffix"""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class PendingWait:
    """
    One in-flight request awaiting an external result.

    Resolution is marshalled onto the loop that owns the future, so a wait
    may be resolved from any thread. Only the holder that obtained the wait
    through ``CorrelationStore.take`` may resolve it.
    """

    def __init__(
        self,
        correlation_id: str,
        future: "asyncio.Future[Any]",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.correlation_id = correlation_id
        self.future = future
        self.loop = loop or future.get_loop()
        self.deadline_handle: Optional[asyncio.TimerHandle] = None
        self.created_at = time.monotonic()

    def arm(self, timeout: float, on_deadline: Callable[[str], None]) -> None:
        """Schedule the deadline; must be called on the owning loop"""
        self.deadline_handle = self.loop.call_later(timeout, on_deadline, self.correlation_id)

    def disarm(self) -> None:
        if self.deadline_handle is not None:
            self.deadline_handle.cancel()
            self.deadline_handle = None

    def on_success(self, result: Any) -> None:
        self._dispatch(result, None)

    def on_failure(self, error: BaseException) -> None:
        self._dispatch(None, error)

    def _dispatch(self, result: Any, error: Optional[BaseException]) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self.loop:
            self._settle(result, error)
        else:
            self.loop.call_soon_threadsafe(self._settle, result, error)

    def _settle(self, result: Any, error: Optional[BaseException]) -> None:
        self.disarm()
        # the caller may have been cancelled in the meantime
        if self.future.done():
            return
        if error is not None:
            self.future.set_exception(error)
        else:
            self.future.set_result(result)

    @property
    def age(self) -> float:
        return time.monotonic() - self.created_at


class CorrelationStore:
    """Thread-safe mapping of correlation ID to PendingWait"""

    def __init__(self):
        self._waits: Dict[str, PendingWait] = {}
        self._lock = threading.Lock()

    def register(self, correlation_id: str, wait: PendingWait) -> None:
        """Insert a wait; the ID must not already be present"""
        with self._lock:
            if correlation_id in self._waits:
                raise DuplicateIdError(correlation_id)
            self._waits[correlation_id] = wait
        logger.debug(f"Registered pending wait: {correlation_id}")

    def take(self, correlation_id: str) -> Optional[PendingWait]:
        """Atomically look up and remove a wait"""
        with self._lock:
            return self._waits.pop(correlation_id, None)

    def remove(self, correlation_id: str) -> None:
        with self._lock:
            self._waits.pop(correlation_id, None)

    def ids(self) -> List[str]:
        """Snapshot of outstanding correlation IDs, for diagnostics"""
        with self._lock:
            return list(self._waits)

    def __contains__(self, correlation_id: object) -> bool:
        with self._lock:
            return correlation_id in self._waits

    def __len__(self) -> int:
        with self._lock:
            return len(self._waits)
