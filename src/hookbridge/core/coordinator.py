"""
Submission Coordinator for HookBridge

Turns a fire-and-forget webhook trigger into a request/response call:
register a pending wait, trigger the engine, suspend until the matching
callback or the deadline resolves the wait.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from .correlation import CorrelationStore, PendingWait, generate_correlation_id
from .errors import CorrelationTimeoutError, TriggerError
from .models import CallbackResult

logger = logging.getLogger(__name__)


class Trigger(Protocol):
    async def trigger(self, correlation_id: str, payload: Dict[str, Any]) -> int:
        ...


class SubmissionCoordinator:
    """
    Submits work to the engine and waits for its callback

    Both the coordinator and the DeliveryHandler must share the same
    CorrelationStore instance.
    """

    def __init__(
        self,
        store: CorrelationStore,
        trigger: Trigger,
        timeout: float = 60.0,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.store = store
        self.trigger = trigger
        self.timeout = timeout
        self.id_factory = id_factory or generate_correlation_id

    async def submit(self, payload: Dict[str, Any], timeout: Optional[float] = None) -> CallbackResult:
        """
        Trigger the engine and wait for its result

        Raises:
            TriggerError: the engine did not accept the job
            CorrelationTimeoutError: no callback arrived within the deadline
            UnrecognizedPayloadError: the matching callback was not a result
            DuplicateIdError: the ID factory produced an ID already in use
        """
        deadline = timeout if timeout is not None else self.timeout
        if deadline <= 0:
            raise ValueError("timeout must be positive")
        loop = asyncio.get_running_loop()

        correlation_id = self.id_factory()
        wait = PendingWait(correlation_id, loop.create_future(), loop)
        self.store.register(correlation_id, wait)
        wait.arm(deadline, lambda cid: self._expire(cid, deadline))

        try:
            await self.trigger.trigger(correlation_id, payload)
        except TriggerError:
            self._discard(wait)
            raise
        except Exception as e:
            self._discard(wait)
            raise TriggerError(correlation_id, detail=str(e), cause=e) from e
        except asyncio.CancelledError:
            self._discard(wait)
            raise

        logger.info(f"Waiting up to {deadline:g}s for callback {correlation_id}")
        try:
            return await wait.future
        except asyncio.CancelledError:
            # caller went away; tear down so the deadline does not fire later
            self._discard(wait)
            raise

    def _expire(self, correlation_id: str, timeout: float) -> None:
        wait = self.store.take(correlation_id)
        if wait is None:
            # already resolved by a delivery
            return
        logger.warning(f"Request {correlation_id} timed out after {timeout:g}s")
        wait.on_failure(CorrelationTimeoutError(correlation_id, timeout))

    def _discard(self, wait: PendingWait) -> None:
        self.store.remove(wait.correlation_id)
        wait.disarm()
        future = wait.future
        if not future.done():
            future.cancel()
        elif not future.cancelled():
            # a deadline or delivery that won the race; the caller sees another failure
            future.exception()
        logger.debug(f"Discarded pending wait {wait.correlation_id}")
