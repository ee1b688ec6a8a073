"""
Outbound trigger for the external workflow engine

Posts the caller payload, with the correlation ID embedded, to the engine's
webhook URL. Any 2xx status is success; any other status or a transport
failure raises TriggerError.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from hookbridge.core.errors import TriggerError

logger = logging.getLogger(__name__)

# Keep error bodies short in logs and error context
MAX_DETAIL_LENGTH = 500


class EngineTrigger:
    """
    HTTP trigger for the workflow engine

    Example:
        ```python
        trigger = EngineTrigger("https://engine.example.com/webhook/abc")
        await trigger.initialize()
        status = await trigger.trigger("req_1_abc", {"title": "Widget"})
        await trigger.shutdown()
        ```
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        correlation_field: str = "requestId",
        headers: Optional[Dict[str, str]] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize engine trigger

        Args:
            url: Webhook URL of the workflow engine
            timeout: Total timeout of the outbound call in seconds
            correlation_field: Body key under which the correlation ID is sent
            headers: Extra headers sent with every trigger call
            session: Existing aiohttp session to reuse (not closed on shutdown)
        """
        self.url = url
        self.timeout = timeout
        self.correlation_field = correlation_field
        self.headers = dict(headers or {})
        self.session = session
        self._owns_session = session is None

    async def initialize(self) -> None:
        """Create HTTP session"""
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True

    async def shutdown(self) -> None:
        """Close HTTP session if we created it"""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    def build_body(self, correlation_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(payload)
        body[self.correlation_field] = correlation_id
        return body

    async def trigger(self, correlation_id: str, payload: Dict[str, Any]) -> int:
        """Send the trigger call and return the engine's HTTP status"""
        if self.session is None:
            await self.initialize()

        body = self.build_body(correlation_id, payload)
        headers = {"Content-Type": "application/json", "X-Request-ID": correlation_id}
        headers.update(self.headers)

        try:
            async with self.session.post(
                self.url,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if 200 <= response.status < 300:
                    logger.info(f"Triggered workflow engine for {correlation_id}: {response.status}")
                    return response.status
                detail = (await response.text())[:MAX_DETAIL_LENGTH]
                logger.warning(
                    f"Workflow engine rejected {correlation_id}: {response.status} {detail}"
                )
                raise TriggerError(correlation_id, status=response.status, detail=detail)
        except asyncio.TimeoutError as e:
            logger.error(f"Workflow engine trigger timed out for {correlation_id} after {self.timeout}s")
            raise TriggerError(
                correlation_id, detail=f"timed out after {self.timeout:g}s", cause=e
            )
        except aiohttp.ClientError as e:
            logger.error(f"Workflow engine trigger failed for {correlation_id}: {e}")
            raise TriggerError(correlation_id, detail=str(e) or type(e).__name__, cause=e)
