"""
HTTP facade for HookBridge

Exposes the request/response submission route to callers and the webhook
route the workflow engine calls back on.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from aiohttp import web

from hookbridge.client.trigger import EngineTrigger
from hookbridge.config import BridgeConfig
from hookbridge.core.coordinator import SubmissionCoordinator, Trigger
from hookbridge.core.correlation import CorrelationStore, generate_correlation_id
from hookbridge.core.delivery import DeliveryHandler
from hookbridge.core.errors import (
    CorrelationTimeoutError,
    HookBridgeError,
    TriggerError,
    UnrecognizedPayloadError,
)
from hookbridge.core.models import ErrorResponse
from hookbridge.server.cors import cors_middleware

logger = logging.getLogger(__name__)


def error_response(status: int, error: str, details: str, code: Optional[str] = None) -> web.Response:
    body = ErrorResponse(error=error, details=details, code=code)
    return web.json_response(body.model_dump(exclude_none=True), status=status)


class BridgeServer:
    """
    HookBridge HTTP server

    Owns one CorrelationStore shared by the submission coordinator and the
    delivery handler.
    """

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        store: Optional[CorrelationStore] = None,
        trigger: Optional[Trigger] = None,
    ):
        """
        Initialize HookBridge server

        Args:
            config: Server configuration
            store: Correlation store (a fresh one if not given)
            trigger: Outbound engine trigger (an EngineTrigger for
                ``config.engine_url`` if not given)
        """
        self.config = config or BridgeConfig()
        self.store = store or CorrelationStore()
        self.trigger = trigger or EngineTrigger(
            self.config.engine_url,
            timeout=self.config.trigger_timeout,
            correlation_field=self.config.correlation_field,
        )

        prefix = self.config.id_prefix
        self.coordinator = SubmissionCoordinator(
            self.store,
            self.trigger,
            timeout=self.config.request_timeout,
            id_factory=lambda: generate_correlation_id(prefix),
        )
        self.delivery = DeliveryHandler(self.store)

        self.app = web.Application(middlewares=[cors_middleware(self.config)])
        self.app.on_startup.append(self._on_startup)
        self.app.on_cleanup.append(self._on_cleanup)
        self._setup_routes()

        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self.shutdown_event = asyncio.Event()

    def _setup_routes(self):
        """Setup HTTP routes"""
        self.app.router.add_post(self.config.submit_path, self.handle_submit)
        self.app.router.add_post(self.config.callback_path, self.handle_callback)
        self.app.router.add_get("/health", self.handle_health)

    async def _on_startup(self, app: web.Application):
        initialize = getattr(self.trigger, "initialize", None)
        if initialize is not None:
            await initialize()

    async def _on_cleanup(self, app: web.Application):
        shutdown = getattr(self.trigger, "shutdown", None)
        if shutdown is not None:
            await shutdown()
        if len(self.store):
            logger.warning(f"Shutting down with {len(self.store)} pending requests")

    # ========================
    # Handlers
    # ========================

    async def handle_submit(self, request: web.Request) -> web.Response:
        """Trigger the engine and answer with its eventual result"""
        try:
            payload = await request.json()
        except ValueError as e:
            return error_response(400, "Invalid JSON body", str(e))

        if not isinstance(payload, dict) or not payload:
            return error_response(400, "Invalid request", "A non-empty JSON object is required")

        try:
            result = await self.coordinator.submit(payload)
        except TriggerError as e:
            return self._failure(502, "Failed to trigger workflow", e)
        except CorrelationTimeoutError as e:
            return self._failure(504, "Workflow did not respond in time", e)
        except UnrecognizedPayloadError as e:
            return self._failure(502, "Workflow returned an unrecognized result", e)

        return web.json_response(result.record)

    async def handle_callback(self, request: web.Request) -> web.Response:
        """Receive a result callback from the engine"""
        try:
            raw = await request.json()
        except ValueError as e:
            logger.error(f"Malformed callback body: {e}")
            return error_response(500, "Failed to process results", str(e))

        outcome = self.delivery.deliver(raw, request.headers)
        ack = outcome.to_ack()
        return web.json_response(ack.model_dump(by_alias=True))

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({
            "status": "healthy",
            "pending": len(self.store),
            "timestamp": datetime.utcnow().isoformat(),
        })

    def _failure(self, status: int, error: str, exc: HookBridgeError) -> web.Response:
        logger.error(f"{error}: {exc}")
        return error_response(status, error, exc.message, exc.code.value)

    # ========================
    # Lifecycle
    # ========================

    async def start(self):
        """Start HTTP server"""
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        self.site = web.TCPSite(self.runner, self.config.host, self.config.port)
        await self.site.start()

        logger.info(f"HookBridge listening on http://{self.config.host}:{self.config.port}")
        logger.info(f"Submissions: {self.config.submit_path}, callbacks: {self.config.callback_path}")

    async def stop(self):
        """Stop HTTP server"""
        if self.site:
            await self.site.stop()
            self.site = None
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
        logger.info("HookBridge stopped")

    async def serve(self):
        """Run until ``shutdown_event`` is set"""
        await self.start()
        try:
            await self.shutdown_event.wait()
        finally:
            await self.stop()
