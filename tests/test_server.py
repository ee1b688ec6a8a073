"""
Integration tests for the HookBridge HTTP facade
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from aiohttp import test_utils

from hookbridge.config import BridgeConfig
from hookbridge.core.errors import TriggerError
from hookbridge.server.app import BridgeServer

ENGINE_URL = "http://engine.invalid/webhook/seo"

pytestmark = pytest.mark.integration


class LoopbackEngine:
    """Fake engine that posts its result back to the bridge's callback route"""

    def __init__(self, result, delay=0.01):
        self.result = result
        self.delay = delay
        self.client = None
        self.acks = []
        self.tasks = []

    async def trigger(self, correlation_id, payload):
        body = dict(self.result, original_request=dict(payload, requestId=correlation_id))
        self.tasks.append(asyncio.ensure_future(self._callback(body)))
        return 200

    async def _callback(self, body):
        await asyncio.sleep(self.delay)
        response = await self.client.post("/api/results", json=body)
        self.acks.append(await response.json())

    async def drain(self):
        await asyncio.gather(*self.tasks)


class SilentEngine:
    async def trigger(self, correlation_id, payload):
        return 200


def make_server(trigger, **overrides):
    config = BridgeConfig(engine_url=ENGINE_URL, **overrides)
    return BridgeServer(config, trigger=trigger)


def client_for(server):
    return test_utils.TestClient(test_utils.TestServer(server.app))


class TestSubmitRoute:
    """Test POST /api/submit"""

    @pytest.mark.asyncio
    async def test_round_trip(self, widget_payload, engine_result):
        engine = LoopbackEngine(engine_result)
        server = make_server(engine)

        async with client_for(server) as client:
            engine.client = client
            response = await client.post("/api/submit", json=widget_payload)
            assert response.status == 200
            body = await response.json()
            await engine.drain()

        assert body["status"] == "success"
        assert body["data"] == engine_result["data"]
        correlation_id = body["original_request"]["requestId"]
        assert correlation_id.startswith("req_")
        assert body["original_request"]["title"] == "Widget"

        assert engine.acks == [{
            "message": "Result received successfully",
            "status": "success",
            "processedCorrelationId": correlation_id,
        }]
        assert len(server.store) == 0

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.post(
                "/api/submit", data="not json", headers={"Content-Type": "application/json"}
            )
            assert response.status == 400
            body = await response.json()

        assert body["error"] == "Invalid JSON body"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, [], ["title"], "Widget"])
    async def test_payload_must_be_non_empty_object(self, payload):
        trigger = AsyncMock()
        server = make_server(trigger)

        async with client_for(server) as client:
            response = await client.post("/api/submit", json=payload)
            assert response.status == 400
            body = await response.json()

        assert body["error"] == "Invalid request"
        trigger.trigger.assert_not_called()

    @pytest.mark.asyncio
    async def test_trigger_failure(self, widget_payload):
        trigger = AsyncMock()
        trigger.trigger.side_effect = TriggerError("req-1", status=404, detail="webhook not registered")
        server = make_server(trigger)

        async with client_for(server) as client:
            response = await client.post("/api/submit", json=widget_payload)
            assert response.status == 502
            body = await response.json()

        assert body["error"] == "Failed to trigger workflow"
        assert body["code"] == "HB2001"
        assert "webhook not registered" in body["details"]
        assert len(server.store) == 0

    @pytest.mark.asyncio
    async def test_timeout(self, widget_payload):
        server = make_server(SilentEngine(), request_timeout=0.05)

        async with client_for(server) as client:
            response = await client.post("/api/submit", json=widget_payload)
            assert response.status == 504
            body = await response.json()

        assert body["error"] == "Workflow did not respond in time"
        assert body["code"] == "HB2002"
        assert len(server.store) == 0

    @pytest.mark.asyncio
    async def test_unrecognized_result(self, widget_payload):
        engine = LoopbackEngine({"data": "<html>Bad Gateway</html>"})
        server = make_server(engine)

        async with client_for(server) as client:
            engine.client = client
            response = await client.post("/api/submit", json=widget_payload)
            assert response.status == 502
            body = await response.json()
            await engine.drain()

        assert body["code"] == "HB3001"
        assert engine.acks[0]["message"] == "Result received but not recognized"


class TestCallbackRoute:
    """Test POST /api/results"""

    @pytest.mark.asyncio
    async def test_orphan_callback_is_acknowledged(self, engine_result):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.post(
                "/api/results", json=dict(engine_result, requestId="req-gone")
            )
            assert response.status == 200
            body = await response.json()

        assert body == {
            "message": "Result received, no matching request",
            "status": "success",
            "processedCorrelationId": "req-gone",
        }

    @pytest.mark.asyncio
    async def test_header_correlation(self, engine_result):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.post(
                "/api/results", json=engine_result, headers={"X-Request-ID": "req-hdr"}
            )
            body = await response.json()

        assert body["processedCorrelationId"] == "req-hdr"

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.post(
                "/api/results", data="{broken", headers={"Content-Type": "application/json"}
            )
            assert response.status == 500
            body = await response.json()

        assert body["error"] == "Failed to process results"


class TestCors:
    """Test CORS handling"""

    @pytest.mark.asyncio
    async def test_preflight(self):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.options(
                "/api/submit",
                headers={"Origin": "https://shop.example.com", "Access-Control-Request-Method": "POST"},
            )

        assert response.status == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "POST" in response.headers["Access-Control-Allow-Methods"]
        assert "Content-Type" in response.headers["Access-Control-Allow-Headers"]

    @pytest.mark.asyncio
    async def test_error_responses_carry_cors_headers(self):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.post("/api/submit", json={})

        assert response.status == 400
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_restricted_origins(self):
        server = make_server(SilentEngine(), cors_origins=["https://shop.example.com"])

        async with client_for(server) as client:
            allowed = await client.get("/health", headers={"Origin": "https://shop.example.com"})
            denied = await client.get("/health", headers={"Origin": "https://evil.example.com"})

        assert allowed.headers["Access-Control-Allow-Origin"] == "https://shop.example.com"
        assert allowed.headers["Vary"] == "Origin"
        assert "Access-Control-Allow-Origin" not in denied.headers


class TestServerLifecycle:
    """Test health and lifecycle"""

    @pytest.mark.asyncio
    async def test_health(self):
        server = make_server(SilentEngine())

        async with client_for(server) as client:
            response = await client.get("/health")
            assert response.status == 200
            body = await response.json()

        assert body["status"] == "healthy"
        assert body["pending"] == 0
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_custom_paths(self, engine_result):
        server = make_server(SilentEngine(), submit_path="/seo", callback_path="/seo-results")

        async with client_for(server) as client:
            response = await client.post("/seo-results", json=engine_result)
            assert response.status == 200
            response = await client.post("/api/results", json=engine_result)
            assert response.status == 404

    @pytest.mark.asyncio
    async def test_start_and_stop_manage_trigger_session(self):
        config = BridgeConfig(engine_url="http://127.0.0.1:1/webhook", host="127.0.0.1", port=0)
        server = BridgeServer(config)

        await server.start()
        try:
            assert server.trigger.session is not None
        finally:
            await server.stop()

        assert server.trigger.session is None
        assert server.runner is None
