"""
CORS handling for the HookBridge HTTP facade
"""

from typing import Awaitable, Callable, Dict, Optional

from aiohttp import web

from hookbridge.config import BridgeConfig

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def cors_headers(config: BridgeConfig, origin: Optional[str] = None) -> Dict[str, str]:
    """Build the CORS headers for a response to ``origin``"""
    headers = {}

    if "*" in config.cors_origins:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin and origin in config.cors_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"

    if config.cors_methods:
        headers["Access-Control-Allow-Methods"] = ", ".join(config.cors_methods)
    if config.cors_headers:
        headers["Access-Control-Allow-Headers"] = ", ".join(config.cors_headers)
    if config.cors_credentials:
        headers["Access-Control-Allow-Credentials"] = "true"
    if config.cors_max_age:
        headers["Access-Control-Max-Age"] = str(config.cors_max_age)

    return headers


def cors_middleware(config: BridgeConfig):
    """Create middleware that sets CORS headers and answers preflight requests"""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        headers = cors_headers(config, request.headers.get("Origin"))
        if request.method == "OPTIONS":
            return web.Response(status=200, headers=headers)
        response = await handler(request)
        response.headers.update(headers)
        return response

    return middleware
