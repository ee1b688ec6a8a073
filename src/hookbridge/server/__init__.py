"""
aiohttp server exposing the submission and callback routes
"""

from hookbridge.server.app import BridgeServer

__all__ = ["BridgeServer"]
