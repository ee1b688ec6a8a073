"""
Outbound HTTP client for the workflow engine
"""

from hookbridge.client.trigger import EngineTrigger

__all__ = ["EngineTrigger"]
