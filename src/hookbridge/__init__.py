"""HookBridge - request/response facade over webhook-driven workflow engines"""

__version__ = "0.1.0"

from hookbridge.core.correlation import CorrelationStore, PendingWait, generate_correlation_id
from hookbridge.core.coordinator import SubmissionCoordinator
from hookbridge.core.delivery import DeliveryHandler
from hookbridge.core.errors import (
    HookBridgeError,
    DuplicateIdError,
    TriggerError,
    CorrelationTimeoutError,
    UnrecognizedPayloadError,
)
from hookbridge.core.models import CallbackResult, DeliveryAck, DeliveryOutcome

__all__ = [
    "CorrelationStore",
    "PendingWait",
    "generate_correlation_id",
    "SubmissionCoordinator",
    "DeliveryHandler",
    "HookBridgeError",
    "DuplicateIdError",
    "TriggerError",
    "CorrelationTimeoutError",
    "UnrecognizedPayloadError",
    "CallbackResult",
    "DeliveryAck",
    "DeliveryOutcome",
]
