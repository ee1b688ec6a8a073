"""
Result and wire models for HookBridge
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnrecognizedPayloadError


class CallbackResult(BaseModel):
    """Normalized result of a delivered callback, handed to the waiting caller"""

    correlation_id: Optional[str] = None
    status: Optional[str] = None
    data: Optional[Any] = None
    record: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Dict[str, Any], correlation_id: Optional[str] = None) -> "CallbackResult":
        status = record.get("status")
        return cls(
            correlation_id=correlation_id,
            status=status if isinstance(status, str) else None,
            data=record.get("data"),
            record=record,
        )


class DeliveryAck(BaseModel):
    """Acknowledgment returned to the workflow engine for every delivery"""

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Result received successfully"
    status: str = "success"
    processed_correlation_id: Optional[str] = Field(default=None, alias="processedCorrelationId")


class ErrorResponse(BaseModel):
    """Structured error body for HTTP responses"""

    error: str
    details: str
    code: Optional[str] = None


# Normalized callback shapes, decided once at the top of the delivery path

@dataclass(frozen=True)
class DirectResult:
    """The callback body itself is the result"""
    record: Dict[str, Any]


@dataclass(frozen=True)
class WrappedResult:
    """The result was nested under ``data``, possibly as a JSON string"""
    record: Dict[str, Any]
    was_serialized: bool = False


@dataclass(frozen=True)
class Unrecognized:
    """No result shape could be found in the callback body"""
    payload: Any
    reason: str


NormalizedPayload = Union[DirectResult, WrappedResult, Unrecognized]


@dataclass
class DeliveryOutcome:
    """What a single delivery did"""
    correlation_id: Optional[str]
    matched: bool
    shape: str
    error: Optional[UnrecognizedPayloadError] = None

    def to_ack(self) -> DeliveryAck:
        if self.error is not None:
            message = "Result received but not recognized"
        elif self.matched:
            message = "Result received successfully"
        else:
            message = "Result received, no matching request"
        return DeliveryAck(message=message, processed_correlation_id=self.correlation_id)
