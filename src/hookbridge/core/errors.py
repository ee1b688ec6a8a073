"""
Error taxonomy for HookBridge

Every failure a caller of ``submit`` or ``deliver`` can observe is a
``HookBridgeError`` carrying a stable error code, a context dictionary and
the underlying cause (if any).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for HookBridge"""

    # Internal errors (1000-1999)
    DUPLICATE_CORRELATION_ID = "HB1001"

    # Engine errors (2000-2999)
    TRIGGER_FAILED = "HB2001"
    CORRELATION_TIMEOUT = "HB2002"

    # Delivery errors (3000-3999)
    UNRECOGNIZED_PAYLOAD = "HB3001"


USER_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.DUPLICATE_CORRELATION_ID: "Internal error while tracking the request",
    ErrorCode.TRIGGER_FAILED: "The workflow engine did not accept the job",
    ErrorCode.CORRELATION_TIMEOUT: "The workflow engine accepted the job but did not answer in time",
    ErrorCode.UNRECOGNIZED_PAYLOAD: "The workflow engine answered with an unrecognized result",
}


class HookBridgeError(Exception):
    """Base exception for HookBridge with structured error information"""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.code = code
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.utcnow()
        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Get user-friendly error message"""
        return USER_MESSAGES.get(self.code, self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "user_message": self.user_message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class DuplicateIdError(HookBridgeError):
    """Raised when a correlation ID is registered twice"""

    def __init__(self, correlation_id: str):
        self.correlation_id = correlation_id
        super().__init__(
            f"Correlation ID '{correlation_id}' is already registered",
            ErrorCode.DUPLICATE_CORRELATION_ID,
            context={"correlation_id": correlation_id},
        )


class TriggerError(HookBridgeError):
    """Raised when the outbound call to the workflow engine fails or is rejected"""

    def __init__(
        self,
        correlation_id: str,
        status: Optional[int] = None,
        detail: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.correlation_id = correlation_id
        self.status = status
        self.detail = detail
        if status is None:
            message = f"Workflow engine trigger failed: {detail or 'transport error'}"
        else:
            message = f"Workflow engine returned {status}"
            if detail:
                message += f": {detail}"
        super().__init__(
            message,
            ErrorCode.TRIGGER_FAILED,
            context={"correlation_id": correlation_id, "status": status, "detail": detail},
            cause=cause,
        )


class CorrelationTimeoutError(HookBridgeError):
    """Raised when no matching callback arrives before the deadline"""

    def __init__(self, correlation_id: str, timeout: float):
        self.correlation_id = correlation_id
        self.timeout = timeout
        super().__init__(
            f"Request timeout: no result for '{correlation_id}' within {timeout:g}s",
            ErrorCode.CORRELATION_TIMEOUT,
            context={"correlation_id": correlation_id, "timeout": timeout},
        )


class UnrecognizedPayloadError(HookBridgeError):
    """Raised when an inbound callback cannot be normalized into a result"""

    def __init__(self, payload: Any, reason: str = "No recognizable data structure found"):
        self.payload = payload
        self.reason = reason
        super().__init__(
            f"Unrecognized callback payload: {reason}",
            ErrorCode.UNRECOGNIZED_PAYLOAD,
            context={"payload": payload, "reason": reason},
        )
