"""
Delivery Handler for HookBridge

Receives callbacks from the workflow engine, normalizes their loosely typed
body into a result, finds the correlation ID and resolves the matching
pending wait. Orphaned and unrecognized callbacks are reported, never
raised, so the engine always gets an acknowledgment.
"""

import json
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .correlation import CorrelationStore
from .errors import UnrecognizedPayloadError
from .models import (
    CallbackResult,
    DeliveryOutcome,
    DirectResult,
    NormalizedPayload,
    Unrecognized,
    WrappedResult,
)

logger = logging.getLogger(__name__)

# Top-level keys that mark a body as being the result itself.
# Checked before unwrapping ``data``.
RESULT_MARKERS = ("status", "timestamp", "error")

WRAPPER_FIELD = "data"

# Echoed copies of the original request, in priority order
ECHO_FIELDS = ("original_request", "input")
ID_FIELDS = ("requestId", "request_id")
ID_HEADER = "X-Request-ID"


def classify_payload(raw: Any) -> NormalizedPayload:
    """Decide the shape of a callback body"""
    if not isinstance(raw, dict):
        return Unrecognized(raw, "payload is not a JSON object")

    if any(raw.get(marker) is not None for marker in RESULT_MARKERS):
        return DirectResult(raw)

    if WRAPPER_FIELD not in raw:
        return Unrecognized(raw, "no result markers and no data field")

    nested = raw[WRAPPER_FIELD]
    was_serialized = isinstance(nested, str)
    if was_serialized:
        try:
            nested = json.loads(nested)
        except ValueError as e:
            return Unrecognized(raw, f"data field is not valid JSON: {e}")

    if not isinstance(nested, dict):
        return Unrecognized(raw, "data field is not an object")
    return WrappedResult(nested, was_serialized=was_serialized)


def normalize_payload(raw: Any) -> Dict[str, Any]:
    """Return the result record of a callback body or raise UnrecognizedPayloadError"""
    normalized = classify_payload(raw)
    if isinstance(normalized, Unrecognized):
        raise UnrecognizedPayloadError(normalized.payload, normalized.reason)
    return normalized.record


def shape_name(normalized: NormalizedPayload) -> str:
    if isinstance(normalized, DirectResult):
        return "direct"
    if isinstance(normalized, WrappedResult):
        return "wrapped"
    return "unrecognized"


def _first_id(candidates: Iterable[Any]) -> Optional[str]:
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _header(headers: Optional[Mapping[str, str]], name: str) -> Optional[str]:
    if not headers:
        return None
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


def _id_candidates(
    record: Optional[Dict[str, Any]],
    raw: Any,
    headers: Optional[Mapping[str, str]],
) -> Iterable[Any]:
    if record is not None:
        for echo_field in ECHO_FIELDS:
            echoed = record.get(echo_field)
            if isinstance(echoed, dict):
                yield echoed.get("requestId")
        for field in ID_FIELDS:
            yield record.get(field)
    yield _header(headers, ID_HEADER)
    if isinstance(raw, dict):
        for field in ID_FIELDS:
            yield raw.get(field)


def extract_correlation_id(
    record: Optional[Dict[str, Any]],
    raw: Any,
    headers: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Find the correlation ID of a callback, first non-empty match wins:

    1. ``original_request.requestId`` / ``input.requestId`` on the result
    2. ``requestId`` / ``request_id`` on the result
    3. the ``X-Request-ID`` header
    4. ``requestId`` / ``request_id`` on the raw body
    """
    return _first_id(_id_candidates(record, raw, headers))


class DeliveryHandler:
    """Resolves pending waits from engine callbacks"""

    def __init__(self, store: CorrelationStore):
        self.store = store

    def deliver(self, raw: Any, headers: Optional[Mapping[str, str]] = None) -> DeliveryOutcome:
        normalized = classify_payload(raw)
        shape = shape_name(normalized)

        if isinstance(normalized, Unrecognized):
            return self._deliver_unrecognized(normalized, raw, headers)

        logger.debug(f"Callback normalized as {shape} result")
        record = normalized.record
        correlation_id = extract_correlation_id(record, raw, headers)
        if correlation_id is None:
            logger.warning("Callback carries no correlation ID, ignoring")
            return DeliveryOutcome(correlation_id=None, matched=False, shape=shape)

        wait = self.store.take(correlation_id)
        if wait is None:
            logger.info(f"No pending request for {correlation_id} (late or unsolicited callback)")
            logger.debug(f"Outstanding requests: {self.store.ids()}")
            return DeliveryOutcome(correlation_id=correlation_id, matched=False, shape=shape)

        wait.on_success(CallbackResult.from_record(record, correlation_id))
        logger.info(f"Resolved pending request {correlation_id} after {wait.age:.2f}s")
        return DeliveryOutcome(correlation_id=correlation_id, matched=True, shape=shape)

    def _deliver_unrecognized(
        self,
        normalized: Unrecognized,
        raw: Any,
        headers: Optional[Mapping[str, str]],
    ) -> DeliveryOutcome:
        error = UnrecognizedPayloadError(normalized.payload, normalized.reason)
        logger.warning(f"{error}; raw payload: {_preview(raw)}")

        correlation_id = extract_correlation_id(raw if isinstance(raw, dict) else None, raw, headers)
        wait = self.store.take(correlation_id) if correlation_id else None
        if wait is not None:
            # the engine did answer this request, just not with a result
            wait.on_failure(error)
            logger.info(f"Failed pending request {correlation_id} with unrecognized payload")
        return DeliveryOutcome(
            correlation_id=correlation_id,
            matched=wait is not None,
            shape="unrecognized",
            error=error,
        )


def _preview(raw: Any, limit: int = 1000) -> str:
    try:
        text = json.dumps(raw, default=str)
    except (TypeError, ValueError):
        text = repr(raw)
    return text if len(text) <= limit else text[:limit] + "..."
