"""Decoder for Vapi server-message webhooks.

Vapi has delivered two envelope shapes over time:

- v2 (current): everything under a ``message`` object
  ``{"message": {"type": "end-of-call-report", "call": {...}, "endedReason": ...}}``
- v1 (legacy): the same fields directly on the body
  ``{"type": "end-of-call-report", "call": {...}, "endedReason": ...}``

The wrapped shape is tried first; the direct shape is the fallback.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

END_OF_CALL_REPORT = "end-of-call-report"

ENVELOPE_WRAPPED = "v2"
ENVELOPE_DIRECT = "v1"


def _str(value) -> str | None:
    """Provider fields are echoed back verbatim; anything but a non-empty string is absent."""
    return value if isinstance(value, str) and value else None


@dataclass(frozen=True)
class VapiEvent:
    """Webhook fields the reconciler cares about."""

    type: str
    envelope: str
    call_id: str | None = None
    ended_reason: str | None = None
    duration_seconds: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_end_of_call(self) -> bool:
        return self.type == END_OF_CALL_REPORT

    @property
    def agent_id(self) -> str | None:
        return _str(self.metadata.get("agentId"))

    @property
    def customer_name(self) -> str | None:
        return _str(self.metadata.get("customerName"))

    @property
    def address(self) -> str | None:
        return _str(self.metadata.get("address"))


def _parse_timestamp(value) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Naive timestamps are taken as UTC
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _seconds(value) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    if not math.isfinite(value):
        return None
    return max(0, int(round(value)))


def _duration(body: dict, call: dict) -> int | None:
    for source in (body, call):
        for key in ("durationSeconds", "duration"):
            value = source.get(key)
            seconds = _seconds(value)
            if seconds is not None:
                return seconds

    for source in (body, call):
        started = _parse_timestamp(source.get("startedAt"))
        ended = _parse_timestamp(source.get("endedAt"))
        if started and ended:
            return _seconds((ended - started).total_seconds())
    return None


def _decode_body(body: dict, envelope: str) -> VapiEvent:
    call = body.get("call") if isinstance(body.get("call"), dict) else {}
    metadata = call.get("metadata") if isinstance(call.get("metadata"), dict) else None
    if metadata is None:
        metadata = body.get("metadata") if isinstance(body.get("metadata"), dict) else {}

    return VapiEvent(
        type=body["type"],
        envelope=envelope,
        call_id=_str(call.get("id")) or _str(body.get("callId")),
        ended_reason=_str(body.get("endedReason")) or _str(call.get("endedReason")),
        duration_seconds=_duration(body, call),
        metadata=metadata,
    )


def decode_vapi_event(payload: Any) -> VapiEvent | None:
    """Return the decoded event, or None when no known envelope matches."""
    if not isinstance(payload, dict):
        return None

    message = payload.get("message")
    if isinstance(message, dict) and isinstance(message.get("type"), str):
        return _decode_body(message, ENVELOPE_WRAPPED)

    if isinstance(payload.get("type"), str):
        return _decode_body(payload, ENVELOPE_DIRECT)

    return None
