"""JSON framing for channel events carried over Redis: ``{"event": ..., "data": {...}}``."""
from __future__ import annotations

import json

from chat_sync.application.dto.events import ChannelEvent
from chat_sync.application.exceptions import ProtocolAnomaly


def decode_event(raw: str | bytes) -> ChannelEvent:
    try:
        frame = json.loads(raw)
    except ValueError as exc:
        raise ProtocolAnomaly(f"frame is not JSON: {exc}") from exc

    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        raise ProtocolAnomaly("frame has no event name")
    data = frame.get("data", {})
    if not isinstance(data, dict):
        raise ProtocolAnomaly(f"{frame['event']} frame data is not an object")
    return ChannelEvent(type=frame["event"], data=data)
