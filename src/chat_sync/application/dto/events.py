from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ChannelEvent:
    """One inbound event as delivered by a connection channel."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)
