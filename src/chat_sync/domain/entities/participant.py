from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    name: str | None = None
    profile_pic: str | None = None
    role: str | None = None
