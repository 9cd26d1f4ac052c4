from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Identity:
    """Local user identity, read from the session token."""

    user_id: str
    role: str = "user"
    name: str | None = None
    profile_pic: str | None = None
