from __future__ import annotations

import jwt

from chat_sync.application.dto.principal import Identity
from chat_sync.application.exceptions import ValidationError


def identity_from_token(
    token: str,
    *,
    name: str | None = None,
    profile_pic: str | None = None,
) -> Identity:
    """Read the local identity from the session token's claims.

    The signature is not checked here: the client cannot hold the signing
    secret, and the server verifies the token on every request anyway.
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise ValidationError(f"Unreadable session token: {exc}") from exc

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise ValidationError("Session token carries no user id")
    return Identity(
        user_id=str(user_id),
        role=str(payload.get("role", "user")),
        name=name or payload.get("name"),
        profile_pic=profile_pic,
    )
