from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    """Compose input rejected before any local mutation."""


class TransientNetworkError(AppError):
    """A request failed or the server answered with success=false.

    Always recoverable: the caller keeps its previous state and may retry.
    """

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)


class ProtocolAnomaly(AppError):
    """A response body or channel event did not match the expected shape."""
