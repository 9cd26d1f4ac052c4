from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from chat_sync.application.exceptions import AppError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Err:
    reason: str
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
