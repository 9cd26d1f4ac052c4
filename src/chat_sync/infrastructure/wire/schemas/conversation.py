from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chat_sync.infrastructure.wire.schemas.message import MessagePayload, SenderPayload


class ConversationPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    participants: list[SenderPayload] = []
    last_message: MessagePayload | None = Field(default=None, alias="lastMessage")
    last_activity: datetime | None = Field(default=None, alias="lastActivity")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    unread: bool = False

    @field_validator("participants", mode="before")
    @classmethod
    def _expand_participant_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"_id": p} if isinstance(p, str) else p for p in value]
        return value

    @field_validator("last_message", mode="before")
    @classmethod
    def _drop_unpopulated_last_message(cls, value: Any) -> Any:
        # An unpopulated reference carries no content to summarize.
        if isinstance(value, str):
            return None
        return value
