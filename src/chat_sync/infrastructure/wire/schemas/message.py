from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SenderPayload(BaseModel):
    """Populated user reference; the server sends either this or a bare id."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    name: str | None = None
    profile_pic: str | None = Field(default=None, alias="profilePic")
    role: str | None = None


class MessagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    conversation: str | None = None
    sender: SenderPayload
    content: str
    message_type: str = Field(default="text", alias="messageType")
    created_at: datetime = Field(alias="createdAt")

    @field_validator("sender", mode="before")
    @classmethod
    def _expand_sender_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"_id": value}
        return value

    @field_validator("conversation", mode="before")
    @classmethod
    def _conversation_ref(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("_id")
        return value
