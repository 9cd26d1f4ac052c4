"""REST client for the messaging backend."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, TypeVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from chat_sync.application.dto.result import Err, Ok, Result
from chat_sync.application.exceptions import ProtocolAnomaly, TransientNetworkError
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.infrastructure.wire.mappers import conversation as conversation_mapper
from chat_sync.infrastructure.wire.mappers import message as message_mapper
from chat_sync.infrastructure.wire.schemas.conversation import ConversationPayload
from chat_sync.infrastructure.wire.schemas.envelope import (
    ConversationsPage,
    MessagesPage,
    UnreadCount,
)
from chat_sync.infrastructure.wire.schemas.message import MessagePayload

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

T = TypeVar("T")


def create_http_client(
    base_url: str,
    token: str,
    timeout: float = 15.0,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers=headers,
        timeout=timeout,
        transport=transport,
    )


class HttpChatApi:
    """Implements application.ports.api.ChatApi over httpx."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def list_conversations(
        self, *, page: int = 1, limit: int = 20
    ) -> Result[list[Conversation]]:
        result = await self._request(
            "GET", "/messages/conversations", params={"page": page, "limit": limit},
        )
        return _parse(
            result,
            lambda data: [
                conversation_mapper.payload_to_entity(c)
                for c in ConversationsPage.model_validate(data).conversations
            ],
        )

    async def get_or_create_conversation(self, participant_id: str) -> Result[Conversation]:
        result = await self._request("GET", f"/messages/conversations/{participant_id}")
        return _parse(
            result,
            lambda data: conversation_mapper.payload_to_entity(
                ConversationPayload.model_validate(data)
            ),
        )

    async def list_messages(
        self, conversation_id: str, *, page: int = 1, limit: int = 50
    ) -> Result[list[Message]]:
        result = await self._request(
            "GET",
            f"/messages/{conversation_id}/messages",
            params={"page": page, "limit": limit},
        )
        return _parse(
            result,
            lambda data: [
                message_mapper.payload_to_entity(m, conversation_id)
                for m in MessagesPage.model_validate(data).messages
            ],
        )

    async def send_message(self, conversation_id: str, content: str) -> Result[Message]:
        result = await self._request(
            "POST",
            f"/messages/{conversation_id}/messages",
            json={"content": content, "messageType": "text"},
        )
        return _parse(
            result,
            lambda data: message_mapper.payload_to_entity(
                MessagePayload.model_validate(data), conversation_id
            ),
        )

    async def mark_read(self, conversation_id: str) -> Result[None]:
        result = await self._request("PATCH", f"/messages/{conversation_id}/read")
        return _parse(result, lambda _data: None)

    async def unread_count(self) -> Result[int]:
        result = await self._request("GET", "/messages/unread-count")
        return _parse(result, lambda data: UnreadCount.model_validate(data).unread_count)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Result[Any]:
        request_id = uuid.uuid4().hex
        try:
            response = await self._client.request(
                method, path, headers={REQUEST_ID_HEADER: request_id}, **kwargs,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed [%s]: %s", method, path, request_id, exc)
            detail = str(exc) or exc.__class__.__name__
            return Err(detail, TransientNetworkError(detail))

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success or not isinstance(body, dict) or not body.get("success"):
            detail = _error_detail(response, body)
            logger.warning(
                "%s %s -> %d [%s]: %s",
                method, path, response.status_code, request_id, detail,
            )
            if response.is_success and not isinstance(body, dict):
                return Err(detail, ProtocolAnomaly(detail))
            return Err(detail, TransientNetworkError(detail, response.status_code))

        logger.debug("%s %s -> %d [%s]", method, path, response.status_code, request_id)
        return Ok(body.get("data"))


def _error_detail(response: httpx.Response, body: Any) -> str:
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if body is None and response.is_success:
        return "response body is not JSON"
    return f"HTTP {response.status_code}"


def _parse(result: Result[Any], build: Callable[[Any], T]) -> Result[T]:
    if isinstance(result, Err):
        return result
    try:
        return Ok(build(result.value))
    except PydanticValidationError as exc:
        detail = f"unexpected response shape: {exc.error_count()} error(s)"
        logger.warning(detail)
        return Err(detail, ProtocolAnomaly(detail))
