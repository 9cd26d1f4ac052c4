from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

from chat_sync.application.dto.principal import Identity
from chat_sync.application.ports.channel import ConnectionChannel
from chat_sync.config import Settings, settings
from chat_sync.infrastructure.auth.token_identity import identity_from_token
from chat_sync.infrastructure.channel.redis_channel import RedisPubSubChannel
from chat_sync.infrastructure.channel.socketio_channel import SocketIOChannel
from chat_sync.infrastructure.http.api_client import HttpChatApi, create_http_client
from chat_sync.infrastructure.notifications.unread_counter import UnreadCounter
from chat_sync.services.chat_session import ChatSession, OnUpdate

logger = logging.getLogger(__name__)


def create_socketio_channel(cfg: Settings, identity: Identity) -> SocketIOChannel:
    return SocketIOChannel(
        cfg.socket_url,
        identity,
        token=cfg.AUTH_TOKEN,
        socketio_path=cfg.SOCKET_PATH,
        transports=cfg.SOCKET_TRANSPORTS,
        reconnection_delay=cfg.SOCKET_RECONNECT_DELAY,
        reconnection_delay_max=cfg.SOCKET_RECONNECT_DELAY_MAX,
        connect_timeout=cfg.SOCKET_CONNECT_TIMEOUT,
    )


@asynccontextmanager
async def open_session(
    cfg: Settings = settings,
    *,
    on_update: OnUpdate | None = None,
) -> AsyncIterator[ChatSession]:
    """Start a chat session from settings and tear everything down on exit."""
    identity = identity_from_token(cfg.AUTH_TOKEN)
    http = create_http_client(cfg.API_BASE_URL, cfg.AUTH_TOKEN, cfg.HTTP_TIMEOUT_SECONDS)
    redis: aioredis.Redis | None = None

    channel: ConnectionChannel
    if cfg.CHANNEL_BACKEND == "redis":
        redis = aioredis.from_url(cfg.REDIS_URL, decode_responses=True)
        channel = RedisPubSubChannel(redis, identity, prefix=cfg.REDIS_TOPIC_PREFIX)
        logger.info("Using Redis Pub/Sub channel at %s", cfg.REDIS_URL)
    else:
        channel = create_socketio_channel(cfg, identity)
        logger.info("Using Socket.IO channel at %s", cfg.socket_url)

    api = HttpChatApi(http)
    session = ChatSession(
        identity,
        api,
        channel,
        UnreadCounter(api, identity),
        on_update=on_update,
        max_message_length=cfg.MESSAGE_MAX_LENGTH,
        conversations_page_limit=cfg.CONVERSATIONS_PAGE_LIMIT,
        messages_page_limit=cfg.MESSAGES_PAGE_LIMIT,
    )
    try:
        async with session:
            yield session
    finally:
        await http.aclose()
        if redis is not None:
            await redis.aclose()
