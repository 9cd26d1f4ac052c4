"""Entrypoint: python -m chat_sync"""
from __future__ import annotations

import asyncio
import logging

from chat_sync.app import open_session
from chat_sync.config import settings
from chat_sync.services.event_router import RouteResult

logger = logging.getLogger("chat_sync")


def _log_update(result: RouteResult) -> None:
    logger.info(
        "%s conversation=%s message=%s",
        result.outcome,
        result.conversation_id,
        result.message.server_id if result.message else None,
    )


async def run() -> None:
    async with open_session(settings, on_update=_log_update) as session:
        for conversation in session.index.conversations():
            other = conversation.other_participant(session.identity.user_id)
            logger.info(
                "%s %s%s",
                conversation.id,
                other.name if other and other.name else "?",
                " (unread)" if conversation.unread else "",
            )
        try:
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            pass


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
