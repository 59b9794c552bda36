"""Async access to chat persistence for the socket handlers.

Each call runs the ORM work from `chat_backend.chats.services` in a worker
thread so no handler blocks the event loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from channels.db import database_sync_to_async

from chat_backend.chats import services

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable
    from datetime import datetime

    from chat_backend.chats.models import Message


class MessageStore:
    async def find_chat_ids_by_participant(self, user_id: int) -> list[int]:
        return await database_sync_to_async(services.chat_ids_for_participant)(user_id)

    async def find_messages_by_chats_and_status(
        self,
        chat_ids: Iterable[int],
        status: str,
        *,
        exclude_sender_id: int | None = None,
    ) -> list[Message]:
        return await database_sync_to_async(services.messages_by_chats_and_status)(
            list(chat_ids),
            status,
            exclude_sender_id=exclude_sender_id,
        )

    async def update_message_status(
        self,
        message_id: int,
        status: str,
        *,
        user_id: int,
    ) -> Message | None:
        return await database_sync_to_async(services.advance_message_status)(
            message_id,
            status,
            user_id=user_id,
        )

    async def update_user_last_seen(self, user_id: int, timestamp: datetime) -> None:
        await database_sync_to_async(services.touch_last_seen)(user_id, timestamp)

    async def is_participant(self, chat_id: int, user_id: int) -> bool:
        return await database_sync_to_async(services.is_participant)(chat_id, user_id)
