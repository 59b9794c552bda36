from __future__ import annotations

import logging

from chat_backend.chats.models import Message
from chat_backend.realtime.event_names import MESSAGE_NEW
from chat_backend.realtime.events.messages import build_message_new_payload

logger = logging.getLogger(__name__)


class MissedMessageReplayer:
    """Re-sends undelivered messages to a user who just came online.

    Only called on the offline -> online transition. Messages are emitted to
    the new socket alone, never to the room, so participants who are already
    caught up do not see them twice. Messages the user sent themselves are
    not replayed to them.
    """

    def __init__(self, emit, store) -> None:
        self.emit = emit
        self.store = store

    async def replay(self, sid: str, user_id: int) -> int:
        try:
            chat_ids = await self.store.find_chat_ids_by_participant(user_id)
            if not chat_ids:
                return 0
            messages = await self.store.find_messages_by_chats_and_status(
                chat_ids,
                Message.Status.SENT,
                exclude_sender_id=user_id,
            )
        except Exception:
            # Presence and rooms keep working without replay.
            logger.exception("Missed-message replay failed for user %s", user_id)
            return 0

        for message in messages:
            await self.emit(sid, MESSAGE_NEW, build_message_new_payload(message))
        if messages:
            logger.info(
                "Replayed %s missed message(s) to user %s on socket %s",
                len(messages),
                user_id,
                sid,
            )
        return len(messages)
