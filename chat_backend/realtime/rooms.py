from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def room_for_chat(chat_id: int) -> str:
    return f"chat_{int(chat_id)}"


class RoomBridge:
    """Maps chat conversations onto Socket.IO rooms.

    Membership is held by the Socket.IO server's manager; emits read it in one
    synchronous pass, so a broadcast always sees a consistent member list.
    """

    def __init__(self, server, namespace: str = "/") -> None:
        self.server = server
        self.namespace = namespace

    def is_member(self, sid: str, chat_id: int) -> bool:
        rooms = self.server.rooms(sid, namespace=self.namespace) or ()
        return room_for_chat(chat_id) in rooms

    async def join(self, sid: str, chat_id: int) -> None:
        room = room_for_chat(chat_id)
        await self.server.enter_room(sid, room, namespace=self.namespace)
        logger.debug("Socket %s joined %s", sid, room)

    async def leave(self, sid: str, chat_id: int) -> None:
        if not self.is_member(sid, chat_id):
            return
        room = room_for_chat(chat_id)
        await self.server.leave_room(sid, room, namespace=self.namespace)
        logger.debug("Socket %s left %s", sid, room)

    async def broadcast(
        self,
        chat_id: int,
        event: str,
        payload: dict[str, Any],
        *,
        skip_sid: str | list[str] | None = None,
    ) -> None:
        await self.server.emit(
            event,
            payload,
            room=room_for_chat(chat_id),
            skip_sid=skip_sid,
            namespace=self.namespace,
        )
