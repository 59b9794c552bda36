"""Socket.IO connection lifecycle and event routing.

connect:    authenticate -> register presence -> (first connection) announce
            `user-online` and replay missed messages
events:     queued per connection and handled in arrival order
disconnect: deregister presence -> (last connection) store `last_seen` and
            announce `user-offline`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from django.utils import timezone
from socketio import exceptions as sio_exceptions

from chat_backend.chats.models import Message
from chat_backend.realtime import event_names
from chat_backend.realtime.auth import REASON_SERVER_ERROR
from chat_backend.realtime.auth import HandshakeRejected
from chat_backend.realtime.auth import authenticate_handshake
from chat_backend.realtime.mailbox import ConnectionMailbox
from chat_backend.realtime.presence import PresenceRegistry
from chat_backend.realtime.replay import MissedMessageReplayer
from chat_backend.realtime.rooms import RoomBridge

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    sid: str
    user_id: int
    username: str
    mailbox: ConnectionMailbox = field(repr=False)


def _payload_id(data: Any, key: str) -> int | None:
    if not isinstance(data, dict):
        return None
    value = data.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class RealtimeGateway:
    def __init__(
        self,
        server,
        *,
        store,
        presence: PresenceRegistry | None = None,
        authenticator=authenticate_handshake,
        clock=timezone.now,
    ) -> None:
        self.server = server
        self.store = store
        self.presence = presence if presence is not None else PresenceRegistry()
        self.rooms = RoomBridge(server)
        self.replayer = MissedMessageReplayer(self.emit_to_connection, store)
        self._authenticate = authenticator
        self._clock = clock
        self._connections: dict[str, Connection] = {}

    # Wiring -------------------------------------------------------------------
    def register(self) -> None:
        self.server.on("connect", self.handle_connect)
        self.server.on("disconnect", self.handle_disconnect)
        for event, handler in self.inbound_handlers().items():
            self.server.on(event, self._enqueue(event, handler))

    def inbound_handlers(self):
        return {
            event_names.JOIN_ROOM: self.on_join_room,
            event_names.LEAVE_ROOM: self.on_leave_room,
            event_names.MESSAGE_DELIVERED: self.on_message_delivered,
            event_names.MESSAGE_READ: self.on_message_read,
            event_names.TYPING_START: self.on_typing_start,
            event_names.TYPING_STOP: self.on_typing_stop,
        }

    def _enqueue(self, event: str, handler):
        async def receive(sid: str, data: Any = None) -> None:
            connection = self._connections.get(sid)
            if connection is None:
                logger.debug("Dropping %s from unknown socket %s", event, sid)
                return
            connection.mailbox.submit(event, handler, connection, data)

        receive.__name__ = f"on_{event.replace('-', '_')}"
        return receive

    def connection(self, sid: str) -> Connection | None:
        return self._connections.get(sid)

    # Lifecycle ----------------------------------------------------------------
    async def handle_connect(
        self,
        sid: str,
        environ: dict,
        auth: Any = None,
    ) -> None:
        try:
            identity = await self._authenticate(auth, environ)
        except HandshakeRejected as exc:
            logger.warning("Socket %s refused: %s", sid, exc.reason)
            raise sio_exceptions.ConnectionRefusedError(exc.reason) from exc
        except Exception as exc:
            logger.exception("Socket.IO connect error")
            raise sio_exceptions.ConnectionRefusedError(REASON_SERVER_ERROR) from exc

        await self.server.save_session(
            sid,
            {
                "user_id": identity.id,
                "username": identity.username,
                "role": identity.role,
            },
        )
        mailbox = ConnectionMailbox(sid)
        mailbox.start()
        self._connections[sid] = Connection(
            sid=sid,
            user_id=identity.id,
            username=identity.username,
            mailbox=mailbox,
        )

        first = self.presence.add_connection(identity.id, sid)
        logger.info("Socket %s connected for user %s", sid, identity.id)
        if first:
            await self.broadcast_online(identity.id, skip_sid=sid)
            mailbox.submit("replay", self.replayer.replay, sid, identity.id)

    async def handle_disconnect(self, sid: str, reason: Any = None) -> None:
        connection = self._connections.pop(sid, None)
        if connection is None:
            return
        last = self.presence.remove_connection(connection.user_id, sid)
        generation = self.presence.generation(connection.user_id)
        await connection.mailbox.close()
        logger.info(
            "Socket %s disconnected for user %s (%s)",
            sid,
            connection.user_id,
            reason,
        )
        if not last:
            return

        try:
            await self.store.update_user_last_seen(
                connection.user_id,
                self._clock(),
            )
        except Exception:
            logger.exception(
                "Could not record last_seen for user %s",
                connection.user_id,
            )

        # A connection opened while last_seen was being written announces
        # its own offline when it closes.
        if (
            self.presence.is_online(connection.user_id)
            or self.presence.generation(connection.user_id) != generation
        ):
            logger.info(
                "User %s reconnected meanwhile; not announcing offline",
                connection.user_id,
            )
            return
        await self.broadcast_offline(connection.user_id)

    async def drain(self) -> None:
        """Wait until every connection has handled what it has received so far."""
        for connection in list(self._connections.values()):
            await connection.mailbox.join()

    async def close(self) -> None:
        for connection in list(self._connections.values()):
            await connection.mailbox.close()
        self._connections.clear()
        self.presence.clear()

    # Inbound handlers ----------------------------------------------------------
    async def on_join_room(self, connection: Connection, data: Any) -> None:
        chat_id = _payload_id(data, "chatId")
        if chat_id is None:
            logger.warning(
                "Malformed %s payload from %s: %r",
                event_names.JOIN_ROOM,
                connection.sid,
                data,
            )
            return
        if not await self.store.is_participant(chat_id, connection.user_id):
            logger.warning(
                "User %s tried to join chat %s without being a participant",
                connection.user_id,
                chat_id,
            )
            return
        await self.rooms.join(connection.sid, chat_id)

    async def on_leave_room(self, connection: Connection, data: Any) -> None:
        chat_id = _payload_id(data, "chatId")
        if chat_id is None:
            logger.warning(
                "Malformed %s payload from %s: %r",
                event_names.LEAVE_ROOM,
                connection.sid,
                data,
            )
            return
        await self.rooms.leave(connection.sid, chat_id)

    async def on_message_delivered(
        self,
        connection: Connection,
        data: Any,
    ) -> None:
        await self._advance_status(connection, data, Message.Status.DELIVERED)

    async def on_message_read(self, connection: Connection, data: Any) -> None:
        await self._advance_status(connection, data, Message.Status.READ)

    async def _advance_status(
        self,
        connection: Connection,
        data: Any,
        status: str,
    ) -> None:
        message_id = _payload_id(data, "messageId")
        if message_id is None:
            logger.warning(
                "Malformed receipt payload from %s: %r",
                connection.sid,
                data,
            )
            return
        message = await self.store.update_message_status(
            message_id,
            status,
            user_id=connection.user_id,
        )
        if message is None:
            logger.debug(
                "Message %s not moved to %s for user %s",
                message_id,
                status,
                connection.user_id,
            )
            return
        logger.debug("Message %s is now %s", message_id, status)

    async def on_typing_start(self, connection: Connection, data: Any) -> None:
        await self._relay_typing(connection, data, event_names.TYPING_START)

    async def on_typing_stop(self, connection: Connection, data: Any) -> None:
        await self._relay_typing(connection, data, event_names.TYPING_STOP)

    async def _relay_typing(
        self,
        connection: Connection,
        data: Any,
        event: str,
    ) -> None:
        chat_id = _payload_id(data, "chatId")
        if chat_id is None:
            logger.warning(
                "Malformed %s payload from %s: %r",
                event,
                connection.sid,
                data,
            )
            return
        if not await self.store.is_participant(chat_id, connection.user_id):
            logger.warning(
                "User %s sent %s for chat %s without being a participant",
                connection.user_id,
                event,
                chat_id,
            )
            return
        # None of the typist's own sockets should see the indicator.
        own = self.presence.connections(connection.user_id) | {connection.sid}
        own_sids = sorted(own)
        await self.rooms.broadcast(
            chat_id,
            event,
            {"userId": connection.user_id},
            skip_sid=own_sids,
        )

    # Outbound -----------------------------------------------------------------
    async def publish_to_chat(
        self,
        chat_id: int,
        event: str,
        payload: dict[str, Any],
    ) -> None:
        await self.rooms.broadcast(chat_id, event, payload)

    async def emit_to_connection(
        self,
        sid: str,
        event: str,
        payload: dict[str, Any],
    ) -> None:
        await self.server.emit(event, payload, to=sid)

    async def broadcast_online(self, user_id: int, *, skip_sid: str) -> None:
        await self.server.emit(
            event_names.USER_ONLINE,
            {"userId": user_id},
            skip_sid=skip_sid,
        )

    async def broadcast_offline(self, user_id: int) -> None:
        await self.server.emit(event_names.USER_OFFLINE, {"userId": user_id})
