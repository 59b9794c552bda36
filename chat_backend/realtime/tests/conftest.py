from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timedelta
from datetime import timezone as dt_timezone

import pytest

from chat_backend.chats.services import STATUS_TRANSITIONS
from chat_backend.realtime.auth import REASON_MISSING
from chat_backend.realtime.auth import REASON_UNAUTHORIZED
from chat_backend.realtime.auth import AuthenticatedIdentity
from chat_backend.realtime.auth import HandshakeRejected
from chat_backend.realtime.gateway import RealtimeGateway

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=dt_timezone.utc)


class FakeSocketServer:
    """Enough of `socketio.AsyncServer` for the gateway, recording every emit."""

    def __init__(self) -> None:
        self.handlers: dict = {}
        self.sessions: dict[str, dict] = {}
        self.room_members: dict[str, set[str]] = {}
        self.emitted: list[tuple[str, dict, list[str]]] = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def save_session(self, sid, session, namespace=None):
        self.sessions[sid] = dict(session)
        # Like python-socketio, every socket sits in a room named after itself.
        self.room_members.setdefault(sid, set()).add(sid)

    async def get_session(self, sid, namespace=None):
        return self.sessions[sid]

    def drop(self, sid):
        self.sessions.pop(sid, None)
        for members in self.room_members.values():
            members.discard(sid)

    def rooms(self, sid, namespace=None):
        return [room for room, members in self.room_members.items() if sid in members]

    async def enter_room(self, sid, room, namespace=None):
        self.room_members.setdefault(room, set()).add(sid)

    async def leave_room(self, sid, room, namespace=None):
        self.room_members.get(room, set()).discard(sid)

    async def emit(
        self,
        event,
        data=None,
        to=None,
        room=None,
        skip_sid=None,
        namespace=None,
    ):
        target = to or room
        if target is None:
            recipients = set(self.sessions)
        else:
            recipients = set(self.room_members.get(target, ()))
        if isinstance(skip_sid, str):
            skip_sid = [skip_sid]
        recipients -= set(skip_sid or ())
        self.emitted.append((event, data, sorted(recipients)))

    def received(self, sid, event=None):
        return [
            (name, data)
            for name, data, recipients in self.emitted
            if sid in recipients and (event is None or name == event)
        ]

    def emits_of(self, event):
        return [
            (data, recipients)
            for name, data, recipients in self.emitted
            if name == event
        ]


@dataclass
class FakeMessage:
    pk: int
    chat_id: int
    sender_id: int
    content: str
    status: str = "sent"
    created_at: datetime = BASE_TIME

    @property
    def id(self):
        return self.pk


@dataclass
class FakeStore:
    """In-memory stand-in for `MessageStore`."""

    chats: dict[int, set[int]] = field(default_factory=dict)
    messages: list[FakeMessage] = field(default_factory=list)
    last_seen_calls: list[tuple[int, datetime]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)
    on_last_seen: object = None

    def _check(self, name):
        self.calls.append(name)
        if name in self.failing:
            msg = f"{name} failed"
            raise RuntimeError(msg)

    def add_message(self, chat_id, sender_id, content, status="sent"):
        message = FakeMessage(
            pk=len(self.messages) + 1,
            chat_id=chat_id,
            sender_id=sender_id,
            content=content,
            status=status,
            created_at=BASE_TIME + timedelta(seconds=len(self.messages)),
        )
        self.messages.append(message)
        return message

    async def find_chat_ids_by_participant(self, user_id):
        self._check("find_chat_ids_by_participant")
        return sorted(cid for cid, members in self.chats.items() if user_id in members)

    async def find_messages_by_chats_and_status(
        self,
        chat_ids,
        status,
        *,
        exclude_sender_id=None,
    ):
        self._check("find_messages_by_chats_and_status")
        return [
            m
            for m in sorted(self.messages, key=lambda m: m.created_at)
            if m.chat_id in set(chat_ids)
            and m.status == status
            and m.sender_id != exclude_sender_id
        ]

    async def update_message_status(self, message_id, status, *, user_id):
        self._check("update_message_status")
        for message in self.messages:
            if message.pk != message_id:
                continue
            if message.sender_id == user_id:
                return None
            if user_id not in self.chats.get(message.chat_id, ()):
                return None
            if message.status not in STATUS_TRANSITIONS[str(status)]:
                return None
            message.status = status
            return message
        return None

    async def update_user_last_seen(self, user_id, timestamp):
        self.last_seen_calls.append((user_id, timestamp))
        if self.on_last_seen is not None:
            await self.on_last_seen()
        self._check("update_user_last_seen")

    async def is_participant(self, chat_id, user_id):
        self._check("is_participant")
        return user_id in self.chats.get(chat_id, ())


USERS = {
    "token-alice": AuthenticatedIdentity(id=1, username="alice", role="user"),
    "token-bob": AuthenticatedIdentity(id=2, username="bob", role="user"),
    "token-carol": AuthenticatedIdentity(id=3, username="carol", role="admin"),
}


async def fake_authenticator(auth, environ=None):
    token = (auth or {}).get("token")
    if not token:
        raise HandshakeRejected(REASON_MISSING)
    if token not in USERS:
        raise HandshakeRejected(REASON_UNAUTHORIZED)
    return USERS[token]


@pytest.fixture
def server():
    return FakeSocketServer()


@pytest.fixture
def store():
    return FakeStore(chats={10: {1, 2}, 20: {1, 3}})


@pytest.fixture
async def gateway(server, store):
    gw = RealtimeGateway(
        server,
        store=store,
        authenticator=fake_authenticator,
        clock=lambda: BASE_TIME,
    )
    gw.register()
    yield gw
    await gw.close()


@pytest.fixture
def connect(server, gateway):
    async def open_socket(sid, token):
        await server.handlers["connect"](sid, {}, {"token": token})
        await gateway.drain()

    return open_socket


@pytest.fixture
def disconnect(server, gateway):
    async def close_socket(sid):
        await server.handlers["disconnect"](sid)
        server.drop(sid)

    return close_socket


@pytest.fixture
def send(server, gateway):
    async def send_event(sid, event, data):
        await server.handlers[event](sid, data)
        await gateway.drain()

    return send_event
