import asyncio

import pytest
from socketio.exceptions import ConnectionRefusedError as SocketRefused

from chat_backend.realtime import event_names
from chat_backend.realtime.auth import REASON_MISSING
from chat_backend.realtime.auth import REASON_SERVER_ERROR
from chat_backend.realtime.auth import REASON_UNAUTHORIZED
from chat_backend.realtime.gateway import RealtimeGateway
from chat_backend.realtime.rooms import room_for_chat

from .conftest import BASE_TIME


class TestHandshake:
    async def test_missing_token_is_refused(self, server, gateway):
        with pytest.raises(SocketRefused) as exc_info:
            await server.handlers["connect"]("s1", {}, {})
        assert exc_info.value.error_args == {"message": REASON_MISSING}
        assert gateway.connection("s1") is None
        assert server.emitted == []

    async def test_unknown_user_is_refused(self, server, gateway):
        with pytest.raises(SocketRefused) as exc_info:
            await server.handlers["connect"]("s1", {}, {"token": "token-nobody"})
        assert exc_info.value.error_args == {"message": REASON_UNAUTHORIZED}
        assert not gateway.presence.is_online(1)

    async def test_unexpected_error_is_reported_as_server_error(self, server, store):
        async def broken(auth, environ=None):
            msg = "boom"
            raise RuntimeError(msg)

        gw = RealtimeGateway(server, store=store, authenticator=broken)
        gw.register()
        with pytest.raises(SocketRefused) as exc_info:
            await server.handlers["connect"]("s1", {}, {"token": "token-alice"})
        assert exc_info.value.error_args == {"message": REASON_SERVER_ERROR}

    async def test_session_holds_identity(self, server, connect):
        await connect("s1", "token-alice")
        assert server.sessions["s1"] == {
            "user_id": 1,
            "username": "alice",
            "role": "user",
        }


class TestPresenceBroadcasts:
    async def test_two_connections_announce_online_once(self, server, connect):
        await connect("b1", "token-bob")
        await connect("a1", "token-alice")
        await connect("a2", "token-alice")

        online = [data for data, _ in server.emits_of(event_names.USER_ONLINE)]
        assert online.count({"userId": 1}) == 1

    async def test_online_is_not_echoed_to_the_new_socket(self, server, connect):
        await connect("b1", "token-bob")
        await connect("a1", "token-alice")

        assert (event_names.USER_ONLINE, {"userId": 1}) in server.received("b1")
        assert server.received("a1", event_names.USER_ONLINE) == []

    async def test_last_disconnect_announces_offline_and_stores_last_seen(
        self,
        server,
        store,
        gateway,
        connect,
        disconnect,
    ):
        await connect("b1", "token-bob")
        await connect("a1", "token-alice")
        await disconnect("a1")

        assert store.last_seen_calls == [(1, BASE_TIME)]
        offline = server.emits_of(event_names.USER_OFFLINE)
        assert [data for data, _ in offline] == [{"userId": 1}]
        assert "b1" in offline[0][1]
        assert not gateway.presence.is_online(1)

    async def test_offline_waits_for_the_last_connection(
        self,
        server,
        store,
        connect,
        disconnect,
    ):
        await connect("a1", "token-alice")
        await connect("a2", "token-alice")

        await disconnect("a1")
        assert server.emits_of(event_names.USER_OFFLINE) == []
        assert store.last_seen_calls == []

        await disconnect("a2")
        assert len(server.emits_of(event_names.USER_OFFLINE)) == 1
        assert len(store.last_seen_calls) == 1

    async def test_last_seen_failure_still_announces_offline(
        self,
        server,
        store,
        connect,
        disconnect,
    ):
        store.failing.add("update_user_last_seen")
        await connect("a1", "token-alice")
        await disconnect("a1")
        assert len(server.emits_of(event_names.USER_OFFLINE)) == 1

    async def test_reconnect_while_storing_last_seen_skips_offline(
        self,
        server,
        store,
        gateway,
        connect,
        disconnect,
    ):
        await connect("a1", "token-alice")

        async def reconnect():
            await connect("a2", "token-alice")

        store.on_last_seen = reconnect
        await disconnect("a1")

        assert server.emits_of(event_names.USER_OFFLINE) == []
        assert gateway.presence.is_online(1)

    async def test_reconnect_and_disconnect_while_storing_last_seen_goes_offline_once(
        self,
        server,
        store,
        gateway,
        connect,
        disconnect,
    ):
        await connect("a1", "token-alice")

        async def flap():
            store.on_last_seen = None
            await connect("a2", "token-alice")
            await disconnect("a2")

        store.on_last_seen = flap
        await disconnect("a1")

        offline = server.emits_of(event_names.USER_OFFLINE)
        assert [data for data, _ in offline] == [{"userId": 1}]
        assert len(store.last_seen_calls) == 2
        assert not gateway.presence.is_online(1)

    async def test_unknown_socket_disconnect_is_ignored(self, server, store, gateway):
        await server.handlers["disconnect"]("ghost")
        assert store.last_seen_calls == []
        assert server.emitted == []


class TestReplay:
    async def test_emit_to_connection_reaches_only_that_socket(
        self,
        server,
        gateway,
        connect,
    ):
        await connect("a1", "token-alice")
        await connect("a2", "token-alice")
        await connect("b1", "token-bob")

        await gateway.emit_to_connection("a2", event_names.MESSAGE_NEW, {"id": 5})

        assert server.emits_of(event_names.MESSAGE_NEW) == [({"id": 5}, ["a2"])]
        assert gateway.replayer.emit == gateway.emit_to_connection

    async def test_replays_only_sent_messages_to_the_new_socket(
        self,
        server,
        store,
        connect,
    ):
        first = store.add_message(10, 2, "hi alice")
        second = store.add_message(10, 2, "still there?")
        store.add_message(20, 3, "already delivered", status="delivered")
        store.add_message(10, 1, "alice's own")

        await connect("a1", "token-alice")

        replayed = server.emits_of(event_names.MESSAGE_NEW)
        assert replayed == [
            (
                {"id": first.pk, "content": "hi alice", "sender": 2, "chatId": 10},
                ["a1"],
            ),
            (
                {"id": second.pk, "content": "still there?", "sender": 2, "chatId": 10},
                ["a1"],
            ),
        ]

    async def test_replay_runs_once_for_three_connections(self, store, connect):
        await connect("a1", "token-alice")
        await connect("a2", "token-alice")
        await connect("a3", "token-alice")

        assert store.calls.count("find_chat_ids_by_participant") == 1

    async def test_replay_failure_keeps_the_connection(
        self,
        server,
        store,
        gateway,
        connect,
        send,
        caplog,
    ):
        store.add_message(10, 2, "lost")
        store.failing.add("find_messages_by_chats_and_status")

        await connect("a1", "token-alice")

        assert "Missed-message replay failed" in caplog.text
        assert gateway.presence.is_online(1)
        await send("a1", event_names.JOIN_ROOM, {"chatId": 10})
        assert room_for_chat(10) in server.rooms("a1")

    async def test_replay_happens_again_after_going_offline(
        self,
        server,
        store,
        connect,
        disconnect,
    ):
        await connect("a1", "token-alice")
        await disconnect("a1")
        store.add_message(10, 2, "while you were away")
        await connect("a2", "token-alice")

        assert server.received("a2", event_names.MESSAGE_NEW) != []


class TestRooms:
    async def test_join_requires_chat_membership(self, server, connect, send):
        await connect("b1", "token-bob")
        await send("b1", event_names.JOIN_ROOM, {"chatId": 20})
        assert room_for_chat(20) not in server.rooms("b1")

        await send("b1", event_names.JOIN_ROOM, {"chatId": "10"})
        assert room_for_chat(10) in server.rooms("b1")

    async def test_broadcast_stays_inside_its_room(
        self,
        server,
        gateway,
        connect,
        send,
    ):
        await connect("a1", "token-alice")
        await connect("b1", "token-bob")
        await connect("c1", "token-carol")
        await send("a1", event_names.JOIN_ROOM, {"chatId": 10})
        await send("b1", event_names.JOIN_ROOM, {"chatId": 10})
        await send("c1", event_names.JOIN_ROOM, {"chatId": 20})

        await gateway.publish_to_chat(10, event_names.MESSAGE_DELETED, {"messageId": 7})

        deleted = (event_names.MESSAGE_DELETED, {"messageId": 7})
        assert deleted in server.received("a1")
        assert deleted in server.received("b1")
        assert server.received("c1", event_names.MESSAGE_DELETED) == []

    async def test_leave_room_stops_broadcasts(self, server, gateway, connect, send):
        await connect("b1", "token-bob")
        await send("b1", event_names.JOIN_ROOM, {"chatId": 10})
        await send("b1", event_names.LEAVE_ROOM, {"chatId": 10})

        await gateway.publish_to_chat(10, event_names.MESSAGE_DELETED, {"messageId": 7})
        assert server.received("b1", event_names.MESSAGE_DELETED) == []

    @pytest.mark.parametrize("payload", [None, "10", {}, {"chatId": "abc"}, [10]])
    async def test_malformed_join_is_a_no_op(self, server, connect, send, payload):
        await connect("b1", "token-bob")
        await send("b1", event_names.JOIN_ROOM, payload)
        assert server.rooms("b1") == ["b1"]

        await send("b1", event_names.JOIN_ROOM, {"chatId": 10})
        assert room_for_chat(10) in server.rooms("b1")


class TestTyping:
    async def test_typing_reaches_the_room_but_not_the_typist(
        self,
        server,
        connect,
        send,
    ):
        await connect("a1", "token-alice")
        await connect("a2", "token-alice")
        await connect("b1", "token-bob")
        for sid in ("a1", "a2", "b1"):
            await send(sid, event_names.JOIN_ROOM, {"chatId": 10})

        await send("a1", event_names.TYPING_START, {"chatId": "10"})
        await send("a1", event_names.TYPING_STOP, {"chatId": 10})

        assert server.received("b1", event_names.TYPING_START) == [
            (event_names.TYPING_START, {"userId": 1}),
        ]
        assert server.received("b1", event_names.TYPING_STOP) == [
            (event_names.TYPING_STOP, {"userId": 1}),
        ]
        assert server.received("a1", event_names.TYPING_START) == []
        assert server.received("a2", event_names.TYPING_START) == []

    async def test_participant_can_type_without_joining_the_room(
        self,
        server,
        connect,
        send,
    ):
        await connect("a1", "token-alice")
        await connect("b1", "token-bob")
        await send("b1", event_names.JOIN_ROOM, {"chatId": 10})

        await send("a1", event_names.TYPING_START, {"chatId": 10})

        assert server.received("b1", event_names.TYPING_START) == [
            (event_names.TYPING_START, {"userId": 1}),
        ]
        assert server.received("a1", event_names.TYPING_START) == []

    async def test_non_participant_typing_is_dropped(
        self,
        server,
        connect,
        send,
        caplog,
    ):
        await connect("b1", "token-bob")
        await connect("c1", "token-carol")
        await send("b1", event_names.JOIN_ROOM, {"chatId": 10})

        await send("c1", event_names.TYPING_START, {"chatId": 10})
        await send("c1", event_names.TYPING_STOP, {"chatId": 10})

        assert server.emits_of(event_names.TYPING_START) == []
        assert server.emits_of(event_names.TYPING_STOP) == []
        assert "without being a participant" in caplog.text


class TestReceipts:
    async def test_delivered_then_read(self, store, connect, send):
        message = store.add_message(10, 2, "hello")
        await connect("a1", "token-alice")

        await send("a1", event_names.MESSAGE_DELIVERED, {"messageId": message.pk})
        assert message.status == "delivered"
        await send("a1", event_names.MESSAGE_READ, {"messageId": str(message.pk)})
        assert message.status == "read"

    async def test_late_delivered_does_not_downgrade_read(self, store, connect, send):
        message = store.add_message(10, 2, "hello", status="delivered")
        await connect("a1", "token-alice")

        await send("a1", event_names.MESSAGE_READ, {"messageId": message.pk})
        await send("a1", event_names.MESSAGE_DELIVERED, {"messageId": message.pk})
        assert message.status == "read"

    async def test_sender_cannot_mark_own_message(self, store, connect, send):
        message = store.add_message(10, 1, "mine", status="delivered")
        await connect("a1", "token-alice")

        await send("a1", event_names.MESSAGE_READ, {"messageId": message.pk})
        assert message.status == "delivered"

    async def test_persistence_failure_does_not_break_the_connection(
        self,
        server,
        store,
        connect,
        send,
        caplog,
    ):
        message = store.add_message(10, 2, "hello", status="delivered")
        await connect("a1", "token-alice")
        store.failing.add("update_message_status")

        await send("a1", event_names.MESSAGE_READ, {"messageId": message.pk})
        assert "handler for message-read failed" in caplog.text

        await send("a1", event_names.JOIN_ROOM, {"chatId": 10})
        assert room_for_chat(10) in server.rooms("a1")

    async def test_missing_message_id_is_ignored(self, store, connect, send):
        await connect("a1", "token-alice")
        store.calls.clear()

        await send("a1", event_names.MESSAGE_READ, {"userId": 1})
        assert "update_message_status" not in store.calls


class TestOrdering:
    async def test_events_from_one_socket_run_in_arrival_order(
        self,
        server,
        store,
        gateway,
        connect,
    ):
        await connect("a1", "token-alice")
        order = []
        original = store.is_participant

        async def slow_is_participant(chat_id, user_id):
            if chat_id == 10:
                await asyncio.sleep(0.01)
            order.append(chat_id)
            return await original(chat_id, user_id)

        store.is_participant = slow_is_participant
        await server.handlers[event_names.JOIN_ROOM]("a1", {"chatId": 10})
        await server.handlers[event_names.JOIN_ROOM]("a1", {"chatId": 20})
        await gateway.drain()

        assert order == [10, 20]

    async def test_events_after_disconnect_are_dropped(
        self,
        server,
        store,
        connect,
        disconnect,
    ):
        await connect("a1", "token-alice")
        await disconnect("a1")
        store.calls.clear()

        await server.handlers[event_names.JOIN_ROOM]("a1", {"chatId": 10})
        assert store.calls == []
