from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from chat_backend.realtime.event_names import MESSAGE_DELETED
from chat_backend.realtime.event_names import MESSAGE_NEW
from chat_backend.realtime.event_names import MESSAGE_UPDATED
from chat_backend.realtime.socketio import emit_event_to_chat

if TYPE_CHECKING:  # import for type checking only
    from chat_backend.chats.models import Message


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def build_message_new_payload(message: Message) -> dict[str, Any]:
    return {
        "id": message.pk,
        "content": message.content,
        "sender": message.sender_id,
        "chatId": message.chat_id,
    }


def build_message_payload(message: Message) -> dict[str, Any]:
    return {
        "id": message.pk,
        "chatId": message.chat_id,
        "sender": message.sender_id,
        "content": message.content,
        "status": message.status,
        "editedAt": _isoformat(message.edited_at),
        "createdAt": _isoformat(message.created_at),
        "updatedAt": _isoformat(message.updated_at),
    }


def publish_message_created(message: Message) -> None:
    """Broadcast a newly stored message to everyone in its chat room."""

    emit_event_to_chat(message.chat_id, MESSAGE_NEW, build_message_new_payload(message))


def publish_message_updated(message: Message) -> None:
    emit_event_to_chat(message.chat_id, MESSAGE_UPDATED, build_message_payload(message))


def publish_message_deleted(chat_id: int, message_id: int) -> None:
    emit_event_to_chat(chat_id, MESSAGE_DELETED, {"messageId": message_id})
