"""Chat and message persistence rules.

Views and the realtime store both go through these helpers so that membership
checks and message status transitions live in one place.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError

from chat_backend.chats.models import Chat
from chat_backend.chats.models import Message

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)

User = get_user_model()

# Target status -> statuses it may be reached from. Anything else is a no-op,
# so a late `delivered` receipt never downgrades a `read` message.
STATUS_TRANSITIONS: dict[str, tuple[str, ...]] = {
    Message.Status.DELIVERED.value: (Message.Status.SENT.value,),
    Message.Status.READ.value: (
        Message.Status.SENT.value,
        Message.Status.DELIVERED.value,
    ),
}


# Chats ------------------------------------------------------------------------
def chats_for_user(user):
    return (
        Chat.objects.filter(participants=user)
        .select_related("admin")
        .prefetch_related("participants")
        .distinct()
    )


def get_chat_or_404(chat_id) -> Chat:
    chat = Chat.objects.filter(pk=chat_id).select_related("admin").first()
    if chat is None:
        msg = "Chat not found."
        raise NotFound(msg)
    return chat


def get_chat_for_participant(chat_id, user) -> Chat:
    chat = get_chat_or_404(chat_id)
    if not chat.participants.filter(pk=user.pk).exists():
        msg = "You are not a member of this chat."
        raise PermissionDenied(msg)
    return chat


def create_chat(
    creator,
    *,
    chat_type: str,
    participant_ids: Iterable[int],
    name: str = "",
    picture: str = "",
) -> Chat:
    member_ids = {int(pk) for pk in participant_ids}
    member_ids.add(creator.pk)

    found = User.objects.filter(pk__in=member_ids, is_active=True).count()
    if found != len(member_ids):
        msg = "One or more participants do not exist."
        raise ValidationError({"participants": msg})

    is_group = chat_type == Chat.Type.GROUP
    with transaction.atomic():
        chat = Chat.objects.create(
            type=chat_type,
            name=name if is_group else "",
            picture=picture if is_group else "",
            admin=creator if is_group else None,
        )
        chat.participants.set(member_ids)

    logger.info(
        "Chat %s created by user %s (type=%s, members=%s)",
        chat.pk,
        creator.pk,
        chat_type,
        len(member_ids),
    )
    return chat


def _require_group_admin(chat: Chat, user, action: str) -> None:
    if not chat.is_group:
        msg = f"Cannot {action} a private chat."
        raise ValidationError(msg)
    if chat.admin_id != user.pk:
        msg = f"Only the admin can {action} this chat."
        raise PermissionDenied(msg)


def update_chat(chat: Chat, user, changes: dict) -> Chat:
    _require_group_admin(chat, user, "update")

    new_admin = changes.get("admin")
    if new_admin is not None:
        if not chat.participants.filter(pk=new_admin.pk).exists():
            msg = "New admin must be a member of the group."
            raise ValidationError({"admin": msg})
        chat.admin = new_admin
    if "name" in changes:
        chat.name = changes["name"]
    if "picture" in changes:
        chat.picture = changes["picture"]
    chat.save()
    logger.info("Chat %s updated by user %s", chat.pk, user.pk)
    return chat


def delete_chat(chat: Chat, user) -> None:
    _require_group_admin(chat, user, "delete")
    chat_id = chat.pk
    chat.delete()
    logger.info("Chat %s deleted by user %s", chat_id, user.pk)


def add_member(chat: Chat, user, member_id: int | None = None) -> None:
    """Join a group (no `member_id`) or, as its admin, add someone else."""

    if not chat.is_group:
        msg = "Cannot add members to a private chat."
        raise ValidationError(msg)
    target_id = member_id or user.pk
    if member_id and member_id != user.pk and chat.admin_id != user.pk:
        msg = "Only the admin can add other members."
        raise PermissionDenied(msg)
    if not User.objects.filter(pk=target_id, is_active=True).exists():
        msg = "User not found."
        raise NotFound(msg)
    if chat.participants.filter(pk=target_id).exists():
        msg = "User is already a member of this group."
        raise ValidationError(msg)
    chat.participants.add(target_id)
    logger.info("User %s added to chat %s by %s", target_id, chat.pk, user.pk)


def remove_member(chat: Chat, user, member_id: int) -> bool:
    """Leave a group or, as its admin, remove someone.

    Returns True when the group became empty and was deleted.
    """

    if not chat.is_group:
        msg = "Cannot remove members from a private chat."
        raise ValidationError(msg)
    is_self = member_id == user.pk
    if not is_self and chat.admin_id != user.pk:
        msg = "Only the admin can remove other members."
        raise PermissionDenied(msg)
    if not chat.participants.filter(pk=member_id).exists():
        msg = "User is not a member of this group."
        raise ValidationError(msg)

    remaining = chat.participants.count() - 1
    if chat.admin_id == member_id and remaining > 0:
        msg = "Admin must transfer ownership before leaving."
        raise PermissionDenied(msg)

    chat.participants.remove(member_id)
    logger.info("User %s removed from chat %s by %s", member_id, chat.pk, user.pk)
    if remaining == 0:
        chat_id = chat.pk
        chat.delete()
        logger.info("Empty group %s deleted", chat_id)
        return True
    return False


def is_participant(chat_id: int, user_id: int) -> bool:
    return Chat.objects.filter(pk=chat_id, participants__id=user_id).exists()


def chat_ids_for_participant(user_id: int) -> list[int]:
    return list(
        Chat.objects.filter(participants__id=user_id)
        .values_list("id", flat=True)
        .distinct(),
    )


# Messages ---------------------------------------------------------------------
def send_message(chat: Chat, sender, content: str) -> Message:
    message = Message.objects.create(chat=chat, sender=sender, content=content)
    logger.info("Message %s sent to chat %s by %s", message.pk, chat.pk, sender.pk)
    return message


def get_message_in_chat(chat: Chat, message_id) -> Message:
    message = (
        Message.objects.filter(pk=message_id, chat=chat)
        .select_related("sender")
        .first()
    )
    if message is None:
        msg = "Message not found."
        raise NotFound(msg)
    return message


def update_message(message: Message, user, content: str) -> Message:
    if message.sender_id != user.pk:
        msg = "Only the sender can edit this message."
        raise PermissionDenied(msg)
    message.content = content
    message.edited_at = timezone.now()
    message.save(update_fields=["content", "edited_at", "updated_at"])
    return message


def delete_message(message: Message, user) -> None:
    if message.sender_id != user.pk and message.chat.admin_id != user.pk:
        msg = "Only the sender or the chat admin can delete this message."
        raise PermissionDenied(msg)
    message.delete()


def messages_by_chats_and_status(
    chat_ids: Iterable[int],
    status: str,
    *,
    exclude_sender_id: int | None = None,
) -> list[Message]:
    qs = Message.objects.filter(chat_id__in=list(chat_ids), status=status)
    if exclude_sender_id is not None:
        qs = qs.exclude(sender_id=exclude_sender_id)
    return list(qs.order_by("created_at", "id"))


def advance_message_status(
    message_id: int,
    status: str,
    *,
    user_id: int,
) -> Message | None:
    """Move a message forward to `status` on behalf of a recipient.

    The update is a single conditional UPDATE so concurrent receipts cannot
    regress the status. Returns the updated message, or None when nothing
    changed (unknown message, not a recipient, or not a forward transition).
    """

    allowed_from = STATUS_TRANSITIONS.get(str(status))
    if allowed_from is None:
        msg = f"Unsupported target status: {status!r}"
        raise ValueError(msg)

    recipient_chats = Chat.objects.filter(participants__id=user_id).values("id")
    updated = (
        Message.objects.filter(
            pk=message_id,
            status__in=allowed_from,
            chat_id__in=recipient_chats,
        )
        .exclude(sender_id=user_id)
        .update(status=status, updated_at=timezone.now())
    )
    if not updated:
        return None
    return Message.objects.get(pk=message_id)


def touch_last_seen(user_id: int, timestamp: datetime) -> None:
    User.objects.filter(pk=user_id).update(last_seen=timestamp)
