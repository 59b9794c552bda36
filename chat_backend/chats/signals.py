"""Push committed message changes to the chat's Socket.IO room."""

import logging

from django.db.models.signals import post_delete
from django.db.models.signals import post_save
from django.db.transaction import on_commit
from django.dispatch import receiver

from chat_backend.realtime.events.messages import publish_message_created
from chat_backend.realtime.events.messages import publish_message_deleted
from chat_backend.realtime.events.messages import publish_message_updated

from .models import Message

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Message)
def broadcast_message_saved(sender, instance, created, update_fields=None, **kwargs):
    if created:
        on_commit(lambda: publish_message_created(instance), robust=True)
        return
    # Status receipts are saved with a queryset update and never reach here.
    if update_fields is not None and "content" in update_fields:
        on_commit(lambda: publish_message_updated(instance), robust=True)


@receiver(post_delete, sender=Message)
def broadcast_message_deleted(sender, instance, **kwargs):
    # The primary key is cleared once the delete finishes.
    chat_id, message_id = instance.chat_id, instance.pk
    logger.debug("Message %s deleted from chat %s", message_id, chat_id)
    on_commit(lambda: publish_message_deleted(chat_id, message_id), robust=True)
