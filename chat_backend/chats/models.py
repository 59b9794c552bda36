from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Chat(models.Model):
    class Type(models.TextChoices):
        PRIVATE = "private", _("Private")
        GROUP = "group", _("Group")

    type = models.CharField(max_length=10, choices=Type.choices, default=Type.PRIVATE)
    name = models.CharField(max_length=50, blank=True, default="")
    picture = models.CharField(max_length=500, blank=True, default="")
    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="administered_chats",
    )
    participants = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        related_name="chats",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        if self.type == self.Type.GROUP:
            return f"{self.name} (group #{self.pk})"
        return f"Private chat #{self.pk}"

    @property
    def is_group(self) -> bool:
        return self.type == self.Type.GROUP


class Message(models.Model):
    class Status(models.TextChoices):
        SENT = "sent", _("Sent")
        DELIVERED = "delivered", _("Delivered")
        READ = "read", _("Read")

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sent_messages",
    )
    content = models.TextField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.SENT,
        db_index=True,
    )
    edited_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["chat", "status"], name="chats_msg_chat_status_idx"),
        ]

    def __str__(self):
        return f"Message #{self.pk} in chat #{self.chat_id} ({self.status})"
