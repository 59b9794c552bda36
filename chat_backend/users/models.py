from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class User(AbstractUser):
    """
    Default custom user model for chat_backend.
    `last_seen` is written by the realtime layer when the user's last
    connection closes.
    """

    class Role(models.TextChoices):
        USER = "user", _("User")
        ADMIN = "admin", _("Admin")

    email = EmailField(_("email address"), unique=True)
    role = CharField(
        _("Role"),
        max_length=20,
        choices=Role.choices,
        default=Role.USER,
    )
    avatar = CharField(_("Avatar URL"), max_length=500, blank=True, default="")
    bio = models.TextField(_("Bio"), max_length=500, blank=True, default="")
    last_seen = models.DateTimeField(_("Last seen"), default=timezone.now)
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta(AbstractUser.Meta):
        indexes = [models.Index(fields=["-last_seen"], name="users_last_seen_idx")]

    @property
    def is_chat_admin(self) -> bool:
        return self.role == self.Role.ADMIN or self.is_staff
