from django.contrib import admin
from django.contrib.auth import admin as auth_admin
from django.utils.translation import gettext_lazy as _

from chat_backend.users.models import User


@admin.register(User)
class UserAdmin(auth_admin.UserAdmin):
    fieldsets = (
        *auth_admin.UserAdmin.fieldsets,
        (_("Chat profile"), {"fields": ("role", "avatar", "bio", "last_seen")}),
    )
    list_display = ["username", "email", "role", "last_seen", "is_superuser"]
    search_fields = ["username", "email"]
    list_filter = ["role", "is_staff", "is_active"]
