from django.contrib import admin

from chat_backend.chats.models import Chat
from chat_backend.chats.models import Message


class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    fields = ["sender", "content", "status", "edited_at", "created_at"]
    readonly_fields = ["created_at"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ["id", "type", "name", "admin", "created_at"]
    list_filter = ["type"]
    search_fields = ["name"]
    filter_horizontal = ["participants"]
    inlines = [MessageInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ["id", "chat", "sender", "status", "created_at"]
    list_filter = ["status"]
    search_fields = ["content"]
    raw_id_fields = ["chat", "sender"]
