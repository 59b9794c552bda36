import django_filters

from chat_backend.chats.models import Chat


class ChatFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(choices=Chat.Type.choices)

    class Meta:
        model = Chat
        fields = ["type"]
