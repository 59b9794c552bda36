from django.conf import settings
from rest_framework import serializers

from chat_backend.chats.models import Chat
from chat_backend.chats.models import Message
from chat_backend.users.api.serializers import ParticipantSerializer
from chat_backend.users.models import User


class ChatSerializer(serializers.ModelSerializer):
    participants = ParticipantSerializer(many=True, read_only=True)
    admin = ParticipantSerializer(read_only=True)

    class Meta:
        model = Chat
        fields = [
            "id",
            "type",
            "name",
            "picture",
            "admin",
            "participants",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ChatCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Chat.Type.choices)
    name = serializers.CharField(
        max_length=settings.CHAT_GROUP_NAME_MAX_LENGTH,
        required=False,
        allow_blank=True,
        trim_whitespace=True,
    )
    picture = serializers.CharField(max_length=500, required=False, allow_blank=True)
    participants = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )

    def validate(self, attrs):
        request = self.context["request"]
        member_ids = set(attrs["participants"])
        member_ids.add(request.user.pk)

        if attrs["type"] == Chat.Type.PRIVATE:
            if len(member_ids) != 2:  # noqa: PLR2004
                msg = "A private chat needs exactly two unique participants."
                raise serializers.ValidationError({"participants": msg})
        else:
            if not attrs.get("name"):
                msg = "A group chat needs a name."
                raise serializers.ValidationError({"name": msg})
            if len(member_ids) < 2:  # noqa: PLR2004
                msg = "A group chat needs at least two participants."
                raise serializers.ValidationError({"participants": msg})

        attrs["participants"] = sorted(member_ids)
        return attrs


class ChatUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(
        max_length=settings.CHAT_GROUP_NAME_MAX_LENGTH,
        required=False,
        allow_blank=False,
    )
    picture = serializers.CharField(max_length=500, required=False, allow_blank=True)
    admin = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(is_active=True),
        required=False,
    )


class MemberAddSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1, required=False)


class MessageSerializer(serializers.ModelSerializer):
    sender = ParticipantSerializer(read_only=True)
    content = serializers.CharField(
        max_length=settings.CHAT_MESSAGE_MAX_LENGTH,
        trim_whitespace=True,
        allow_blank=False,
    )

    class Meta:
        model = Message
        fields = [
            "id",
            "chat",
            "sender",
            "content",
            "status",
            "edited_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "chat",
            "sender",
            "status",
            "edited_at",
            "created_at",
            "updated_at",
        ]
