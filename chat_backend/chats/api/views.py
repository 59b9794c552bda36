import logging

from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import mixins
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from chat_backend.chats import services
from chat_backend.chats.models import Chat
from chat_backend.chats.models import Message
from chat_backend.users.api.serializers import ParticipantSerializer

from .filters import ChatFilter
from .serializers import ChatCreateSerializer
from .serializers import ChatSerializer
from .serializers import ChatUpdateSerializer
from .serializers import MemberAddSerializer
from .serializers import MessageSerializer

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(tags=["Chats"]),
    create=extend_schema(tags=["Chats"], request=ChatCreateSerializer),
    retrieve=extend_schema(tags=["Chats"]),
    partial_update=extend_schema(tags=["Chats"], request=ChatUpdateSerializer),
    destroy=extend_schema(tags=["Chats"]),
    members=extend_schema(tags=["Chat Members"], request=MemberAddSerializer),
    remove_member=extend_schema(tags=["Chat Members"]),
)
class ChatViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    GenericViewSet,
):
    """Chats the authenticated user takes part in.

    - list / create
    - retrieve: participants only
    - partial_update / destroy: group admin only
    - members: list, join, or (admin) add; remove_member: leave or (admin) remove
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ChatSerializer
    lookup_value_regex = "[0-9]+"
    filterset_class = ChatFilter

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Chat.objects.none()
        return services.chats_for_user(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = ChatCreateSerializer(
            data=request.data,
            context=self.get_serializer_context(),
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        chat = services.create_chat(
            request.user,
            chat_type=data["type"],
            participant_ids=data["participants"],
            name=data.get("name", ""),
            picture=data.get("picture", ""),
        )
        out = ChatSerializer(chat, context=self.get_serializer_context())
        return Response(out.data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        chat = services.get_chat_for_participant(pk, request.user)
        return Response(self.get_serializer(chat).data)

    def partial_update(self, request, pk=None):
        chat = services.get_chat_for_participant(pk, request.user)
        serializer = ChatUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        chat = services.update_chat(chat, request.user, serializer.validated_data)
        return Response(self.get_serializer(chat).data)

    def destroy(self, request, pk=None):
        chat = services.get_chat_for_participant(pk, request.user)
        services.delete_chat(chat, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get", "post"])
    def members(self, request, pk=None):
        if request.method == "GET":
            chat = services.get_chat_for_participant(pk, request.user)
            participants = chat.participants.order_by("username")
            return Response(ParticipantSerializer(participants, many=True).data)

        chat = services.get_chat_or_404(pk)
        serializer = MemberAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member_id = serializer.validated_data.get("user_id")
        if member_id is not None and member_id != request.user.pk:
            # Only existing members (the admin) may add somebody else.
            chat = services.get_chat_for_participant(pk, request.user)
        services.add_member(chat, request.user, member_id)
        return Response(self.get_serializer(chat).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<user_id>[0-9]+)",
        url_name="remove-member",
    )
    def remove_member(self, request, pk=None, user_id=None):
        chat = services.get_chat_for_participant(pk, request.user)
        services.remove_member(chat, request.user, int(user_id))
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    list=extend_schema(tags=["Messages"]),
    create=extend_schema(tags=["Messages"]),
    retrieve=extend_schema(tags=["Messages"]),
    partial_update=extend_schema(tags=["Messages"]),
    destroy=extend_schema(tags=["Messages"]),
)
class MessageViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    GenericViewSet,
):
    """Messages of one chat, oldest first. Only participants get in."""

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    lookup_value_regex = "[0-9]+"
    queryset = Message.objects.none()

    def get_chat(self):
        if not hasattr(self, "_chat"):
            self._chat = services.get_chat_for_participant(
                self.kwargs["chat_id"],
                self.request.user,
            )
        return self._chat

    def get_queryset(self):
        if getattr(self, "swagger_fake_view", False):
            return Message.objects.none()
        return (
            Message.objects.filter(chat=self.get_chat())
            .select_related("sender")
            .order_by("created_at", "id")
        )

    def get_object(self):
        return services.get_message_in_chat(self.get_chat(), self.kwargs["pk"])

    def create(self, request, *args, **kwargs):
        chat = self.get_chat()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = services.send_message(
            chat,
            request.user,
            serializer.validated_data["content"],
        )
        return Response(
            self.get_serializer(message).data,
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, *args, **kwargs):
        message = self.get_object()
        # Content is the only editable field, so it is required here too.
        serializer = self.get_serializer(message, data=request.data)
        serializer.is_valid(raise_exception=True)
        message = services.update_message(
            message,
            request.user,
            serializer.validated_data["content"],
        )
        return Response(self.get_serializer(message).data)

    def perform_destroy(self, instance):
        services.delete_message(instance, self.request.user)
