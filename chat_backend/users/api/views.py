import logging

from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.mixins import ListModelMixin
from rest_framework.mixins import RetrieveModelMixin
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from chat_backend.users.models import User

from .permissions import IsChatAdmin
from .serializers import PublicUserSerializer
from .serializers import UserSerializer
from .serializers import UserUpdateSerializer

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(tags=["Users"]),
    retrieve=extend_schema(tags=["Users"]),
    me=extend_schema(tags=["Users"]),
)
class UserViewSet(RetrieveModelMixin, ListModelMixin, GenericViewSet):
    serializer_class = UserSerializer
    queryset = User.objects.order_by("username")

    def get_permissions(self):
        if self.action == "list":
            return [IsChatAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action != "retrieve":
            return UserSerializer
        user = self.request.user
        if getattr(user, "is_chat_admin", False):
            return UserSerializer
        return PublicUserSerializer

    @action(detail=False, methods=["get", "patch"])
    def me(self, request):
        if request.method == "PATCH":
            serializer = UserUpdateSerializer(
                request.user,
                data=request.data,
                partial=True,
            )
            serializer.is_valid(raise_exception=True)
            serializer.save()
            logger.info("User %s updated their profile", request.user.pk)
        serializer = UserSerializer(request.user, context={"request": request})
        return Response(status=status.HTTP_200_OK, data=serializer.data)
