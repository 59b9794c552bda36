import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.generics import CreateAPIView
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.views import TokenRefreshView

from .serializers import ChatTokenObtainPairSerializer
from .serializers import LogoutSerializer
from .serializers import SignupSerializer
from .serializers import UserSerializer

logger = logging.getLogger(__name__)


@extend_schema(tags=["Authentication"])
class SignupView(CreateAPIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []
    serializer_class = SignupSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("New account created: %s", user.username)
        out = UserSerializer(user, context={"request": request}).data
        return Response({"user": out}, status=status.HTTP_201_CREATED)


@extend_schema(tags=["Authentication"])
class LoginView(TokenObtainPairView):
    """Username-or-email login returning the user plus an access/refresh pair."""

    serializer_class = ChatTokenObtainPairSerializer


@extend_schema(tags=["Authentication"])
class RefreshView(TokenRefreshView):
    pass


@extend_schema(tags=["Authentication"], request=LogoutSerializer, responses={205: None})
class LogoutView(APIView):
    """Blacklist the caller's refresh token so it cannot mint new access tokens."""

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            token = RefreshToken(serializer.validated_data["refresh"])
        except TokenError as exc:
            msg = "Invalid refresh token."
            raise AuthenticationFailed(msg) from exc

        owner_id = token.payload.get(api_settings.USER_ID_CLAIM)
        if str(owner_id) != str(request.user.pk):
            msg = "Invalid refresh token."
            raise AuthenticationFailed(msg)

        token.blacklist()
        logger.info("User %s logged out", request.user.pk)
        return Response(status=status.HTTP_205_RESET_CONTENT)
