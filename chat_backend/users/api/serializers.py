from django.contrib.auth import password_validation
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from chat_backend.realtime.socketio import is_user_online
from chat_backend.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    """Full representation, shown to the user themselves and to admins."""

    is_online = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "first_name",
            "last_name",
            "role",
            "avatar",
            "bio",
            "last_seen",
            "is_online",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "role",
            "last_seen",
            "is_online",
            "created_at",
            "updated_at",
        ]

    def get_is_online(self, obj: User) -> bool:
        return is_user_online(obj.id)


class PublicUserSerializer(serializers.ModelSerializer[User]):
    """What any authenticated user may see about somebody else."""

    is_online = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "avatar", "bio", "last_seen", "is_online"]
        read_only_fields = fields

    def get_is_online(self, obj: User) -> bool:
        return is_user_online(obj.id)


class ParticipantSerializer(serializers.ModelSerializer[User]):
    class Meta:
        model = User
        fields = ["id", "username", "avatar"]
        read_only_fields = fields


class UserUpdateSerializer(serializers.ModelSerializer[User]):
    password = serializers.CharField(
        write_only=True,
        required=False,
        style={"input_type": "password"},
    )

    class Meta:
        model = User
        fields = [
            "username",
            "email",
            "first_name",
            "last_name",
            "avatar",
            "bio",
            "password",
        ]

    def validate_password(self, value: str) -> str:
        password_validation.validate_password(value, self.instance)
        return value

    def update(self, instance, validated_data):
        password = validated_data.pop("password", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class SignupSerializer(serializers.ModelSerializer[User]):
    password = serializers.CharField(write_only=True, style={"input_type": "password"})

    class Meta:
        model = User
        fields = ["id", "username", "email", "password"]
        read_only_fields = ["id"]

    def validate_email(self, value: str) -> str:
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            msg = "A user with that email already exists."
            raise serializers.ValidationError(msg)
        return value

    def validate(self, attrs):
        candidate = User(username=attrs.get("username"), email=attrs.get("email"))
        password_validation.validate_password(attrs["password"], candidate)
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(
            username=validated_data["username"],
            email=validated_data["email"],
            password=validated_data["password"],
        )


class ChatTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Login by username or email; the access token carries username and role."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["username"] = user.username
        token["role"] = user.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user, context=self.context).data
        return data


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()
