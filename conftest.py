import pytest
from django.apps import apps
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from chat_backend.chats.models import Chat

User = get_user_model()
TEST_PASSWORD = "Chat-Pass!2024"  # noqa: S105


@pytest.fixture(autouse=True)
def _reset_presence():
    gateway = apps.get_app_config("realtime").gateway
    gateway.presence.clear()
    yield
    gateway.presence.clear()


@pytest.fixture
def make_user(db):
    def make(username, **extra):
        extra.setdefault("email", f"{username}@example.com")
        return User.objects.create_user(
            username=username,
            password=TEST_PASSWORD,
            **extra,
        )

    return make


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    def authenticate(user):
        api_client.force_authenticate(user=user)
        return api_client

    return authenticate


@pytest.fixture
def private_chat(alice, bob):
    chat = Chat.objects.create(type=Chat.Type.PRIVATE)
    chat.participants.set([alice, bob])
    return chat


@pytest.fixture
def group_chat(alice, bob):
    chat = Chat.objects.create(type=Chat.Type.GROUP, name="Team", admin=alice)
    chat.participants.set([alice, bob])
    return chat
