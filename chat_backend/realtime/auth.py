"""Socket.IO handshake authentication.

Clients send the JWT access token in the handshake auth payload:
`io(url, {auth: {token}})`. A `?token=` query string is accepted as a fallback
for transports that cannot send an auth payload.

Every refusal carries a distinct reason string; python-socketio hands it to
the client as `{message: reason}`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

import jwt
from channels.db import database_sync_to_async
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.state import token_backend

logger = logging.getLogger(__name__)

REASON_MISSING = "Authentication token is missing"
REASON_MALFORMED = "jwt_malformed"
REASON_BAD_SIGNATURE = "invalid_signature"
REASON_EXPIRED = "jwt_expired"
REASON_UNAUTHORIZED = "unauthorized"
REASON_SERVER_ERROR = "server_error"


class HandshakeRejected(Exception):  # noqa: N818
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class AuthenticatedIdentity:
    id: int
    username: str
    role: str


def extract_token(environ: dict[str, Any] | None, auth: Any | None) -> str | None:
    """Extract the JWT from the Socket.IO auth payload or the query string.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token.strip():
            return auth_token.strip()

    scope: Any = environ or {}
    if isinstance(scope, dict) and "asgi.scope" in scope:
        inner = scope.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token
    return None


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and token type; return the claims.

    Uses the same key, algorithm, audience and issuer as simplejwt so any
    access token minted by the REST login is accepted here.
    """

    try:
        payload = jwt.decode(
            token,
            token_backend.verifying_key,
            algorithms=[token_backend.algorithm],
            audience=token_backend.audience,
            issuer=token_backend.issuer,
            leeway=api_settings.LEEWAY,
        )
    except jwt.ExpiredSignatureError as exc:
        raise HandshakeRejected(REASON_EXPIRED) from exc
    except jwt.InvalidSignatureError as exc:
        raise HandshakeRejected(REASON_BAD_SIGNATURE) from exc
    except jwt.DecodeError as exc:
        raise HandshakeRejected(REASON_MALFORMED) from exc
    except jwt.InvalidTokenError as exc:
        raise HandshakeRejected(REASON_UNAUTHORIZED) from exc

    if payload.get(api_settings.TOKEN_TYPE_CLAIM) != "access":
        raise HandshakeRejected(REASON_UNAUTHORIZED)
    if payload.get(api_settings.USER_ID_CLAIM) is None:
        raise HandshakeRejected(REASON_MALFORMED)
    return payload


def load_identity(user_id: Any) -> AuthenticatedIdentity:
    try:
        pk = int(user_id)
    except (TypeError, ValueError) as exc:
        raise HandshakeRejected(REASON_MALFORMED) from exc
    user_model = get_user_model()
    user = user_model.objects.filter(pk=pk, is_active=True).first()
    if user is None:
        raise HandshakeRejected(REASON_UNAUTHORIZED)
    return AuthenticatedIdentity(
        id=int(user.pk),
        username=user.username,
        role=user.role,
    )


async def authenticate_handshake(
    auth: Any | None,
    environ: dict[str, Any] | None = None,
) -> AuthenticatedIdentity:
    token = extract_token(environ, auth)
    if not token:
        raise HandshakeRejected(REASON_MISSING)
    payload = decode_access_token(token)
    return await database_sync_to_async(load_identity)(
        payload[api_settings.USER_ID_CLAIM],
    )
