"""Global Socket.IO server shared by chat, huddles, presence and notifications.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: /ws/ (``SOCKETIO_PATH``)
- Auth: ``auth.token``, ``query.token`` or an ``Authorization: Bearer`` header
  carrying a simplejwt access token.

Event handlers live in ``teamdesk.realtime.handlers``; this module owns the
connection lifecycle, the room naming and the helpers sync Django code uses to
emit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

import socketio
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError

from teamdesk.chat import wire

logger = logging.getLogger(__name__)

CHANNEL_ROOM_PREFIX = "channel:"
PRESENCE_EVENT = "presence:update"

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.SOCKETIO_CORS_ALLOWED_ORIGINS,
    logger=False,
    engineio_logger=False,
)


@dataclass(frozen=True)
class SocketIdentity:
    user_id: int
    username: str


def room_for_user(user_id: int) -> str:
    return f"user_{int(user_id)}"


def room_for_channel(channel_key: str) -> str:
    return f"{CHANNEL_ROOM_PREFIX}{channel_key}"


def channel_key_from_room(room: str) -> str | None:
    if isinstance(room, str) and room.startswith(CHANNEL_ROOM_PREFIX):
        return room[len(CHANNEL_ROOM_PREFIX) :]
    return None


@database_sync_to_async
def _get_identity_from_access_token(token: str) -> SocketIdentity:
    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    user = jwt_auth.get_user(validated)
    return SocketIdentity(user_id=int(user.id), username=user.username)


def _scope_from_environ(environ: dict[str, Any]) -> Any:
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            return inner
    return environ


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract JWT token from Socket.IO auth/environ.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    scope = _scope_from_environ(environ)

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

    header = ""
    if isinstance(environ, dict):
        header = environ.get("HTTP_AUTHORIZATION", "") or ""
    if not header and isinstance(scope, dict):
        for name, value in scope.get("headers", []) or []:
            if name in (b"authorization", "authorization"):
                header = value.decode(errors="ignore") if isinstance(value, bytes) else value
                break
    parts = header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":  # noqa: PLR2004
        return parts[1]

    return None


def _is_expired(exc: Exception) -> bool:
    detail = getattr(exc, "detail", None)
    text = str(detail if detail is not None else exc).lower()
    return "token is expired" in text


async def get_identity(sid: str) -> SocketIdentity | None:
    session = await sio.get_session(sid)
    if not isinstance(session, dict) or session.get("user_id") is None:
        return None
    return SocketIdentity(
        user_id=int(session["user_id"]),
        username=session.get("username") or "",
    )


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    if not token:
        msg = "unauthorized"
        raise ConnectionRefusedError(msg)

    try:
        identity = await _get_identity_from_access_token(token)
    except (TokenError, AuthenticationFailed) as exc:
        # AuthenticationFailed also covers unknown or inactive users
        msg = "jwt_expired" if _is_expired(exc) else "unauthorized"
        logger.info("Socket %s refused: %s", sid, msg)
        raise ConnectionRefusedError(msg) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error [%s]", sid)
        msg = "server_error"
        raise ConnectionRefusedError(msg) from exc

    await sio.save_session(
        sid,
        {"user_id": identity.user_id, "username": identity.username},
    )

    # Always join the per-user room.
    await sio.enter_room(sid, room_for_user(identity.user_id))
    logger.info("Socket %s connected as user %s", sid, identity.user_id)

    await sio.emit(
        PRESENCE_EVENT,
        wire.presence_payload(identity.user_id, identity.username, "online"),
    )


@sio.event
async def disconnect(sid: str, *args):
    identity = await get_identity(sid)
    if identity is None:
        return

    # Rooms are still attached to the sid while this handler runs
    for room in sio.rooms(sid):
        channel_key = channel_key_from_room(room)
        if channel_key is None:
            continue
        await sio.emit(
            "chat:system",
            wire.system_event(
                "leave", channel_key, identity.user_id, identity.username
            ),
            room=room,
            skip_sid=sid,
        )

    await sio.emit(
        PRESENCE_EVENT,
        wire.presence_payload(identity.user_id, identity.username, "offline"),
    )
    logger.info("Socket %s disconnected (user %s)", sid, identity.user_id)


def emit_event_to_room(room: str, event: str, payload: dict[str, Any]) -> None:
    """Emit an event to a room from sync Django code."""

    async_to_sync(sio.emit)(event, payload, room=room)


def emit_event_to_user(user_id: int, event: str, payload: dict[str, Any]) -> None:
    emit_event_to_room(room_for_user(user_id), event, payload)


def emit_event_to_channel(
    channel_key: str, event: str, payload: dict[str, Any]
) -> None:
    emit_event_to_room(room_for_channel(channel_key), event, payload)


def emit_event_to_all(event: str, payload: dict[str, Any]) -> None:
    async_to_sync(sio.emit)(event, payload)
