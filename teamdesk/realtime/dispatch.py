from __future__ import annotations

import functools
import logging
from typing import Any

from teamdesk.chat.exceptions import ChatError

from .socketio import get_identity
from .socketio import sio

logger = logging.getLogger(__name__)

ERROR_EVENT = "chat:error"


async def emit_error(sid: str, event: str, error: str, **extra: Any) -> None:
    await sio.emit(ERROR_EVENT, {"error": error, "event": event, **extra}, to=sid)


def on_event(event: str, schema=None, *, scalar_field: str | None = None):
    """Register a coroutine as the handler of a client event.

    The wrapped coroutine is called as ``handler(sid, identity, data)`` where
    ``data`` is the serializer's validated data (or the raw payload when no
    schema is given). A bare scalar payload is accepted for ``scalar_field``.
    Unexpected errors are logged with the sid and reported to the caller only.
    """

    def decorator(func):
        @functools.wraps(func)
        async def handler(sid: str, data: Any = None):
            identity = await get_identity(sid)
            if identity is None:
                await emit_error(sid, event, "unauthorized")
                return

            if schema is not None:
                payload = data
                if scalar_field and not isinstance(data, dict) and data is not None:
                    payload = {scalar_field: data}
                serializer = schema(data=payload if isinstance(payload, dict) else {})
                if not serializer.is_valid():
                    await emit_error(
                        sid, event, "invalid_payload", details=serializer.errors
                    )
                    return
                data = serializer.validated_data

            try:
                await func(sid, identity, data)
            except ChatError as exc:
                logger.info(
                    "Socket event %s rejected for user %s [%s]: %s",
                    event,
                    identity.user_id,
                    sid,
                    exc.message,
                )
                await emit_error(sid, event, exc.message)
            except Exception:
                logger.exception(
                    "Socket event %s failed for user %s [%s]",
                    event,
                    identity.user_id,
                    sid,
                )
                await emit_error(sid, event, "server_error")

        sio.on(event, handler=handler)
        return handler

    return decorator
