from typing import Any

from teamdesk.chat import wire
from teamdesk.realtime.dispatch import on_event
from teamdesk.realtime.schemas import PresenceSerializer
from teamdesk.realtime.socketio import PRESENCE_EVENT
from teamdesk.realtime.socketio import SocketIdentity
from teamdesk.realtime.socketio import sio


@on_event("presence:set", PresenceSerializer, scalar_field="status")
async def set_status(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    await sio.emit(
        PRESENCE_EVENT,
        wire.presence_payload(identity.user_id, identity.username, data["status"]),
    )
