from __future__ import annotations

from typing import Any

from django.db import connection
from django.http import JsonResponse

from teamdesk.realtime.socketio import sio

REQUIRED_SOCKET_EVENTS = ("connect", "disconnect", "chat:join", "chat:message")


def check_db() -> dict[str, Any]:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
            cursor.fetchone()
    except Exception as exc:  # noqa: BLE001 - health must degrade, not crash
        return {"ok": False, "error": str(exc)}
    else:
        return {"ok": True}


def check_realtime() -> dict[str, Any]:
    registered = set(sio.handlers.get("/", {}))
    missing = [name for name in REQUIRED_SOCKET_EVENTS if name not in registered]
    if missing:
        return {"ok": False, "error": f"missing handlers: {', '.join(missing)}"}
    return {"ok": True, "events": len(registered)}


def health(request):
    db = check_db()
    realtime_info = check_realtime()
    components = {"db": db, "realtime": realtime_info}

    all_ok = all(v.get("ok", False) for v in components.values())
    some_ok = any(v.get("ok", False) for v in components.values())

    status = "ok" if all_ok else ("degraded" if some_ok else "down")
    http_status = 200 if all_ok else 503

    return JsonResponse(
        {"status": status, "components": components},
        status=http_status,
    )
