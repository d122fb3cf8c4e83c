from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from unittest import mock

import pytest
from rest_framework.test import APIClient

from teamdesk.realtime.socketio import sio

from tests.factories import create_user


@pytest.fixture
def user(db):
    return create_user("alice", first_name="Alice", last_name="Adams")


@pytest.fixture
def other_user(db):
    return create_user("bob", first_name="Bob", last_name="Brown")


@pytest.fixture
def outsider(db):
    return create_user("carol")


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@dataclass
class FakeSocketServer:
    """Records what the handlers ask the Socket.IO server to do."""

    sessions: dict[str, dict[str, Any]] = field(default_factory=dict)
    rooms: dict[str, set[str]] = field(default_factory=dict)
    emit: mock.AsyncMock = field(default_factory=mock.AsyncMock)

    def connect(self, sid: str, user) -> None:
        self.sessions[sid] = {"user_id": user.id, "username": user.username}
        self.rooms.setdefault(sid, {sid})

    async def get_session(self, sid, namespace=None):
        return self.sessions.get(sid, {})

    async def save_session(self, sid, session, namespace=None):
        self.sessions[sid] = dict(session)

    async def enter_room(self, sid, room, namespace=None):
        self.rooms.setdefault(sid, {sid}).add(room)

    async def leave_room(self, sid, room, namespace=None):
        self.rooms.setdefault(sid, {sid}).discard(room)

    def rooms_of(self, sid, namespace=None):
        return sorted(self.rooms.get(sid, set()))

    def emitted(self, event: str) -> list[tuple[Any, dict[str, Any]]]:
        """``(payload, kwargs)`` of every emit of ``event``, in order."""
        return [
            (call.args[1] if len(call.args) > 1 else None, call.kwargs)
            for call in self.emit.await_args_list
            if call.args and call.args[0] == event
        ]


@pytest.fixture
def socket_server(monkeypatch):
    fake = FakeSocketServer()
    monkeypatch.setattr(sio, "emit", fake.emit)
    monkeypatch.setattr(sio, "get_session", fake.get_session)
    monkeypatch.setattr(sio, "save_session", fake.save_session)
    monkeypatch.setattr(sio, "enter_room", fake.enter_room)
    monkeypatch.setattr(sio, "leave_room", fake.leave_room)
    monkeypatch.setattr(sio, "rooms", fake.rooms_of)
    return fake
