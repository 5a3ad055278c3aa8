import random
from dataclasses import dataclass, field
from typing import Any

import pytest

from scribble.config import Config
from scribble.game.session import RoomSessionManager, Timings
from scribble.server import create_app


class FakeClock:
    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@dataclass
class Sent:
    event: str
    payload: Any
    to: str | None
    skip: str | None
    recipients: set = field(default_factory=set)


class RecordingEmitter:
    """Captures outbound events and who would have received them."""

    def __init__(self) -> None:
        self.sent: list[Sent] = []
        self.rooms: dict[str, set] = {}

    def emit(self, event, payload=None, to=None, skip=None):
        if to in self.rooms:
            recipients = set(self.rooms[to]) - {skip}
        else:
            recipients = {to}
        self.sent.append(Sent(event, payload, to, skip, recipients))

    def enter(self, connection_id, room_id):
        self.rooms.setdefault(room_id, set()).add(connection_id)

    def leave(self, connection_id, room_id):
        self.rooms.get(room_id, set()).discard(connection_id)

    def events(self, name: str) -> list[Sent]:
        return [s for s in self.sent if s.event == name]

    def received(self, connection_id: str, name: str) -> list[Any]:
        return [s.payload for s in self.sent if s.event == name and connection_id in s.recipients]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def manager(emitter, clock):
    return RoomSessionManager(emitter, timings=Timings(), rng=random.Random(7), clock=clock)


@pytest.fixture()
def make_room(manager):
    """Create a room hosted by c1 and join c2..cN; returns the room code."""

    def _make(players: int = 2, settings: dict | None = None) -> str:
        room = manager.create_room("c1", user="Player1", settings=settings, user_id="u1")
        for i in range(2, players + 1):
            manager.join_room(f"c{i}", room.code, user=f"Player{i}", user_id=f"u{i}")
        return room.code

    return _make


@pytest.fixture()
def start_turn(manager, clock):
    """Start a game and run the countdown; returns the room (now waiting for a word)."""

    def _start(code: str):
        manager.start_game("c1", code)
        clock.advance(manager.timings.countdown_ms)
        manager.tick(code)
        return manager.registry.get(code)

    return _start


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False


@pytest.fixture()
def flask_app():
    application, _socketio = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    socketio = flask_app.extensions["socketio"]
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect

    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
