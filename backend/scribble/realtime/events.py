from __future__ import annotations

from typing import Any, Protocol

from flask_socketio import SocketIO


class Events:
    # Outbound
    SID = "sid"
    ROOM_CREATED = "roomCreated"
    ROOM_JOINED = "roomJoined"
    JOIN_ERROR = "joinError"
    PROGRESS_RESTORED = "progressRestored"
    ROOM_USERS = "roomUsers"
    HOST_ASSIGNED = "hostAssigned"
    ROOM_SETTINGS_UPDATED = "roomSettingsUpdated"
    SETTINGS_ERROR = "settingsError"
    GAME_STATE = "gameState"
    GAME_ERROR = "gameError"
    DRAWER_ASSIGNED = "drawerAssigned"
    ASSIGNED_AS_DRAWER = "assignedAsDrawer"
    WORD_SELECTED = "wordSelected"
    WORD_OPTIONS = "wordOptions"
    GUESS = "guess"
    PLAYER_GUESSED_CORRECTLY = "playerGuessedCorrectly"
    DRAWER_EARNED_POINTS = "drawerEarnedPoints"
    ROUND_COMPLETE = "roundComplete"
    SHOW_ROUND_LEADERBOARD = "showRoundLeaderboard"
    ROUND_CHANGED = "roundChanged"
    DRAWER_INFO = "drawerInfo"
    USER_INFO = "getUserInfo"
    CANVAS_STATE = "canvasState"
    DRAW = "draw"
    CLEAR_CANVAS = "clearCanvas"


class Emitter(Protocol):
    def emit(self, event: str, payload: Any = None, to: str | None = None, skip: str | None = None) -> None: ...

    def enter(self, connection_id: str, room_id: str) -> None: ...

    def leave(self, connection_id: str, room_id: str) -> None: ...


class SocketIOEmitter:
    """Emitter backed by a Flask-SocketIO server; safe to use from background tasks."""

    def __init__(self, socketio: SocketIO, namespace: str = "/") -> None:
        self.socketio = socketio
        self.namespace = namespace

    def emit(self, event: str, payload: Any = None, to: str | None = None, skip: str | None = None) -> None:
        args = () if payload is None else (payload,)
        self.socketio.emit(event, *args, to=to, skip_sid=skip, namespace=self.namespace)

    def enter(self, connection_id: str, room_id: str) -> None:
        self.socketio.server.enter_room(connection_id, room_id, namespace=self.namespace)

    def leave(self, connection_id: str, room_id: str) -> None:
        self.socketio.server.leave_room(connection_id, room_id, namespace=self.namespace)
