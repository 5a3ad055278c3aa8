from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit

from ..game.errors import SessionError
from ..game.session import RoomSessionManager
from .events import Events

logger = logging.getLogger(__name__)


def register_socketio_handlers(
    socketio: SocketIO,
    manager: RoomSessionManager,
    run_timers: bool = True,
    tick_interval: float = 0.25,
) -> None:
    _room_tasks: dict[str, bool] = {}

    def _ensure_room_task(room_id: str) -> None:
        if not run_timers or not room_id:
            return
        if _room_tasks.get(room_id):
            return
        _room_tasks[room_id] = True

        def _runner() -> None:
            try:
                while True:
                    try:
                        keep_running = manager.tick(room_id)
                    except Exception:
                        logger.exception("[runner-error] room=%s", room_id)
                        keep_running = True
                    if not keep_running:
                        break
                    socketio.sleep(tick_interval)
            finally:
                _room_tasks.pop(room_id, None)
                logger.debug("[runner-exit] room=%s", room_id)

        socketio.start_background_task(_runner)

    def _guarded(error_event: str) -> Callable:
        """Turn session failures into a single error event for the caller."""

        def decorator(fn: Callable[[dict], Any]) -> Callable:
            @functools.wraps(fn)
            def wrapper(data=None):
                payload = data if isinstance(data, dict) else {}
                try:
                    result = fn(payload)
                except SessionError as exc:
                    logger.info("[rejected] event=%s sid=%s error=%s", fn.__name__, request.sid, exc.message)
                    emit(error_event, {"error": exc.message})
                    return {"ok": False, "error": exc.code}
                except Exception:
                    logger.exception("[handler-error] event=%s sid=%s", fn.__name__, request.sid)
                    emit(error_event, {"error": "Something went wrong. Please try again."})
                    return {"ok": False, "error": "internal_error"}
                return result if result is not None else {"ok": True}

            return wrapper

        return decorator

    @socketio.on("connect")
    def on_connect(auth=None):
        emit(Events.SID, {"sid": request.sid})

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        try:
            manager.disconnect(request.sid)
        except Exception:
            logger.exception("[handler-error] event=disconnect sid=%s", request.sid)

    # ---- membership ----

    @socketio.on("createRoom")
    @_guarded(Events.JOIN_ERROR)
    def create_room(payload: dict):
        room = manager.create_room(
            request.sid,
            user=payload.get("user"),
            avatar=payload.get("avatar"),
            settings=payload.get("settings"),
            user_id=payload.get("userId"),
        )
        _ensure_room_task(room.code)
        return {"ok": True, "roomId": room.code}

    @socketio.on("joinRoom")
    @_guarded(Events.JOIN_ERROR)
    def join_room(payload: dict):
        player = manager.join_room(
            request.sid,
            room_id=payload.get("roomId"),
            user=payload.get("user"),
            avatar=payload.get("avatar"),
            user_id=payload.get("userId"),
        )
        _ensure_room_task(player.room_id)
        return {"ok": True, "roomId": player.room_id}

    @socketio.on("leaveRoom")
    @_guarded(Events.GAME_ERROR)
    def leave_room(payload: dict):
        manager.leave_room(request.sid, payload.get("roomId"))

    # ---- host actions ----

    @socketio.on("updateRoomSettings")
    @_guarded(Events.SETTINGS_ERROR)
    def update_room_settings(payload: dict):
        manager.update_settings(request.sid, payload.get("roomId"), payload.get("settings"))

    @socketio.on("startGame")
    @_guarded(Events.GAME_ERROR)
    def start_game(payload: dict):
        room_id = payload.get("roomId")
        manager.start_game(request.sid, room_id)
        _ensure_room_task(str(room_id).strip().upper())

    # ---- round actions ----

    @socketio.on("selectWord")
    @_guarded(Events.GAME_ERROR)
    def select_word(payload: dict):
        manager.select_word(request.sid, payload.get("roomId"), payload.get("wordIndex"))

    @socketio.on("guess")
    @_guarded(Events.GAME_ERROR)
    def guess(payload: dict):
        manager.guess(request.sid, payload.get("roomId"), payload.get("guess"))

    @socketio.on("correctGuess")
    @_guarded(Events.GAME_ERROR)
    def correct_guess(payload: dict):
        manager.correct_guess(request.sid, payload.get("roomId"), payload.get("word"))

    @socketio.on("timerComplete")
    @_guarded(Events.GAME_ERROR)
    def timer_complete(payload: dict):
        manager.timer_complete(request.sid, payload.get("roomId"))

    # ---- canvas relay ----

    @socketio.on("draw")
    @_guarded(Events.GAME_ERROR)
    def draw(payload: dict):
        manager.draw(request.sid, payload.get("roomId"), payload)

    @socketio.on("clearCanvas")
    @_guarded(Events.GAME_ERROR)
    def clear_canvas(payload: dict):
        manager.clear_canvas(request.sid, payload.get("roomId"))

    # ---- snapshot queries ----

    @socketio.on("getDrawerInfo")
    @_guarded(Events.DRAWER_INFO)
    def get_drawer_info(payload: dict):
        manager.drawer_info(request.sid, payload.get("roomId"))

    @socketio.on("getRoomUsers")
    @_guarded(Events.GAME_ERROR)
    def get_room_users(payload: dict):
        manager.room_users(request.sid, payload.get("roomId"))

    @socketio.on("requestRoomSettings")
    @_guarded(Events.SETTINGS_ERROR)
    def request_room_settings(payload: dict):
        manager.room_settings(request.sid, payload.get("roomId"))

    @socketio.on("requestGameState")
    @_guarded(Events.GAME_ERROR)
    def request_game_state(payload: dict):
        manager.game_state(request.sid, payload.get("roomId"))

    @socketio.on("requestCanvasState")
    @_guarded(Events.GAME_ERROR)
    def request_canvas_state(payload: dict):
        manager.canvas_state(request.sid, payload.get("roomId"))

    @socketio.on("requestWordOptions")
    @_guarded(Events.GAME_ERROR)
    def request_word_options(payload: dict):
        manager.word_options(request.sid, payload.get("roomId"))

    @socketio.on("getUser")
    @_guarded(Events.GAME_ERROR)
    def get_user(payload: dict):
        manager.user_info(request.sid)


def start_room_sweeper(socketio: SocketIO, manager: RoomSessionManager, interval_sec: float) -> None:
    """Periodically discard old rooms nobody is in."""

    def _sweeper() -> None:
        while True:
            socketio.sleep(interval_sec)
            try:
                manager.sweep()
            except Exception:
                logger.exception("[sweep-error]")

    socketio.start_background_task(_sweeper)
