from __future__ import annotations

from threading import RLock
from typing import Any

from ..realtime.events import Emitter, Events


class CanvasRelay:
    """Pass-through for drawing actions plus a capped backlog for late joiners."""

    def __init__(self, emitter: Emitter, limit: int = 1000) -> None:
        self._emitter = emitter
        self._limit = limit
        self._lock = RLock()
        self._backlogs: dict[str, list[Any]] = {}

    def open(self, room_id: str) -> None:
        with self._lock:
            self._backlogs[room_id] = []

    def drop(self, room_id: str) -> None:
        with self._lock:
            self._backlogs.pop(room_id, None)

    def relay(self, room_id: str, sender_id: str, action: Any) -> None:
        with self._lock:
            backlog = self._backlogs.get(room_id)
            if backlog is not None:
                backlog.append(action)
                if len(backlog) > self._limit:
                    self._backlogs[room_id] = backlog[-self._limit :]

        self._emitter.emit(Events.DRAW, action, to=room_id, skip=sender_id)

    def clear(self, room_id: str, sender_id: str | None = None) -> None:
        with self._lock:
            if room_id in self._backlogs:
                self._backlogs[room_id] = []

        self._emitter.emit(Events.CLEAR_CANVAS, None, to=room_id, skip=sender_id)

    def snapshot(self, room_id: str) -> list[Any]:
        with self._lock:
            return list(self._backlogs.get(room_id, []))
