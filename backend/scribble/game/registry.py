from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from threading import RLock
from typing import Any, Callable, Iterator

from .errors import AuthorizationError, GameStateError, RoomNotFoundError, ValidationError
from .models import Room, RoomSettings

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6

# wire key -> (field, min, max)
SETTINGS_FIELDS: dict[str, tuple[str, int, int]] = {
    "maxPlayers": ("max_players", 2, 20),
    "roundTime": ("round_time_seconds", 10, 300),
    "rounds": ("total_rounds", 1, 20),
    "wordOptions": ("word_option_count", 1, 5),
}


def merge_settings(base: RoomSettings, partial: Any) -> RoomSettings:
    """Apply a partial wire-format settings dict to ``base``; unknown keys are ignored."""
    if partial is None:
        return base
    if not isinstance(partial, dict):
        raise ValidationError("Settings must be an object")

    changes: dict[str, int] = {}
    for key, (attr, low, high) in SETTINGS_FIELDS.items():
        if key not in partial or partial[key] is None:
            continue
        raw = partial[key]
        if isinstance(raw, bool):
            raise ValidationError(f"Invalid value for {key}")
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid value for {key}") from None
        if value < low or value > high:
            raise ValidationError(f"{key} must be between {low} and {high}")
        changes[attr] = value

    return replace(base, **changes)


class RoomRegistry:
    """Owns every room; each room is mutated only while its own lock is held."""

    def __init__(self, defaults: RoomSettings | None = None) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self.defaults = defaults or RoomSettings()

    def _new_code(self) -> str:
        code = uuid.uuid4().hex[:ROOM_CODE_LENGTH].upper()
        while code in self._rooms:
            code = uuid.uuid4().hex[:ROOM_CODE_LENGTH].upper()
        return code

    def create(self, host_connection_id: str, settings: Any = None, now_ms: int = 0) -> Room:
        if isinstance(settings, RoomSettings):
            merged = settings
        else:
            merged = merge_settings(self.defaults, settings)
        with self._lock:
            room = Room(
                code=self._new_code(),
                host_connection_id=host_connection_id,
                settings=merged,
                created_at_ms=now_ms,
            )
            self._rooms[room.code] = room
        logger.info("[room-create] room=%s host=%s settings=%s", room.code, host_connection_id, merged)
        return room

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def require(self, room_id: str) -> Room:
        room = self.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    @contextmanager
    def locked(self, room_id: str) -> Iterator[Room]:
        room = self.require(room_id)
        with room.lock:
            yield room

    def delete(self, room_id: str) -> bool:
        with self._lock:
            return self._rooms.pop(room_id, None) is not None

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def update_settings(self, room_id: str, partial: Any, requester_id: str) -> RoomSettings:
        with self.locked(room_id) as room:
            if requester_id != room.host_connection_id:
                raise AuthorizationError("Not authorized to change settings")
            if room.game_started:
                raise GameStateError("Settings cannot change while a game is running")
            room.settings = merge_settings(room.settings, partial)
            logger.info("[room-settings] room=%s settings=%s", room_id, room.settings)
            return room.settings

    def sweep(self, now_ms: int, max_age_ms: int, is_empty: Callable[[str], bool]) -> list[str]:
        """Discard rooms older than ``max_age_ms`` that have nobody in them."""
        removed: list[str] = []
        for room in self.list_rooms():
            if now_ms - room.created_at_ms > max_age_ms and is_empty(room.code):
                if self.delete(room.code):
                    removed.append(room.code)
        if removed:
            logger.info("[room-sweep] removed %d inactive rooms", len(removed))
        return removed
