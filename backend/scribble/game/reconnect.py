"""Disconnect bookkeeping, reconnection and lazy host migration."""

from __future__ import annotations

import logging
from threading import RLock

from ..realtime.events import Emitter, Events
from .directory import PlayerDirectory
from .models import DisconnectedEntry, Player, Room, SavedProgress

logger = logging.getLogger(__name__)


class ReconnectionSupervisor:
    def __init__(self, directory: PlayerDirectory, emitter: Emitter, grace_ms: int = 150_000) -> None:
        self.directory = directory
        self.emitter = emitter
        self.grace_ms = grace_ms
        self._lock = RLock()
        self._pending: dict[str, DisconnectedEntry] = {}

    def on_disconnect(self, room: Room | None, connection_id: str, now_ms: int) -> Player | None:
        """Save the player's progress, drop the live connection and start the grace period."""
        player = self.directory.get(connection_id)
        if player is None:
            return None

        saved = self.directory.save_progress(player)
        self.directory.remove(connection_id)

        entry = DisconnectedEntry(
            user_id=player.user_id,
            room_id=player.room_id,
            previous_connection_id=connection_id,
            disconnected_at_ms=now_ms,
            expires_at_ms=now_ms + self.grace_ms,
        )
        with self._lock:
            self._pending[player.user_id] = entry

        if room is not None and room.host_connection_id == connection_id:
            # Reassigned on the next roster refresh, not here.
            room.needs_new_host = True

        logger.info(
            "[disconnect] room=%s user=%s (%s) points=%d grace_until=%d",
            player.room_id,
            player.user_name,
            player.user_id,
            saved.points,
            entry.expires_at_ms,
        )
        return player

    def on_reconnect(
        self, user_id: str, connection_id: str, room_id: str, now_ms: int
    ) -> tuple[SavedProgress, DisconnectedEntry] | None:
        """Cancel the grace timer and move saved points onto the new connection.

        Only progress saved for this same room, and still inside its grace
        period, is restored.
        """
        saved = self.directory.saved_progress(user_id)
        if saved is None or saved.room_id != room_id:
            return None

        with self._lock:
            entry = self._pending.pop(user_id, None)
        self.directory.discard_progress(user_id)
        if entry is None or entry.expires_at_ms <= now_ms:
            logger.info("[grace-expired] room=%s user=%s rejoined too late", room_id, user_id)
            return None

        player = self.directory.get(connection_id)
        if player is not None:
            player.points = saved.points

        logger.info("[reconnect] room=%s user=%s points=%d", room_id, user_id, saved.points)
        return saved, entry

    def expire(self, room_id: str, now_ms: int) -> list[DisconnectedEntry]:
        with self._lock:
            expired = [
                e for e in self._pending.values() if e.room_id == room_id and e.expires_at_ms <= now_ms
            ]
            for entry in expired:
                del self._pending[entry.user_id]

        for entry in expired:
            self.directory.discard_progress(entry.user_id)
            logger.info("[grace-expired] room=%s user=%s", room_id, entry.user_id)
        return expired

    def pending(self, room_id: str) -> list[DisconnectedEntry]:
        with self._lock:
            return [e for e in self._pending.values() if e.room_id == room_id]

    def drop_room(self, room_id: str) -> None:
        with self._lock:
            stale = [uid for uid, e in self._pending.items() if e.room_id == room_id]
            for uid in stale:
                del self._pending[uid]
        for uid in stale:
            self.directory.discard_progress(uid)

    def reassign_host(self, room: Room) -> str | None:
        """Make the first live member host if the current host is gone. Returns the new host, if any."""
        members = self.directory.members(room.code)
        live_ids = [p.connection_id for p in members]
        new_host = None

        if room.needs_new_host or room.host_connection_id not in live_ids:
            if live_ids:
                new_host = live_ids[0]
                room.host_connection_id = new_host
                room.needs_new_host = False
                logger.info("[host] room=%s new host=%s", room.code, new_host)
            else:
                room.host_connection_id = None
                room.needs_new_host = True

        for p in members:
            p.is_host = p.connection_id == room.host_connection_id

        if new_host is not None:
            self.emitter.emit(Events.HOST_ASSIGNED, {"isHost": True}, to=new_host)
        return new_host

    def roster(self, room: Room) -> list[dict]:
        return [
            {
                "userName": p.user_name,
                "avatar": p.avatar,
                "points": p.points,
                "isHost": p.connection_id == room.host_connection_id,
                "userId": p.user_id,
            }
            for p in self.directory.members(room.code)
        ]

    def refresh_roster(self, room: Room) -> list[dict]:
        self.reassign_host(room)
        users = self.roster(room)
        self.emitter.emit(Events.ROOM_USERS, users, to=room.code)
        return users
