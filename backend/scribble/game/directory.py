from __future__ import annotations

from threading import RLock

from .models import Player, SavedProgress


class PlayerDirectory:
    """Live connections -> player profiles, and persistent ids -> saved progress."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._players: dict[str, Player] = {}
        self._user_index: dict[str, str] = {}
        self._saved: dict[str, SavedProgress] = {}

    def register(
        self,
        connection_id: str,
        room_id: str,
        user_id: str,
        user_name: str,
        avatar: str = "",
        points: int = 0,
        now_ms: int = 0,
    ) -> Player:
        with self._lock:
            player = Player(
                connection_id=connection_id,
                user_id=user_id,
                user_name=user_name,
                room_id=room_id,
                avatar=avatar,
                points=points,
                last_active_ms=now_ms,
            )
            self._players[connection_id] = player
            self._user_index[user_id] = connection_id
            return player

    def get(self, connection_id: str) -> Player | None:
        with self._lock:
            return self._players.get(connection_id)

    def remove(self, connection_id: str) -> Player | None:
        with self._lock:
            player = self._players.pop(connection_id, None)
            if player is None:
                return None
            if self._user_index.get(player.user_id) == connection_id:
                del self._user_index[player.user_id]
            return player

    def connection_for(self, user_id: str) -> str | None:
        with self._lock:
            return self._user_index.get(user_id)

    def members(self, room_id: str) -> list[Player]:
        """Live players of a room, in join order."""
        with self._lock:
            return [p for p in self._players.values() if p.room_id == room_id]

    def member_ids(self, room_id: str) -> list[str]:
        return [p.connection_id for p in self.members(room_id)]

    def count(self, room_id: str) -> int:
        return len(self.members(room_id))

    def touch(self, connection_id: str, now_ms: int) -> None:
        with self._lock:
            player = self._players.get(connection_id)
            if player is not None:
                player.last_active_ms = now_ms

    def award(self, connection_id: str, user_id: str, points: int) -> int | None:
        """Add points to the live player, or to their saved progress if they are away."""
        with self._lock:
            player = self._players.get(connection_id)
            if player is not None:
                player.points += points
                return player.points
            saved = self._saved.get(user_id)
            if saved is not None:
                saved.points += points
                return saved.points
            return None

    def reset_points(self, room_id: str) -> None:
        with self._lock:
            for player in self._players.values():
                if player.room_id == room_id:
                    player.points = 0
            for saved in self._saved.values():
                if saved.room_id == room_id:
                    saved.points = 0

    def save_progress(self, player: Player) -> SavedProgress:
        with self._lock:
            saved = SavedProgress(
                user_id=player.user_id,
                user_name=player.user_name,
                room_id=player.room_id,
                avatar=player.avatar,
                points=player.points,
                is_host=player.is_host,
            )
            self._saved[player.user_id] = saved
            return saved

    def saved_progress(self, user_id: str) -> SavedProgress | None:
        with self._lock:
            return self._saved.get(user_id)

    def discard_progress(self, user_id: str) -> SavedProgress | None:
        with self._lock:
            return self._saved.pop(user_id, None)

    def leaderboard(self, room_id: str) -> list[dict]:
        """Live members sorted by points, highest first."""
        board = [
            {
                "userName": p.user_name,
                "avatar": p.avatar,
                "points": p.points,
                "userId": p.user_id,
            }
            for p in self.members(room_id)
        ]
        board.sort(key=lambda entry: entry["points"], reverse=True)
        return board
