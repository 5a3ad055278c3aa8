from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from threading import RLock


class Phase(str, Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    DRAWER_SELECTION = "drawer_selection"
    WORD_PENDING = "word_pending"
    DRAWING = "drawing"
    ROUND_COMPLETE = "round_complete"
    LEADERBOARD = "leaderboard"
    GAME_OVER = "game_over"


class TimerKind(str, Enum):
    COUNTDOWN = "countdown"
    WORD_GRACE = "word_grace"
    ROUND = "round"
    LEADERBOARD = "leaderboard"
    SETTLE = "settle"


@dataclass
class RoomSettings:
    max_players: int = 8
    round_time_seconds: int = 60
    total_rounds: int = 3
    word_option_count: int = 3

    def to_wire(self) -> dict:
        return {
            "maxPlayers": self.max_players,
            "roundTime": self.round_time_seconds,
            "rounds": self.total_rounds,
            "wordOptions": self.word_option_count,
        }


@dataclass
class Player:
    connection_id: str
    user_id: str
    user_name: str
    room_id: str
    avatar: str = ""
    points: int = 0
    is_host: bool = False
    last_active_ms: int = 0


@dataclass
class SavedProgress:
    user_id: str
    user_name: str
    room_id: str
    avatar: str = ""
    points: int = 0
    is_host: bool = False

    def to_wire(self) -> dict:
        return {
            "userName": self.user_name,
            "avatar": self.avatar,
            "points": self.points,
            "isHost": self.is_host,
        }


@dataclass
class DisconnectedEntry:
    user_id: str
    room_id: str
    previous_connection_id: str
    disconnected_at_ms: int
    expires_at_ms: int


@dataclass
class PlayerOrder:
    order: list[str] = field(default_factory=list)
    current_drawer_index: int = 0


@dataclass
class RoundState:
    generation: int
    drawer_connection_id: str
    drawer_name: str
    drawer_user_id: str = ""
    word_options: list[str] = field(default_factory=list)
    current_word: str | None = None
    word_selected_at_ms: int | None = None
    round_start_at_ms: int | None = None


@dataclass
class RoomTimer:
    kind: TimerKind
    due_at_ms: int
    generation: int


@dataclass
class Room:
    code: str
    host_connection_id: str | None
    settings: RoomSettings = field(default_factory=RoomSettings)
    created_at_ms: int = 0
    current_round: int = 0
    game_started: bool = False
    needs_new_host: bool = False
    phase: Phase = Phase.IDLE
    order: PlayerOrder = field(default_factory=PlayerOrder)
    round: RoundState | None = None
    # Correct guesses of the current round: connection id -> guess time (ms).
    guesses: dict[str, int] = field(default_factory=dict)
    timer: RoomTimer | None = None
    generation: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)
