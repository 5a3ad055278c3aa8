"""Per-room game state machine.

Every public method runs to completion while holding the room's lock, so
two events for the same room never interleave. Timers are deadlines on
``room.timer`` tagged with the room generation; ``tick`` fires them and a
timer whose generation or phase no longer matches is dropped.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from ..realtime.events import Emitter, Events
from .canvas import CanvasRelay
from .directory import PlayerDirectory
from .errors import AuthorizationError, GameStateError, RoomFullError, ValidationError
from .models import Phase, Player, Room, RoomSettings, RoomTimer, TimerKind
from .reconnect import ReconnectionSupervisor
from .registry import RoomRegistry, merge_settings
from .scheduler import DrawTurnScheduler
from .scoring import drawer_score, guesser_score
from .words import load_words, mask_word

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 16
MAX_AVATAR_LENGTH = 256
DRAWER_GUESS_NOTICE = "You are the drawer! You can't guess."


def now_ms() -> int:
    return int(time.time() * 1000)


def clean_user_name(name: Any) -> str:
    n = str(name or "").strip()
    if not n:
        raise ValidationError("Username is required")
    if len(n) > MAX_NAME_LENGTH:
        raise ValidationError(f"Username must be at most {MAX_NAME_LENGTH} characters")
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        raise ValidationError("Invalid username")
    if any(ord(ch) < 32 for ch in n):
        raise ValidationError("Invalid username")
    return n


def clean_room_id(room_id: Any) -> str:
    rid = str(room_id or "").strip().upper()
    if not rid:
        raise ValidationError("No room ID provided")
    return rid


def parse_word_index(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValidationError("Invalid word index")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise ValidationError("Invalid word index")


def is_correct_guess(text: str, word: str) -> bool:
    return text.strip().lower() == word.strip().lower()


@dataclass
class Timings:
    countdown_ms: int = 5000
    word_grace_ms: int = 5000
    leaderboard_ms: int = 5000
    settle_ms: int = 1500
    overtime_ms: int = 2000
    timer_tolerance_ms: int = 2000
    reconnect_grace_ms: int = 150_000
    room_max_age_ms: int = 24 * 60 * 60 * 1000
    min_players: int = 2
    canvas_limit: int = 1000

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Timings":
        return cls(
            countdown_ms=int(config.get("COUNTDOWN_SEC", 5)) * 1000,
            word_grace_ms=int(config.get("WORD_CHOICE_GRACE_SEC", 5)) * 1000,
            leaderboard_ms=int(config.get("LEADERBOARD_SEC", 5)) * 1000,
            settle_ms=int(config.get("ROUND_SETTLE_MS", 1500)),
            overtime_ms=int(config.get("ROUND_OVERTIME_SEC", 2)) * 1000,
            timer_tolerance_ms=int(config.get("TIMER_TOLERANCE_MS", 2000)),
            reconnect_grace_ms=int(config.get("RECONNECT_GRACE_SEC", 150)) * 1000,
            room_max_age_ms=int(config.get("ROOM_MAX_AGE_SEC", 24 * 60 * 60)) * 1000,
            min_players=int(config.get("MIN_PLAYERS", 2)),
            canvas_limit=int(config.get("CANVAS_BACKLOG_LIMIT", 1000)),
        )


class RoomSessionManager:
    def __init__(
        self,
        emitter: Emitter,
        timings: Timings | None = None,
        defaults: RoomSettings | None = None,
        words: list[str] | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.emitter = emitter
        self.timings = timings or Timings()
        self.clock = clock
        self.directory = PlayerDirectory()
        self.registry = RoomRegistry(defaults)
        self.canvas = CanvasRelay(emitter, limit=self.timings.canvas_limit)
        self.scheduler = DrawTurnScheduler(
            self.directory,
            words=words,
            rng=rng,
            word_grace_ms=self.timings.word_grace_ms,
        )
        self.supervisor = ReconnectionSupervisor(
            self.directory,
            emitter,
            grace_ms=self.timings.reconnect_grace_ms,
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any], emitter: Emitter) -> "RoomSessionManager":
        defaults = RoomSettings(
            max_players=int(config.get("DEFAULT_MAX_PLAYERS", 8)),
            round_time_seconds=int(config.get("DEFAULT_ROUND_TIME_SEC", 60)),
            total_rounds=int(config.get("DEFAULT_ROUNDS", 3)),
            word_option_count=int(config.get("DEFAULT_WORD_OPTIONS", 3)),
        )
        return cls(
            emitter,
            timings=Timings.from_config(config),
            defaults=defaults,
            words=load_words(config.get("WORDS_FILE") or None),
        )

    # ---- membership ----

    def create_room(
        self,
        connection_id: str,
        user: Any,
        avatar: Any = "",
        settings: Any = None,
        user_id: Any = None,
    ) -> Room:
        name = clean_user_name(user)
        uid = str(user_id or "").strip() or connection_id
        merged = merge_settings(self.registry.defaults, settings)
        self._release(connection_id, uid)

        now = self.clock()
        room = self.registry.create(connection_id, merged, now)
        self.canvas.open(room.code)

        with room.lock:
            player = self.directory.register(
                connection_id, room.code, uid, name, _clean_avatar(avatar), now_ms=now
            )
            player.is_host = True
            self.emitter.enter(connection_id, room.code)
            logger.info("[join] room=%s user=%s created the room", room.code, name)
            self.emitter.emit(Events.ROOM_CREATED, {"roomId": room.code, "isHost": True}, to=connection_id)
            self.supervisor.refresh_roster(room)
        return room

    def join_room(
        self,
        connection_id: str,
        room_id: Any,
        user: Any,
        avatar: Any = "",
        user_id: Any = None,
    ) -> Player:
        name = clean_user_name(user)
        code = clean_room_id(room_id)
        uid = str(user_id or "").strip() or connection_id
        target = self.registry.require(code)

        previous_id = self.directory.connection_for(uid)
        previous = self.directory.get(previous_id) if previous_id else None
        takeover = previous is not None and previous.room_id == code and previous_id != connection_id
        others = [cid for cid in self.directory.member_ids(code) if cid != connection_id]
        if not takeover and len(others) >= target.settings.max_players:
            raise RoomFullError()
        self._release(connection_id, uid, keep_room=code if takeover else None)

        now = self.clock()
        with self.registry.locked(code) as room:
            if takeover:
                # Same identity on a fresh socket while the old one is still live.
                self.directory.remove(previous.connection_id)
                self.emitter.leave(previous.connection_id, code)
                self.scheduler.replace_connection(room, previous.connection_id, connection_id)
                if room.host_connection_id == previous.connection_id:
                    room.host_connection_id = connection_id
            elif self.directory.count(code) >= room.settings.max_players:
                raise RoomFullError()

            player = self.directory.register(
                connection_id,
                code,
                uid,
                name,
                _clean_avatar(avatar),
                points=previous.points if takeover else 0,
                now_ms=now,
            )
            self.emitter.enter(connection_id, code)

            restored = None if takeover else self.supervisor.on_reconnect(uid, connection_id, code, now)
            if restored is not None:
                _saved, entry = restored
                self.scheduler.replace_connection(room, entry.previous_connection_id, connection_id)
                if room.host_connection_id == entry.previous_connection_id:
                    room.host_connection_id = connection_id
                    room.needs_new_host = False

            self.supervisor.reassign_host(room)
            logger.info("[join] room=%s user=%s host=%s", code, name, player.is_host)
            self.emitter.emit(
                Events.ROOM_JOINED,
                {"roomId": code, "isHost": player.is_host, "settings": room.settings.to_wire()},
                to=connection_id,
            )
            if restored is not None:
                # Host may have moved on while they were away.
                progress = dict(restored[0].to_wire(), isHost=player.is_host)
                self.emitter.emit(Events.PROGRESS_RESTORED, progress, to=connection_id)

            backlog = self.canvas.snapshot(code)
            if backlog:
                self.emitter.emit(Events.CANVAS_STATE, {"actions": backlog}, to=connection_id)

            if room.game_started:
                self.emitter.emit(Events.GAME_STATE, self._game_state(room), to=connection_id)
                if room.round is not None:
                    self._send_drawer_info(room, connection_id)

            self.supervisor.refresh_roster(room)
            self._resume_stalled_selection(room, now)
        return player

    def leave_room(self, connection_id: str, room_id: Any = None) -> None:
        player = self.directory.get(connection_id)
        if player is None:
            logger.debug("[leave] connection=%s is not in a room", connection_id)
            return
        if room_id and clean_room_id(room_id) != player.room_id:
            logger.debug("[leave] connection=%s not in room %s", connection_id, room_id)
            return
        self._depart(player.room_id, connection_id)

    def disconnect(self, connection_id: str) -> None:
        player = self.directory.get(connection_id)
        if player is None:
            return
        self._depart(player.room_id, connection_id)

    def _release(self, connection_id: str, user_id: str, keep_room: str | None = None) -> None:
        """Take this socket and this identity out of any other room before a join."""
        current = self.directory.get(connection_id)
        if current is not None and current.room_id != keep_room:
            self._depart(current.room_id, connection_id)

        other_id = self.directory.connection_for(user_id)
        other = self.directory.get(other_id) if other_id else None
        if other is not None and other.connection_id != connection_id and other.room_id != keep_room:
            self._depart(other.room_id, other.connection_id)

    def _depart(self, room_id: str, connection_id: str) -> None:
        now = self.clock()
        room = self.registry.get(room_id)
        if room is None:
            self.supervisor.on_disconnect(None, connection_id, now)
            return

        with room.lock:
            player = self.supervisor.on_disconnect(room, connection_id, now)
            if player is None:
                return
            self.emitter.leave(connection_id, room_id)
            if room.phase == Phase.DRAWING and self._all_guessed(room):
                self._complete_round(room, now, all_guessed=True)
            self.supervisor.refresh_roster(room)

    # ---- host actions ----

    def update_settings(self, connection_id: str, room_id: Any, settings: Any) -> RoomSettings:
        code = clean_room_id(room_id)
        updated = self.registry.update_settings(code, settings, connection_id)
        self.emitter.emit(Events.ROOM_SETTINGS_UPDATED, {"settings": updated.to_wire()}, to=code)
        return updated

    def start_game(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        now = self.clock()
        with self.registry.locked(code) as room:
            if connection_id != room.host_connection_id:
                raise AuthorizationError("Not authorized to start the game")
            if room.game_started:
                raise GameStateError("Game already started")

            live = self.directory.member_ids(code)
            if len(live) < self.timings.min_players:
                raise GameStateError(f"Need at least {self.timings.min_players} players to start game")

            room.game_started = True
            room.current_round = 1
            room.round = None
            room.guesses.clear()
            self.directory.reset_points(code)
            self.scheduler.build_order(room, live)

            room.phase = Phase.COUNTDOWN
            self._arm(room, TimerKind.COUNTDOWN, self.timings.countdown_ms, now)
            logger.info("[game-start] room=%s players=%d rounds=%d", code, len(live), room.settings.total_rounds)

            self.emitter.emit(
                Events.GAME_STATE,
                {
                    "gameStarted": True,
                    "countdown": self.timings.countdown_ms // 1000,
                    "currentRound": room.current_round,
                    "totalRounds": room.settings.total_rounds,
                },
                to=code,
            )
            self.supervisor.refresh_roster(room)

    # ---- drawer / guesser actions ----

    def select_word(self, connection_id: str, room_id: Any, word_index: Any) -> None:
        code = clean_room_id(room_id)
        index = parse_word_index(word_index)
        now = self.clock()
        with self.registry.locked(code) as room:
            rnd = room.round
            if rnd is None or room.phase not in (Phase.WORD_PENDING, Phase.DRAWING):
                raise GameStateError("No word to choose right now")
            if connection_id != rnd.drawer_connection_id:
                raise AuthorizationError("Only the drawer can choose the word")
            if rnd.current_word is not None:
                logger.debug("[word-dup] room=%s word already chosen", code)
                return
            if not 0 <= index < len(rnd.word_options):
                raise ValidationError("Invalid word index")
            self._apply_word(room, index, now)

    def guess(self, connection_id: str, room_id: Any, text: Any) -> None:
        code = clean_room_id(room_id)
        guess_text = str(text or "")
        if not guess_text.strip():
            raise ValidationError("Guess cannot be empty")

        now = self.clock()
        with self.registry.locked(code) as room:
            player = self._member(room, connection_id)
            self.directory.touch(connection_id, now)
            rnd = room.round

            in_turn = rnd is not None and room.phase in (Phase.WORD_PENDING, Phase.DRAWING)
            if in_turn and connection_id == rnd.drawer_connection_id:
                self.emitter.emit(Events.GUESS, {"user": "System", "guess": DRAWER_GUESS_NOTICE}, to=connection_id)
                return

            self.emitter.emit(
                Events.GUESS,
                {"user": player.user_name, "guess": guess_text},
                to=code,
                skip=connection_id,
            )

            if room.phase == Phase.DRAWING and rnd.current_word and is_correct_guess(guess_text, rnd.current_word):
                self._register_correct(room, player, now)

    def correct_guess(self, connection_id: str, room_id: Any, word: Any) -> None:
        code = clean_room_id(room_id)
        now = self.clock()
        with self.registry.locked(code) as room:
            player = self._member(room, connection_id)
            rnd = room.round
            if room.phase != Phase.DRAWING or rnd is None or not rnd.current_word:
                logger.debug("[guess-ignored] room=%s no active word", code)
                return
            if connection_id == rnd.drawer_connection_id:
                logger.debug("[guess-ignored] room=%s drawer reported a correct guess", code)
                return
            if not is_correct_guess(str(word or ""), rnd.current_word):
                return
            self._register_correct(room, player, now)

    def timer_complete(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        now = self.clock()
        with self.registry.locked(code) as room:
            self._member(room, connection_id)
            if room.phase != Phase.DRAWING:
                logger.debug("[timer-complete-ignored] room=%s phase=%s", code, room.phase.value)
                return
            ends_at = room.round.round_start_at_ms + room.settings.round_time_seconds * 1000
            if now < ends_at - self.timings.timer_tolerance_ms:
                logger.info("[timer-complete-early] room=%s connection=%s %dms early", code, connection_id, ends_at - now)
                return
            self._complete_round(room, now, time_expired=True)

    # ---- canvas relay ----

    def draw(self, connection_id: str, room_id: Any, action: Any) -> None:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            self._member(room, connection_id)
            if not self._may_draw(room, connection_id):
                logger.debug("[draw-ignored] room=%s connection=%s", code, connection_id)
                return
        self.canvas.relay(code, connection_id, action)

    def clear_canvas(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            self._member(room, connection_id)
            if not self._may_draw(room, connection_id):
                return
        self.canvas.clear(code, sender_id=connection_id)

    # ---- snapshot queries (answered to the requester only) ----

    def drawer_info(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            self._send_drawer_info(room, connection_id)

    def room_users(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            self.supervisor.reassign_host(room)
            self.emitter.emit(Events.ROOM_USERS, self.supervisor.roster(room), to=connection_id)

    def room_settings(self, connection_id: str, room_id: Any) -> None:
        room = self.registry.require(clean_room_id(room_id))
        self.emitter.emit(Events.ROOM_SETTINGS_UPDATED, {"settings": room.settings.to_wire()}, to=connection_id)

    def game_state(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            self.emitter.emit(Events.GAME_STATE, self._game_state(room), to=connection_id)

    def canvas_state(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        self.registry.require(code)
        self.emitter.emit(Events.CANVAS_STATE, {"actions": self.canvas.snapshot(code)}, to=connection_id)

    def word_options(self, connection_id: str, room_id: Any) -> None:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            rnd = room.round
            if rnd is None or connection_id != rnd.drawer_connection_id:
                raise AuthorizationError("Only the drawer can see the word options")
            self.emitter.emit(Events.WORD_OPTIONS, {"wordOptions": list(rnd.word_options)}, to=connection_id)

    def user_info(self, connection_id: str) -> None:
        player = self.directory.get(connection_id)
        self.emitter.emit(
            Events.USER_INFO,
            {
                "userName": player.user_name if player else "Unknown",
                "points": player.points if player else 0,
                "isHost": player.is_host if player else False,
            },
            to=connection_id,
        )

    def room_snapshot(self, room_id: Any) -> dict:
        code = clean_room_id(room_id)
        with self.registry.locked(code) as room:
            state = self._game_state(room)
            state.update(
                {
                    "roomId": room.code,
                    "settings": room.settings.to_wire(),
                    "players": self.supervisor.roster(room),
                }
            )
            return state

    # ---- timers ----

    def tick(self, room_id: str, now: int | None = None) -> bool:
        """Fire due timers and grace expiries for a room. False once the room needs no runner."""
        room = self.registry.get(room_id)
        if room is None:
            return False

        now = self.clock() if now is None else now
        with room.lock:
            while room.timer is not None and room.timer.due_at_ms <= now:
                timer = room.timer
                room.timer = None
                if timer.generation != room.generation:
                    logger.info("[timer-stale] room=%s kind=%s", room_id, timer.kind.value)
                    continue
                try:
                    self._fire(room, timer, now)
                except Exception:
                    logger.exception("[timer-error] room=%s kind=%s", room_id, timer.kind.value)

            if self.supervisor.expire(room_id, now):
                self.supervisor.refresh_roster(room)

        return self.directory.count(room_id) > 0 or bool(self.supervisor.pending(room_id))

    def sweep(self, now: int | None = None) -> list[str]:
        now = self.clock() if now is None else now
        removed = self.registry.sweep(
            now,
            self.timings.room_max_age_ms,
            is_empty=lambda code: self.directory.count(code) == 0,
        )
        for code in removed:
            self.canvas.drop(code)
            self.supervisor.drop_room(code)
        return removed

    def _fire(self, room: Room, timer: RoomTimer, now: int) -> None:
        logger.info("[timer-fire] room=%s kind=%s phase=%s", room.code, timer.kind.value, room.phase.value)
        if timer.kind == TimerKind.COUNTDOWN and room.phase == Phase.COUNTDOWN:
            self._select_drawer(room, now)
        elif timer.kind == TimerKind.SETTLE and room.phase == Phase.DRAWER_SELECTION:
            self._select_drawer(room, now)
        elif timer.kind == TimerKind.WORD_GRACE and room.phase == Phase.WORD_PENDING:
            if room.round is not None and room.round.current_word is None:
                index = self.scheduler.auto_pick(room)
                logger.info("[word-auto] room=%s drawer=%s", room.code, room.round.drawer_name)
                self._apply_word(room, index, now)
        elif timer.kind == TimerKind.ROUND and room.phase == Phase.DRAWING:
            self._complete_round(room, now, time_expired=True)
        elif timer.kind == TimerKind.LEADERBOARD and room.phase == Phase.LEADERBOARD:
            self._advance(room, now)
        else:
            logger.info("[timer-abort] room=%s kind=%s phase mismatch", room.code, timer.kind.value)

    def _arm(self, room: Room, kind: TimerKind, delay_ms: int, now: int) -> None:
        room.timer = RoomTimer(kind=kind, due_at_ms=now + delay_ms, generation=room.generation)

    # ---- transitions ----

    def _select_drawer(self, room: Room, now: int) -> None:
        room.phase = Phase.DRAWER_SELECTION
        rnd = self.scheduler.select_next(room, now)
        if rnd is None:
            logger.warning("[drawer-stall] room=%s no connected players in the rotation", room.code)
            return

        drawer_id = rnd.drawer_connection_id
        self.emitter.emit(
            Events.DRAWER_ASSIGNED,
            {"drawerId": drawer_id, "drawerName": rnd.drawer_name},
            to=room.code,
        )
        self.emitter.emit(
            Events.ASSIGNED_AS_DRAWER,
            {"isDrawing": False, "drawerName": rnd.drawer_name},
            to=room.code,
            skip=drawer_id,
        )
        self.emitter.emit(
            Events.ASSIGNED_AS_DRAWER,
            {"isDrawing": True, "wordOptions": list(rnd.word_options), "drawerName": rnd.drawer_name},
            to=drawer_id,
        )
        self.canvas.clear(room.code)
        room.phase = Phase.WORD_PENDING

    def _resume_stalled_selection(self, room: Room, now: int) -> None:
        if not room.game_started or room.phase != Phase.DRAWER_SELECTION:
            return
        if room.timer is not None or room.round is not None:
            return
        if not room.order.order:
            self.scheduler.build_order(room, self.directory.member_ids(room.code))
        logger.info("[drawer-resume] room=%s", room.code)
        self._select_drawer(room, now)

    def _apply_word(self, room: Room, index: int, now: int) -> None:
        rnd = room.round
        word = rnd.word_options[index]
        rnd.current_word = word
        rnd.word_selected_at_ms = now
        rnd.round_start_at_ms = now
        room.timer = None

        self.canvas.clear(room.code)
        drawer_id = rnd.drawer_connection_id
        self.emitter.emit(Events.WORD_SELECTED, {"word": word}, to=drawer_id)
        self.emitter.emit(
            Events.WORD_SELECTED,
            {"length": len(word), "hint": mask_word(word)},
            to=room.code,
            skip=drawer_id,
        )
        self.emitter.emit(
            Events.GAME_STATE,
            {"wordSelected": True, "currentDrawer": rnd.drawer_name},
            to=room.code,
        )

        room.phase = Phase.DRAWING
        self._arm(
            room,
            TimerKind.ROUND,
            room.settings.round_time_seconds * 1000 + self.timings.overtime_ms,
            now,
        )
        logger.info("[word] room=%s drawer=%s chose option %d", room.code, rnd.drawer_name, index)

    def _register_correct(self, room: Room, player: Player, now: int) -> None:
        rnd = room.round
        cid = player.connection_id
        if cid == rnd.drawer_connection_id:
            return
        if cid in room.guesses:
            logger.debug("[guess-dup] room=%s user=%s already guessed", room.code, player.user_name)
            return

        room.guesses[cid] = now
        points = guesser_score(rnd.round_start_at_ms or now, now, room.settings.round_time_seconds)
        self.directory.award(cid, player.user_id, points)
        all_guessed = self._all_guessed(room)
        logger.info("[guess-correct] room=%s user=%s points=%d", room.code, player.user_name, points)

        self.emitter.emit(
            Events.PLAYER_GUESSED_CORRECTLY,
            {"user": player.user_name, "points": points, "allGuessedCorrectly": all_guessed},
            to=room.code,
        )
        self.supervisor.refresh_roster(room)

        if all_guessed:
            self._complete_round(room, now, all_guessed=True)

    def _all_guessed(self, room: Room) -> bool:
        if room.round is None:
            return False
        drawer_id = room.round.drawer_connection_id
        guessers = [cid for cid in self.directory.member_ids(room.code) if cid != drawer_id]
        return bool(guessers) and all(cid in room.guesses for cid in guessers)

    def _complete_round(
        self, room: Room, now: int, all_guessed: bool = False, time_expired: bool = False
    ) -> None:
        if room.phase != Phase.DRAWING or room.round is None:
            return
        rnd = room.round
        room.phase = Phase.ROUND_COMPLETE
        room.timer = None

        self._score_drawer(room)

        payload: dict[str, Any] = {"word": rnd.current_word, "autoCompleted": True}
        if all_guessed:
            payload["allGuessedCorrectly"] = True
        if time_expired:
            payload["timeExpired"] = True
        self.emitter.emit(Events.ROUND_COMPLETE, payload, to=room.code)
        logger.info("[round-complete] room=%s word=%s all_guessed=%s", room.code, rnd.current_word, all_guessed)

        self.supervisor.refresh_roster(room)
        self.emitter.emit(
            Events.SHOW_ROUND_LEADERBOARD,
            {"leaderboard": self.directory.leaderboard(room.code), "duration": self.timings.leaderboard_ms},
            to=room.code,
        )
        room.phase = Phase.LEADERBOARD
        self._arm(room, TimerKind.LEADERBOARD, self.timings.leaderboard_ms, now)

    def _score_drawer(self, room: Room) -> int:
        rnd = room.round
        correct = len(room.guesses)
        if correct == 0 or rnd.round_start_at_ms is None:
            return 0

        live = self.directory.member_ids(room.code)
        guessers = {cid for cid in live if cid != rnd.drawer_connection_id} | set(room.guesses)
        total_ms = sum(ts - rnd.round_start_at_ms for ts in room.guesses.values())
        avg_seconds = total_ms / correct / 1000
        points = drawer_score(correct, len(guessers), avg_seconds, room.settings.round_time_seconds)

        if self.directory.award(rnd.drawer_connection_id, rnd.drawer_user_id, points) is None:
            return 0
        self.emitter.emit(
            Events.DRAWER_EARNED_POINTS,
            {"user": rnd.drawer_name, "points": points},
            to=room.code,
        )
        return points

    def _advance(self, room: Room, now: int) -> None:
        room.guesses.clear()
        game_over = self.scheduler.advance(room)
        room.round = None

        if game_over:
            self._finish_game(room)
            return

        self.canvas.clear(room.code)
        round_info = {"currentRound": room.current_round, "totalRounds": room.settings.total_rounds}
        self.emitter.emit(Events.GAME_STATE, {"gameStarted": True, **round_info}, to=room.code)
        self.emitter.emit(Events.ROUND_CHANGED, round_info, to=room.code)

        room.phase = Phase.DRAWER_SELECTION
        self._arm(room, TimerKind.SETTLE, self.timings.settle_ms, now)

    def _finish_game(self, room: Room) -> None:
        room.game_started = False
        room.current_round = 0
        room.phase = Phase.GAME_OVER
        room.timer = None
        room.order.order = []
        room.order.current_drawer_index = 0

        results = self.directory.leaderboard(room.code)
        logger.info("[game-over] room=%s results=%s", room.code, results)
        self.emitter.emit(
            Events.GAME_STATE,
            {"gameStarted": False, "isGameOver": True, "gameResults": results},
            to=room.code,
        )

    # ---- helpers ----

    def _member(self, room: Room, connection_id: str) -> Player:
        player = self.directory.get(connection_id)
        if player is None or player.room_id != room.code:
            raise AuthorizationError("Not a member of this room")
        return player

    def _may_draw(self, room: Room, connection_id: str) -> bool:
        if not room.game_started:
            return True
        rnd = room.round
        return room.phase == Phase.DRAWING and rnd is not None and rnd.drawer_connection_id == connection_id

    def _game_state(self, room: Room) -> dict:
        rnd = room.round
        return {
            "gameStarted": room.game_started,
            "currentRound": room.current_round,
            "totalRounds": room.settings.total_rounds,
            "phase": room.phase.value,
            "wordSelected": bool(rnd and rnd.current_word),
            "currentDrawer": rnd.drawer_name if rnd else None,
        }

    def _send_drawer_info(self, room: Room, connection_id: str) -> None:
        rnd = room.round
        if rnd is None:
            self.emitter.emit(
                Events.DRAWER_INFO,
                {"isCurrentDrawer": False, "drawerName": None, "wordSelected": False},
                to=connection_id,
            )
            return

        word_selected = rnd.current_word is not None
        if connection_id != rnd.drawer_connection_id:
            self.emitter.emit(
                Events.DRAWER_INFO,
                {
                    "isCurrentDrawer": False,
                    "drawerName": rnd.drawer_name,
                    "drawerId": rnd.drawer_connection_id,
                    "wordSelected": word_selected,
                    "wordLength": len(rnd.current_word) if word_selected else None,
                },
                to=connection_id,
            )
            return

        info: dict[str, Any] = {
            "isCurrentDrawer": True,
            "drawerName": rnd.drawer_name,
            "drawerId": rnd.drawer_connection_id,
            "wordSelected": word_selected,
        }
        if word_selected:
            info["word"] = rnd.current_word
        else:
            info["wordOptions"] = list(rnd.word_options)
        self.emitter.emit(Events.DRAWER_INFO, info, to=connection_id)

        if not word_selected:
            self.emitter.emit(
                Events.ASSIGNED_AS_DRAWER,
                {"isDrawing": True, "wordOptions": list(rnd.word_options), "drawerName": rnd.drawer_name},
                to=connection_id,
            )


def _clean_avatar(avatar: Any) -> str:
    return str(avatar or "").strip()[:MAX_AVATAR_LENGTH]
