"""Drawer rotation and word choice for a room.

The rotation is fixed once per game (shuffled at start) and stored on
``room.order``. Dead connections are pruned lazily, when the scheduler
next looks at the order, so a player dropping out never shifts whose
turn it is right now.
"""

from __future__ import annotations

import logging
import random

from .directory import PlayerDirectory
from .models import PlayerOrder, Room, RoomTimer, RoundState, TimerKind
from .words import DEFAULT_WORDS, pick_words

logger = logging.getLogger(__name__)


class DrawTurnScheduler:
    def __init__(
        self,
        directory: PlayerDirectory,
        words: list[str] | None = None,
        rng: random.Random | None = None,
        word_grace_ms: int = 5000,
    ) -> None:
        self.directory = directory
        self.words = list(words or DEFAULT_WORDS)
        self.rng = rng or random.Random()
        self.word_grace_ms = word_grace_ms

    def sample_word_options(self, count: int) -> list[str]:
        return pick_words(self.words, count, self.rng)

    def build_order(self, room: Room, connection_ids: list[str]) -> PlayerOrder:
        order = list(connection_ids)
        self.rng.shuffle(order)
        room.order = PlayerOrder(order=order, current_drawer_index=0)
        logger.info("[order] room=%s order=%s", room.code, order)
        return room.order

    def select_next(self, room: Room, now_ms: int) -> RoundState | None:
        """Pick the drawer at the current index, build a fresh round and arm the word timer.

        Returns None (and leaves the room without a round) when nobody in the
        rotation is still connected.
        """
        live = set(self.directory.member_ids(room.code))
        order = room.order

        drawer_id = None
        while order.order:
            if order.current_drawer_index >= len(order.order):
                order.current_drawer_index = 0
            candidate = order.order[order.current_drawer_index]
            if candidate in live:
                drawer_id = candidate
                break
            logger.warning("[drawer-gone] room=%s connection=%s pruning rotation", room.code, candidate)
            order.order = [cid for cid in order.order if cid in live]

        if drawer_id is None:
            room.round = None
            room.timer = None
            return None

        player = self.directory.get(drawer_id)
        room.generation += 1
        room.round = RoundState(
            generation=room.generation,
            drawer_connection_id=drawer_id,
            drawer_name=player.user_name if player else "Unknown",
            drawer_user_id=player.user_id if player else "",
            word_options=self.sample_word_options(room.settings.word_option_count),
        )
        room.timer = RoomTimer(
            kind=TimerKind.WORD_GRACE,
            due_at_ms=now_ms + self.word_grace_ms,
            generation=room.generation,
        )
        logger.info(
            "[drawer] room=%s drawer=%s (%d of %d) generation=%d",
            room.code,
            room.round.drawer_name,
            order.current_drawer_index + 1,
            len(order.order),
            room.generation,
        )
        return room.round

    def auto_pick(self, room: Room) -> int:
        """Index of a uniformly random word among the options offered this round."""
        if room.round is None or not room.round.word_options:
            raise ValueError("no word options offered")
        return self.rng.randrange(len(room.round.word_options))

    def advance(self, room: Room) -> bool:
        """Move to the next live drawer; bump the round on wrap. True when the game is over."""
        live = set(self.directory.member_ids(room.code))
        order = room.order
        idx = order.current_drawer_index

        before = [cid for cid in order.order[: idx + 1] if cid in live]
        after = [cid for cid in order.order[idx + 1 :] if cid in live]
        if after:
            order.order = before + after
            order.current_drawer_index = len(before)
        else:
            order.order = before
            order.current_drawer_index = 0
            room.current_round += 1

        return room.current_round > room.settings.total_rounds

    def replace_connection(self, room: Room, old_id: str, new_id: str) -> None:
        """Hand a reconnecting player's turn, drawer role and correct guess to their new connection."""
        room.order.order = [new_id if cid == old_id else cid for cid in room.order.order]
        if old_id in room.guesses:
            room.guesses[new_id] = room.guesses.pop(old_id)
        if room.round is not None and room.round.drawer_connection_id == old_id:
            room.round.drawer_connection_id = new_id
