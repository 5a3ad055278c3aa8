import random

import pytest

from scribble.game.canvas import CanvasRelay
from scribble.game.directory import PlayerDirectory
from scribble.game.models import Room, RoomSettings, TimerKind
from scribble.game.scheduler import DrawTurnScheduler
from scribble.game.words import load_words, mask_word, pick_words


@pytest.fixture()
def directory():
    d = PlayerDirectory()
    for i in range(1, 4):
        d.register(f"c{i}", "ROOM01", f"u{i}", f"Player{i}")
    return d


@pytest.fixture()
def scheduler(directory):
    return DrawTurnScheduler(directory, words=["apple", "pear", "plum", "kiwi", "fig"], rng=random.Random(3))


def _room(total_rounds=2):
    return Room(code="ROOM01", host_connection_id="c1", settings=RoomSettings(total_rounds=total_rounds))


def test_sample_word_options_are_distinct(scheduler):
    options = scheduler.sample_word_options(3)
    assert len(options) == 3
    assert len(set(options)) == 3
    assert set(options) <= set(scheduler.words)


def test_sample_more_than_corpus_returns_whole_corpus(scheduler):
    assert sorted(scheduler.sample_word_options(50)) == sorted(scheduler.words)


def test_pick_words_does_not_mutate_input():
    words = ["a", "b", "c"]
    pick_words(words, 2, random.Random(1))
    assert words == ["a", "b", "c"]


def test_select_next_builds_round_and_arms_grace_timer(scheduler):
    room = _room()
    scheduler.build_order(room, ["c1", "c2", "c3"])
    rnd = scheduler.select_next(room, now_ms=1000)

    assert rnd.drawer_connection_id == room.order.order[0]
    assert rnd.current_word is None
    assert len(rnd.word_options) == room.settings.word_option_count
    assert rnd.generation == room.generation == 1
    assert room.timer.kind == TimerKind.WORD_GRACE
    assert room.timer.due_at_ms == 1000 + scheduler.word_grace_ms


def test_select_next_prunes_departed_drawer(scheduler, directory):
    room = _room()
    room.order.order = ["c2", "c1", "c3"]
    directory.remove("c2")

    rnd = scheduler.select_next(room, now_ms=0)

    assert rnd.drawer_connection_id == "c1"
    assert room.order.order == ["c1", "c3"]


def test_select_next_stalls_when_nobody_is_left(scheduler, directory):
    room = _room()
    room.order.order = ["c1", "c2"]
    directory.remove("c1")
    directory.remove("c2")

    assert scheduler.select_next(room, now_ms=0) is None
    assert room.round is None
    assert room.timer is None
    assert room.order.order == []


def test_advance_wraps_and_counts_rounds(scheduler):
    room = _room(total_rounds=2)
    room.current_round = 1
    room.order.order = ["c1", "c2", "c3"]

    assert scheduler.advance(room) is False
    assert (room.order.current_drawer_index, room.current_round) == (1, 1)
    assert scheduler.advance(room) is False
    assert (room.order.current_drawer_index, room.current_round) == (2, 1)
    assert scheduler.advance(room) is False
    assert (room.order.current_drawer_index, room.current_round) == (0, 2)
    scheduler.advance(room)
    scheduler.advance(room)
    assert scheduler.advance(room) is True
    assert room.current_round == 3


def test_advance_skips_departed_players(scheduler, directory):
    room = _room()
    room.current_round = 1
    room.order.order = ["c1", "c2", "c3"]
    directory.remove("c2")

    scheduler.advance(room)

    assert room.order.order == ["c1", "c3"]
    assert room.order.order[room.order.current_drawer_index] == "c3"
    assert room.current_round == 1


def test_auto_pick_only_uses_offered_options(scheduler):
    room = _room()
    room.order.order = ["c1"]
    scheduler.select_next(room, now_ms=0)
    offered = room.round.word_options

    picks = {offered[scheduler.auto_pick(room)] for _ in range(50)}
    assert picks <= set(offered)


def test_replace_connection_moves_turn_guess_and_drawer(scheduler):
    room = _room()
    room.order.order = ["c1", "c2"]
    scheduler.select_next(room, now_ms=0)
    room.guesses["c2"] = 5

    scheduler.replace_connection(room, "c1", "c9")
    scheduler.replace_connection(room, "c2", "c8")

    assert room.order.order == ["c9", "c8"]
    assert room.round.drawer_connection_id == "c9"
    assert room.guesses == {"c8": 5}


def test_mask_word_keeps_spaces():
    assert mask_word("ice cream") == "___ _____"


def test_load_words_from_file(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("# animals\ncat\nDog\ncat\n\n", encoding="utf-8")
    assert load_words(path) == ["cat", "Dog"]
    assert "dragon" in load_words(None)


def test_canvas_backlog_is_capped(emitter):
    relay = CanvasRelay(emitter, limit=3)
    relay.open("ROOM01")
    for i in range(5):
        relay.relay("ROOM01", "c1", {"i": i})

    assert [a["i"] for a in relay.snapshot("ROOM01")] == [2, 3, 4]
    assert all(s.skip == "c1" for s in emitter.events("draw"))

    relay.clear("ROOM01")
    assert relay.snapshot("ROOM01") == []
    assert emitter.events("clearCanvas")
