from scribble.game.models import Phase


def test_points_restored_within_grace(manager, emitter, clock, make_room):
    code = make_room(2)
    manager.directory.get("c2").points = 120

    manager.disconnect("c2")
    clock.advance(100_000)
    manager.tick(code)
    player = manager.join_room("c5", code, user="Player2", user_id="u2")

    assert player.points == 120
    (restored,) = emitter.received("c5", "progressRestored")
    assert restored["points"] == 120
    assert manager.supervisor.pending(code) == []


def test_points_lost_after_grace(manager, emitter, clock, make_room):
    code = make_room(2)
    manager.directory.get("c2").points = 120

    manager.disconnect("c2")
    clock.advance(200_000)
    manager.tick(code)
    player = manager.join_room("c5", code, user="Player2", user_id="u2")

    assert player.points == 0
    assert emitter.received("c5", "progressRestored") == []


def test_points_lost_after_grace_without_a_tick(manager, emitter, clock, make_room):
    code = make_room(2)
    manager.directory.get("c2").points = 120

    manager.disconnect("c2")
    clock.advance(200_000)
    player = manager.join_room("c5", code, user="Player2", user_id="u2")

    assert player.points == 0
    assert emitter.received("c5", "progressRestored") == []
    assert manager.directory.saved_progress("u2") is None
    assert manager.supervisor.pending(code) == []


def test_restored_progress_reports_current_host(manager, emitter, make_room):
    code = make_room(2)
    manager.disconnect("c1")
    manager.join_room("c9", code, user="Player1", user_id="u1")

    (restored,) = emitter.received("c9", "progressRestored")
    assert restored["isHost"] is False


def test_progress_is_not_carried_to_another_room(manager, make_room):
    code = make_room(2)
    manager.directory.get("c2").points = 80
    other = manager.create_room("c7", user="Other", user_id="u7")

    manager.disconnect("c2")
    player = manager.join_room("c5", other.code, user="Player2", user_id="u2")

    assert player.points == 0


def test_host_leaving_promotes_single_host(manager, emitter, make_room):
    code = make_room(3)
    manager.disconnect("c1")

    room = manager.registry.get(code)
    assert room.host_connection_id == "c2"
    assert emitter.received("c2", "hostAssigned") == [{"isHost": True}]
    roster = emitter.received("c3", "roomUsers")[-1]
    assert [u["userName"] for u in roster if u["isHost"]] == ["Player2"]


def test_returning_host_does_not_reclaim(manager, emitter, make_room):
    code = make_room(2)
    manager.disconnect("c1")
    manager.join_room("c9", code, user="Player1", user_id="u1")

    room = manager.registry.get(code)
    assert room.host_connection_id == "c2"
    assert emitter.received("c9", "roomJoined")[-1]["isHost"] is False
    roster = emitter.received("c9", "roomUsers")[-1]
    assert sum(1 for u in roster if u["isHost"]) == 1


def test_empty_room_hands_host_to_next_joiner(manager, emitter, make_room):
    code = make_room(1)
    manager.disconnect("c1")
    room = manager.registry.get(code)
    assert room.needs_new_host is True
    assert room.host_connection_id is None

    manager.join_room("c3", code, user="Newcomer", user_id="u3")

    assert room.host_connection_id == "c3"
    assert room.needs_new_host is False
    assert emitter.received("c3", "roomJoined")[-1]["isHost"] is True


def test_drawer_reconnect_keeps_the_turn(manager, emitter, make_room, start_turn):
    code = make_room(3)
    room = start_turn(code)
    drawer = room.round.drawer_connection_id
    profile = manager.directory.get(drawer)
    place = room.order.order.index(drawer)

    manager.disconnect(drawer)
    manager.join_room("c9", code, user=profile.user_name, user_id=profile.user_id)

    assert room.round.drawer_connection_id == "c9"
    assert room.order.order[place] == "c9"
    info = emitter.received("c9", "drawerInfo")[-1]
    assert info["isCurrentDrawer"] is True
    assert info["wordOptions"] == room.round.word_options

    manager.select_word("c9", code, 0)
    assert room.phase == Phase.DRAWING


def test_second_socket_takes_over_live_identity(manager, make_room):
    code = make_room(2)
    manager.directory.get("c2").points = 40

    player = manager.join_room("c7", code, user="Player2", user_id="u2")

    assert manager.directory.get("c2") is None
    assert player.points == 40
    assert manager.directory.count(code) == 2


def test_tick_reports_idle_room_after_grace(manager, clock, make_room):
    code = make_room(1)
    manager.disconnect("c1")
    assert manager.tick(code) is True

    clock.advance(manager.timings.reconnect_grace_ms)
    assert manager.tick(code) is False


def test_rejoin_resumes_stalled_rotation(manager, clock, make_room):
    code = make_room(2)
    manager.start_game("c1", code)
    manager.disconnect("c1")
    manager.disconnect("c2")

    clock.advance(manager.timings.countdown_ms)
    manager.tick(code)
    room = manager.registry.get(code)
    assert room.round is None
    assert room.phase == Phase.DRAWER_SELECTION

    manager.join_room("c3", code, user="Player3", user_id="u3")

    assert room.phase == Phase.WORD_PENDING
    assert room.round.drawer_connection_id == "c3"
