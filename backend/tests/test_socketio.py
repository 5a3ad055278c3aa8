def _payloads(client, name):
    return [msg["args"][0] if msg["args"] else None for msg in client.get_received() if msg["name"] == name]


def _create(client, user="Alice", user_id="a", settings=None):
    ack = client.emit("createRoom", {"user": user, "userId": user_id, "settings": settings}, callback=True)
    assert ack["ok"] is True
    return ack["roomId"]


def test_connect_sends_sid(sio_factory):
    client = sio_factory()
    (payload,) = _payloads(client, "sid")
    assert payload["sid"]


def test_create_and_join(sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = _create(host)

    ack = guest.emit("joinRoom", {"roomId": code.lower(), "user": "Bob", "userId": "b"}, callback=True)
    assert ack == {"ok": True, "roomId": code}

    joined = _payloads(guest, "roomJoined")[-1]
    assert joined["roomId"] == code
    assert joined["isHost"] is False
    roster = _payloads(host, "roomUsers")[-1]
    assert [u["userName"] for u in roster] == ["Alice", "Bob"]


def test_join_unknown_room(sio_factory):
    client = sio_factory()
    ack = client.emit("joinRoom", {"roomId": "ZZZZZZ", "user": "Bob"}, callback=True)

    assert ack == {"ok": False, "error": "room_not_found"}
    assert _payloads(client, "joinError") == [{"error": "Room does not exist"}]


def test_missing_user_name(sio_factory):
    client = sio_factory()
    ack = client.emit("createRoom", {}, callback=True)

    assert ack["ok"] is False
    assert _payloads(client, "joinError") == [{"error": "Username is required"}]


def test_only_host_starts_game(sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = _create(host)
    guest.emit("joinRoom", {"roomId": code, "user": "Bob", "userId": "b"}, callback=True)
    guest.get_received()

    ack = guest.emit("startGame", {"roomId": code}, callback=True)
    assert ack == {"ok": False, "error": "not_authorized"}
    assert _payloads(guest, "gameError") == [{"error": "Not authorized to start the game"}]

    host.get_received()
    assert host.emit("startGame", {"roomId": code}, callback=True) == {"ok": True}
    state = _payloads(host, "gameState")[-1]
    assert state["gameStarted"] is True
    assert state["countdown"] == 5


def test_settings_update_errors_go_to_settings_error(sio_factory):
    host = sio_factory()
    code = _create(host)
    host.get_received()

    ack = host.emit("updateRoomSettings", {"roomId": code, "settings": {"rounds": 99}}, callback=True)
    assert ack == {"ok": False, "error": "invalid_payload"}
    assert len(_payloads(host, "settingsError")) == 1

    host.emit("updateRoomSettings", {"roomId": code, "settings": {"rounds": 4}}, callback=True)
    assert _payloads(host, "roomSettingsUpdated")[-1]["settings"]["rounds"] == 4


def test_drawing_relay_and_canvas_state(sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = _create(host)
    guest.emit("joinRoom", {"roomId": code, "user": "Bob", "userId": "b"}, callback=True)
    guest.get_received()

    host.emit("draw", {"roomId": code, "x": 1, "y": 2})
    assert _payloads(guest, "draw") == [{"roomId": code, "x": 1, "y": 2}]
    assert _payloads(host, "draw") == []

    guest.emit("requestCanvasState", {"roomId": code})
    assert _payloads(guest, "canvasState") == [{"actions": [{"roomId": code, "x": 1, "y": 2}]}]


def test_disconnect_updates_roster(sio_factory):
    host = sio_factory()
    guest = sio_factory()
    code = _create(host)
    guest.emit("joinRoom", {"roomId": code, "user": "Bob", "userId": "b"}, callback=True)
    host.get_received()

    guest.disconnect()

    roster = _payloads(host, "roomUsers")[-1]
    assert [u["userName"] for u in roster] == ["Alice"]


def test_get_user(sio_factory):
    client = sio_factory()
    _create(client)
    client.get_received()

    client.emit("getUser", {})
    assert _payloads(client, "getUserInfo") == [{"userName": "Alice", "points": 0, "isHost": True}]
