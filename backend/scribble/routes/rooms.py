from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.errors import RoomNotFoundError

bp = Blueprint("rooms", __name__)


@bp.get("/rooms/<code>")
def get_room(code: str):
    manager = current_app.extensions["scribble"]
    try:
        snapshot = manager.room_snapshot(code)
    except RoomNotFoundError:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(snapshot)
