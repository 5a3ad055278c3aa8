from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

bp = Blueprint("words", __name__)

MAX_SAMPLE = 10


@bp.get("/words")
def get_words():
    try:
        count = int(request.args.get("count", "3"))
    except ValueError:
        count = 3
    count = max(1, min(count, MAX_SAMPLE))

    manager = current_app.extensions["scribble"]
    return jsonify({"words": manager.scheduler.sample_word_options(count)})
