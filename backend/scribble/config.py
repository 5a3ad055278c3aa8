import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO ("" picks a default in create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    # Room defaults
    DEFAULT_MAX_PLAYERS = int(os.environ.get("DEFAULT_MAX_PLAYERS", "8"))
    DEFAULT_ROUND_TIME_SEC = int(os.environ.get("DEFAULT_ROUND_TIME_SEC", "60"))
    DEFAULT_ROUNDS = int(os.environ.get("DEFAULT_ROUNDS", "3"))
    DEFAULT_WORD_OPTIONS = int(os.environ.get("DEFAULT_WORD_OPTIONS", "3"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))

    # Game timings
    COUNTDOWN_SEC = int(os.environ.get("COUNTDOWN_SEC", "5"))
    WORD_CHOICE_GRACE_SEC = int(os.environ.get("WORD_CHOICE_GRACE_SEC", "5"))
    LEADERBOARD_SEC = int(os.environ.get("LEADERBOARD_SEC", "5"))
    ROUND_SETTLE_MS = int(os.environ.get("ROUND_SETTLE_MS", "1500"))
    # Server-side backstop after the client timer should have fired timerComplete.
    ROUND_OVERTIME_SEC = int(os.environ.get("ROUND_OVERTIME_SEC", "2"))
    # timerComplete arriving earlier than this before the round ends is ignored.
    TIMER_TOLERANCE_MS = int(os.environ.get("TIMER_TOLERANCE_MS", "2000"))

    # Reconnects
    RECONNECT_GRACE_SEC = int(os.environ.get("RECONNECT_GRACE_SEC", "150"))

    # Room housekeeping
    ROOM_MAX_AGE_SEC = int(os.environ.get("ROOM_MAX_AGE_SEC", str(24 * 60 * 60)))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get("ROOM_SWEEP_INTERVAL_SEC", "3600"))
    ROOM_TICK_SEC = float(os.environ.get("ROOM_TICK_SEC", "0.25"))

    # Canvas relay
    CANVAS_BACKLOG_LIMIT = int(os.environ.get("CANVAS_BACKLOG_LIMIT", "1000"))

    # Optional word list, one word per line
    WORDS_FILE = os.environ.get("WORDS_FILE", "")
