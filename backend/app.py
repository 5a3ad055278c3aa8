import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default) == "1"


def _wants_eventlet() -> bool:
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return False
    return os.environ.get("SOCKETIO_ASYNC_MODE", "").strip() in ("", "eventlet")


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if _wants_eventlet():
        import eventlet

        eventlet.monkey_patch()

    try:
        from backend.scribble.server import create_app
    except ImportError:  # pragma: no cover
        from scribble.server import create_app

    app, socketio = create_app()
    socketio.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
        debug=_env_flag("FLASK_DEBUG", "1"),
        allow_unsafe_werkzeug=_env_flag("ALLOW_UNSAFE_WERKZEUG", "1"),
        use_reloader=_env_flag("FLASK_USE_RELOADER", "0"),
    )


if __name__ == "__main__":
    main()
