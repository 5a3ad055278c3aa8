from __future__ import annotations

import logging
import sys
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.session import RoomSessionManager
from .realtime.events import SocketIOEmitter
from .realtime.handlers import register_socketio_handlers, start_room_sweeper
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .routes.words import bp as words_bp

logger = logging.getLogger(__name__)

FRONTEND_DIST = Path(__file__).resolve().parents[2] / "frontend" / "dist"


def default_async_mode() -> str:
    # eventlet misbehaves on Windows and on Python 3.13+.
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def _mount_frontend(app: Flask, dist_dir: Path) -> None:
    """Serve the built single-page client, falling back to index.html for client routes."""

    @app.get("/")
    def index():
        return send_from_directory(dist_dir, "index.html")

    @app.get("/<path:path>")
    def static_proxy(path: str):
        candidate = dist_dir / path
        if candidate.is_file():
            return send_from_directory(dist_dir, path)
        return send_from_directory(dist_dir, "index.html")


def create_app(config_class: type = Config) -> tuple[Flask, SocketIO]:
    has_frontend = FRONTEND_DIST.exists()
    app = Flask(
        __name__,
        static_folder=str(FRONTEND_DIST) if has_frontend else None,
        static_url_path="/" if has_frontend else None,
    )
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": origins}})

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE") or default_async_mode()
    socketio = SocketIO(app, cors_allowed_origins=origins, async_mode=async_mode)

    manager = RoomSessionManager.from_config(app.config, SocketIOEmitter(socketio))
    app.extensions["scribble"] = manager

    for bp in (health_bp, rooms_bp, words_bp):
        app.register_blueprint(bp, url_prefix="/api")

    # Tests drive timers by hand through manager.tick().
    run_timers = not app.config.get("TESTING", False)
    register_socketio_handlers(
        socketio,
        manager,
        run_timers=run_timers,
        tick_interval=float(app.config.get("ROOM_TICK_SEC", 0.25)),
    )
    if run_timers:
        start_room_sweeper(socketio, manager, float(app.config.get("ROOM_SWEEP_INTERVAL_SEC", 3600)))

    if has_frontend:
        _mount_frontend(app, FRONTEND_DIST)

    logger.info("[startup] async_mode=%s frontend=%s", async_mode, has_frontend)
    return app, socketio
