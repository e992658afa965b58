from __future__ import annotations

import logging
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.models import Question
from .game.questions import load_questions
from .game.session import SessionCoordinator, SessionSettings
from .realtime.handlers import register_socketio_handlers
from .realtime.transport import SocketIOBroadcaster, SocketIOScheduler
from .routes.data import bp as data_bp
from .routes.health import bp as health_bp


logger = logging.getLogger(__name__)


def _pick_async_mode(configured: str) -> str:
    if configured:
        return configured
    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class=Config, questions: list[Question] | None = None) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)
    logging.getLogger("catchmind").setLevel(str(app.config.get("LOG_LEVEL", "INFO")).upper())

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}, r"/data/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_pick_async_mode(app.config.get("SOCKETIO_ASYNC_MODE", "")),
    )

    # An unusable question bank is a startup error, never a mid-round one.
    if questions is None:
        questions = load_questions(app.config["QUESTIONS_PATH"])

    coordinator = SessionCoordinator(
        questions,
        broadcaster=SocketIOBroadcaster(socketio),
        scheduler=SocketIOScheduler(socketio),
        settings=SessionSettings.from_config(app.config),
    )
    app.extensions["catchmind"] = coordinator

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(data_bp)

    @app.get("/")
    def index():
        return "Catch Mind Server is Running!"

    register_socketio_handlers(socketio, coordinator)
    logger.info("Room ready, code=%s", coordinator.code)

    return app, socketio
