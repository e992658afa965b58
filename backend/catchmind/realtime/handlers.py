from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit

from ..game.errors import JoinRejected
from ..game.session import SessionCoordinator


logger = logging.getLogger(__name__)


def _extract_guess(data):
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return data.get("answer", data.get("guess"))
    return None


def register_socketio_handlers(socketio: SocketIO, coordinator: SessionCoordinator) -> None:
    # Registered once per app; nothing here re-registers on later events.

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.debug("Connected: %s", request.sid)

    @socketio.on("getCode")
    def get_code(data=None):
        coordinator.get_code(request.sid)

    @socketio.on("verifyCode")
    def verify_code(data=None):
        code = data.get("code") if isinstance(data, dict) else data
        coordinator.verify_code(request.sid, code)

    @socketio.on("adminJoin")
    def admin_join(data=None):
        coordinator.admin_join(request.sid)

    @socketio.on("join")
    def join(data=None):
        payload = data if isinstance(data, dict) else {}
        try:
            coordinator.join(
                request.sid,
                nickname=payload.get("nickname"),
                code=payload.get("code"),
                team=payload.get("team"),
                role=payload.get("role"),
            )
        except JoinRejected as exc:
            emit("joinError", exc.reason)

    @socketio.on("startGame")
    def start_game(data=None):
        coordinator.start_game(request.sid)

    @socketio.on("requestStartStatus")
    def request_start_status(data=None):
        coordinator.request_start_status(request.sid)

    @socketio.on("requestPlayerList")
    def request_player_list(data=None):
        coordinator.request_player_list(request.sid)

    @socketio.on("submitAnswer")
    def submit_answer(data=None):
        coordinator.submit_answer(request.sid, _extract_guess(data))

    @socketio.on("gameTimeOver")
    def game_time_over(data=None):
        coordinator.game_time_over(request.sid)

    @socketio.on("resetGame")
    def reset_game(data=None):
        coordinator.reset_game(request.sid)

    @socketio.on("draw")
    def draw(data=None):
        coordinator.relay(request.sid, "draw", data)

    @socketio.on("clearCanvas")
    def clear_canvas(data=None):
        coordinator.relay(request.sid, "clearCanvas", data)

    @socketio.on("disconnect")
    def on_disconnect(*args):
        coordinator.disconnect(request.sid)
