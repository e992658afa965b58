from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    coordinator = current_app.extensions["catchmind"]
    snapshot = coordinator.snapshot()
    return jsonify({"ok": True, "phase": snapshot["phase"], "players": snapshot["players"]})
