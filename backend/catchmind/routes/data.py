from __future__ import annotations

from flask import Blueprint, abort, current_app, send_from_directory

bp = Blueprint("data", __name__)


@bp.get("/data/<path:path>")
def data_file(path: str):
    data_dir = current_app.config.get("DATA_DIR")
    if not data_dir:
        abort(404)
    # send_from_directory rejects paths escaping data_dir.
    return send_from_directory(data_dir, path)
