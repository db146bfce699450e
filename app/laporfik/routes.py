import mimetypes
from datetime import datetime, timezone

from flask import Blueprint, abort, current_app, send_file

from app.laporfik.storage import LocalStorage, storage_from_config

bp = Blueprint("routes", __name__)


@bp.get("/api/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {
        "success": True,
        "message": "LaporFIK API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/uploads/<path:key>")
def uploads(key: str):
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage) or not storage.exists(key):
        abort(404)
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return send_file(storage.open(key), mimetype=mimetype)
