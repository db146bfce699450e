from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import wraps
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request

from app.laporfik.audit import record_event
from app.laporfik import credentials
from app.laporfik.db import db_session
from app.laporfik.errors import LaporError, Outcome, TokenMissing, ValidationError, run_operation
from app.laporfik.repository import IdentityRepository
from app.laporfik.storage import (
    MAX_IMAGE_BYTES,
    build_upload_key,
    discard_uploads,
    is_allowed_image,
    public_url,
    storage_from_config,
)
from app.laporfik.tokens import TokenClaims, TokenService

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def token_service() -> TokenService:
    return current_app.extensions["token_service"]


def identity_repo() -> IdentityRepository:
    return IdentityRepository(db_session())


def _hash_method() -> str:
    return current_app.config.get("PASSWORD_HASH_METHOD") or credentials.DEFAULT_HASH_METHOD


def load_current_identity() -> None:
    """
    Verifies the bearer token once per request and stores the result on g.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_identity = None
    g.auth_error = None
    if request.path.startswith(("/uploads/", "/healthz", "/api/health")):
        return

    header = request.headers.get("Authorization")
    if not header:
        return
    try:
        g.current_identity = token_service().verify_header(header)
    except LaporError as e:
        g.auth_error = e
        current_app.logger.info("Token rejected (%s) request_id=%s", e.error_kind, g.request_id)


def current_identity() -> TokenClaims:
    ident = getattr(g, "current_identity", None)
    if ident is None:
        raise RuntimeError("No current identity")
    return ident


def error_response(err: LaporError):
    return render(Outcome.failure(err))


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if getattr(g, "current_identity", None) is None:
            return error_response(getattr(g, "auth_error", None) or TokenMissing("Access token required"))
        return fn(*args, **kwargs)

    return wrapped


def render(outcome: Outcome, build: Callable[[Any], dict] | None = None, *, message: str | None = None):
    """Serialize a tagged result into the JSON envelope the clients expect."""
    if not outcome.ok:
        body = {"success": False, "error": outcome.error_kind, "message": outcome.detail}
        return jsonify(body), outcome.http_status
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if build is not None:
        body.update(build(outcome.value))
    return jsonify(body), outcome.http_status


def request_payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def debug_errors() -> bool:
    return bool(current_app.config.get("DEBUG_ERRORS"))


@bp.post("/register")
def register():
    data = request_payload()
    s = db_session()

    def _register():
        user = credentials.register_identity(
            IdentityRepository(s),
            data.get("login_key") or data.get("nim") or "",
            data.get("password") or "",
            data.get("name") or data.get("nama") or "",
            major=data.get("major") or data.get("jurusan"),
            email=data.get("email") or data.get("gmail"),
            method=_hash_method(),
        )
        return user, token_service().issue(user)

    outcome = run_operation(_register, session=s, debug=debug_errors(), success_status=201)
    return render(
        outcome,
        lambda v: {"token": v[1], "user": v[0].to_public_dict()},
        message="User registered successfully",
    )


@bp.post("/login")
def login():
    data = request_payload()
    login_key = data.get("login_key") or data.get("nim")
    password = data.get("password")
    ip = request.remote_addr or "unknown"

    if not isinstance(login_key, str) or not isinstance(password, str) or not login_key.strip() or not password:
        return error_response(ValidationError("Login key and password are required"))
    login_key = login_key.strip()

    if _check_rate_limit(ip):
        return jsonify({"success": False, "error": "RateLimited", "message": "Too many login attempts. Please wait 5 minutes."}), 429

    _record_attempt(ip)

    s = db_session()

    def _login():
        user = credentials.verify_credentials(IdentityRepository(s), login_key, password, method=_hash_method())
        record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
        return user

    outcome = run_operation(_login, session=s, debug=debug_errors())
    if outcome.error_kind == "InvalidCredential":
        current_app.logger.info("Login failed login_key=%s request_id=%s", login_key, g.request_id)
        audited = run_operation(
            record_event,
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=login_key,
            reason="Invalid credentials",
            session=s,
            debug=debug_errors(),
        )
        if not audited.ok:
            return render(audited)
    if not outcome.ok:
        return render(outcome)

    user = outcome.value
    _login_attempts[ip].clear()
    token = token_service().issue(user)
    return render(
        outcome,
        lambda u: {"token": token, "role": u.role.value, "user": u.to_public_dict()},
        message="Login successful",
    )


@bp.get("/profile")
@login_required
def profile_get():
    ident = current_identity()
    outcome = run_operation(credentials.get_identity, identity_repo(), ident.id, debug=debug_errors())
    return render(outcome, lambda u: {"user": u.to_public_dict()})


@bp.put("/profile")
@login_required
def profile_put():
    ident = current_identity()
    data = request_payload()
    s = db_session()
    outcome = run_operation(
        credentials.update_profile,
        IdentityRepository(s),
        ident.id,
        display_name=data.get("name") or data.get("nama") or "",
        major=data.get("major") or data.get("jurusan"),
        email=data.get("email") or data.get("gmail"),
        profile_url=data.get("profile_url"),
        session=s,
        debug=debug_errors(),
    )
    return render(outcome, lambda u: {"user": u.to_public_dict()}, message="Profile updated successfully")


@bp.post("/profile/picture")
@login_required
def profile_picture():
    ident = current_identity()
    f = request.files.get("picture") or request.files.get("profile_picture")
    if f is None or not f.filename:
        return error_response(ValidationError("No file uploaded"))
    if not is_allowed_image(f.filename, f.mimetype):
        return error_response(ValidationError("Only image files are allowed"))
    data = f.read()
    if len(data) > MAX_IMAGE_BYTES:
        return error_response(ValidationError("File too large. Maximum size is 5MB."))

    storage = storage_from_config(current_app.config)
    key = build_upload_key("profiles", f.filename)
    url = public_url(current_app.config.get("PUBLIC_BASE_URL") or request.host_url, key)
    s = db_session()

    def _set_picture():
        storage.put_bytes(key, data, content_type=f.mimetype)
        return credentials.set_profile_picture(IdentityRepository(s), ident.id, url)

    outcome = run_operation(_set_picture, session=s, debug=debug_errors())
    if not outcome.ok:
        discard_uploads(storage, [key])
    return render(
        outcome,
        lambda u: {"profile_url": u.profile_url, "user": u.to_public_dict()},
        message="Profile picture uploaded successfully",
    )


@bp.get("/user/profile")
def public_profile():
    login_key = request.args.get("login_key") or request.args.get("nim") or ""
    outcome = run_operation(credentials.get_public_profile, identity_repo(), login_key, debug=debug_errors())
    return render(outcome, lambda u: {"user": u.to_public_dict()})
