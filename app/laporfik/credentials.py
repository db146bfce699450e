"""
Credential store & verifier.

Passwords are hashed with werkzeug's salted, deliberately slow KDF. Raw passwords are
never stored, logged, or echoed in error details.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from app.laporfik.audit import record_event
from app.laporfik.errors import DuplicateIdentity, InvalidCredential, NotFound, ValidationError, WeakCredential
from app.laporfik.models import Role, User
from app.laporfik.repository import IdentityRepository
from app.laporfik.utils import optional_text, text_field

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
DEFAULT_HASH_METHOD = "pbkdf2:sha256:600000"
DEFAULT_MAJOR = "Teknik Informatika"


@lru_cache(maxsize=8)
def _dummy_hash(method: str) -> str:
    # Compared against when the login key is unknown, so both failure paths cost the same.
    return generate_password_hash("laporfik-dummy-password", method=method)


def hash_password(raw_password: str, *, method: str = DEFAULT_HASH_METHOD) -> str:
    return generate_password_hash(raw_password, method=method)


def _password(raw_password: object) -> str:
    if raw_password is None:
        return ""
    if not isinstance(raw_password, str):
        raise ValidationError("Password must be a string")
    return raw_password


def check_password_policy(raw_password: object) -> None:
    # Empty counts as too short.
    if len(_password(raw_password)) < MIN_PASSWORD_LENGTH:
        raise WeakCredential(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def register_identity(
    repo: IdentityRepository,
    login_key: str,
    raw_password: str,
    display_name: str,
    *,
    major: str | None = None,
    email: str | None = None,
    role: Role = Role.USER,
    method: str = DEFAULT_HASH_METHOD,
) -> User:
    login_key = text_field(login_key, "Login key")
    display_name = text_field(display_name, "Name")
    major = text_field(major, "Major") or DEFAULT_MAJOR
    email = optional_text(email, "Email")
    if not login_key or not display_name:
        raise ValidationError("Name, login key, and password are required")
    check_password_policy(raw_password)

    if repo.find_identity_by_login_key(login_key) is not None:
        raise DuplicateIdentity("Login key already exists")

    try:
        user = repo.insert_identity(
            login_key=login_key,
            display_name=display_name,
            password_hash=hash_password(raw_password, method=method),
            role=role,
            major=major,
            email=email,
        )
    except IntegrityError:
        # Lost a race with a concurrent registration for the same key.
        raise DuplicateIdentity("Login key already exists") from None

    record_event(
        repo.session,
        actor=user,
        action="auth.register",
        entity_type="User",
        entity_id=str(user.id),
        metadata={"login_key": user.login_key, "role": user.role.value},
    )
    logger.info("Registered identity id=%s login_key=%s role=%s", user.id, user.login_key, user.role.value)
    return user


def verify_credentials(
    repo: IdentityRepository,
    login_key: str,
    raw_password: str,
    *,
    method: str = DEFAULT_HASH_METHOD,
) -> User:
    login_key = text_field(login_key, "Login key")
    raw_password = _password(raw_password)
    user = repo.find_identity_by_login_key(login_key) if login_key else None
    if user is None:
        check_password_hash(_dummy_hash(method), raw_password)
        raise InvalidCredential("Invalid credentials")
    if not check_password_hash(user.password_hash, raw_password):
        raise InvalidCredential("Invalid credentials")
    return user


def get_identity(repo: IdentityRepository, user_id: int) -> User:
    user = repo.find_identity_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def get_public_profile(repo: IdentityRepository, login_key: str) -> User:
    login_key = text_field(login_key, "Login key", required=True)
    user = repo.find_identity_by_login_key(login_key)
    if user is None:
        raise NotFound("User not found")
    return user


def update_profile(
    repo: IdentityRepository,
    user_id: int,
    *,
    display_name: str,
    major: str | None = None,
    email: str | None = None,
    profile_url: str | None = None,
) -> User:
    display_name = text_field(display_name, "Name", required=True)
    major = text_field(major, "Major") or DEFAULT_MAJOR
    email = optional_text(email, "Email")
    profile_url = optional_text(profile_url, "Profile URL")
    user = get_identity(repo, user_id)
    user = repo.update_profile(user, display_name=display_name, major=major, email=email, profile_url=profile_url)
    record_event(repo.session, actor=user, action="auth.profile_update", entity_type="User", entity_id=str(user.id))
    return user


def set_profile_picture(repo: IdentityRepository, user_id: int, profile_url: str) -> User:
    user = get_identity(repo, user_id)
    return repo.update_profile(
        user,
        display_name=user.display_name,
        major=user.major,
        email=user.email,
        profile_url=profile_url,
    )
