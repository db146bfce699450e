import pytest

from app.laporfik import create_app
from app.laporfik import auth as auth_module
from app.laporfik.credentials import register_identity
from app.laporfik.db import create_schema, session_scope
from app.laporfik.models import Role
from app.laporfik.repository import IdentityRepository
from app.laporfik.tokens import TokenClaims

# Cheap KDF so the suite doesn't spend seconds per hash.
TEST_HASH_METHOD = "pbkdf2:sha256:1000"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", TEST_HASH_METHOD)
    for k in (
        "S3_ENDPOINT",
        "S3_REGION",
        "S3_BUCKET",
        "S3_ACCESS_KEY_ID",
        "S3_SECRET_ACCESS_KEY",
        "PUBLIC_BASE_URL",
        "STRICT_STATUS_TRANSITIONS",
        "DEBUG_ERRORS",
    ):
        monkeypatch.delenv(k, raising=False)
    # Local storage writes under cwd/storage.
    monkeypatch.chdir(tmp_path)
    auth_module._login_attempts.clear()

    app = create_app()
    create_schema(app)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def make_identity(app, login_key, password="rahasia123", name=None, role=Role.USER) -> TokenClaims:
    """Register an identity directly through the credential store and return it as an actor."""
    with session_scope(app) as s:
        user = register_identity(
            IdentityRepository(s),
            login_key,
            password,
            name or f"User {login_key}",
            role=role,
            method=TEST_HASH_METHOD,
        )
        return TokenClaims(id=user.id, role=user.role, login_key=user.login_key)


@pytest.fixture()
def users(app):
    """Owner A, admin B, and an unrelated member C."""
    return {
        "a": make_identity(app, "2110511001", name="Andi"),
        "b": make_identity(app, "admin01", name="Bu Admin", role=Role.ADMIN),
        "c": make_identity(app, "2110511003", name="Citra"),
    }


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
