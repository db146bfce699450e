"""Tests for the credential store and verifier."""
import pytest
from werkzeug.security import check_password_hash

from app.laporfik.credentials import (
    DEFAULT_MAJOR,
    get_public_profile,
    register_identity,
    update_profile,
    verify_credentials,
)
from app.laporfik.db import session_scope
from app.laporfik.errors import DuplicateIdentity, InvalidCredential, NotFound, ValidationError, WeakCredential
from app.laporfik.models import AuditEvent, Role, User
from app.laporfik.repository import IdentityRepository

from conftest import TEST_HASH_METHOD


def _register(app, login_key="2110511001", password="rahasia123", name="Andi", **kwargs):
    with session_scope(app) as s:
        return register_identity(IdentityRepository(s), login_key, password, name, method=TEST_HASH_METHOD, **kwargs)


def _verify(app, login_key, password):
    with session_scope(app) as s:
        return verify_credentials(IdentityRepository(s), login_key, password, method=TEST_HASH_METHOD)


class TestRegister:
    def test_defaults(self, app):
        user = _register(app)
        assert user.role is Role.USER
        assert user.major == DEFAULT_MAJOR
        assert user.email is None

    def test_password_is_hashed(self, app):
        _register(app, password="rahasia123")
        with session_scope(app) as s:
            user = IdentityRepository(s).find_identity_by_login_key("2110511001")
            assert user.password_hash != "rahasia123"
            assert "rahasia123" not in user.password_hash
            assert check_password_hash(user.password_hash, "rahasia123")

    def test_duplicate_login_key(self, app):
        _register(app)
        with pytest.raises(DuplicateIdentity):
            _register(app, name="Someone Else")

    def test_minimum_length_is_six(self, app):
        with pytest.raises(WeakCredential):
            _register(app, password="12345")
        user = _register(app, password="123456")
        assert user.id is not None

    def test_missing_fields(self, app):
        with pytest.raises(ValidationError):
            _register(app, login_key="   ")
        with pytest.raises(ValidationError):
            _register(app, name="")
        with pytest.raises(ValidationError):
            _register(app, login_key=123)

    def test_empty_password_is_weak(self, app):
        with pytest.raises(WeakCredential):
            _register(app, password="")
        with pytest.raises(WeakCredential):
            _register(app, password=None)

    def test_audited(self, app):
        user = _register(app)
        with session_scope(app) as s:
            ev = s.query(AuditEvent).filter_by(action="auth.register").one()
            assert ev.entity_id == str(user.id)
            assert ev.actor_login_key == "2110511001"
            assert "rahasia123" not in (ev.metadata_json or "")


class TestVerify:
    def test_exact_password_only(self, app):
        created = _register(app, password="rahasia123")
        assert _verify(app, "2110511001", "rahasia123").id == created.id
        for wrong in ("rahasia12", "Rahasia123", "rahasia123 ", ""):
            with pytest.raises(InvalidCredential):
                _verify(app, "2110511001", wrong)

    def test_unknown_and_wrong_password_look_the_same(self, app):
        _register(app)
        with pytest.raises(InvalidCredential) as unknown:
            _verify(app, "9999999999", "rahasia123")
        with pytest.raises(InvalidCredential) as wrong:
            _verify(app, "2110511001", "salah-sandi")
        assert unknown.value.detail == wrong.value.detail
        assert unknown.value.http_status == wrong.value.http_status == 401


class TestProfile:
    def test_update_profile(self, app):
        user = _register(app)
        with session_scope(app) as s:
            updated = update_profile(
                IdentityRepository(s),
                user.id,
                display_name="Andi Pratama",
                major="Sistem Informasi",
                email="andi@example.com",
            )
            assert updated.display_name == "Andi Pratama"
        with session_scope(app) as s:
            stored = s.get(User, user.id)
            assert stored.major == "Sistem Informasi"
            assert stored.email == "andi@example.com"

    def test_update_profile_requires_name(self, app):
        user = _register(app)
        with pytest.raises(ValidationError):
            with session_scope(app) as s:
                update_profile(IdentityRepository(s), user.id, display_name="  ")

    def test_public_profile(self, app):
        _register(app)
        with session_scope(app) as s:
            assert get_public_profile(IdentityRepository(s), "2110511001").display_name == "Andi"
            with pytest.raises(NotFound):
                get_public_profile(IdentityRepository(s), "nope")
