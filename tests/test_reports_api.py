"""Tests for the /api/reports endpoints."""
import io

import pytest

from app.laporfik.credentials import register_identity
from app.laporfik.db import session_scope
from app.laporfik.models import Role
from app.laporfik.repository import IdentityRepository
from app.laporfik.storage import LocalStorage, StorageError

from conftest import TEST_HASH_METHOD, bearer


def _token(client, login_key, password="rahasia123"):
    r = client.post("/api/auth/login", json={"login_key": login_key, "password": password})
    assert r.status_code == 200, r.json
    return r.json["token"]


@pytest.fixture()
def tokens(app, client):
    with session_scope(app) as s:
        repo = IdentityRepository(s)
        register_identity(repo, "2110511001", "rahasia123", "Andi", method=TEST_HASH_METHOD)
        register_identity(repo, "admin01", "rahasia123", "Bu Admin", role=Role.ADMIN, method=TEST_HASH_METHOD)
        register_identity(repo, "2110511003", "rahasia123", "Citra", method=TEST_HASH_METHOD)
    return {
        "a": bearer(_token(client, "2110511001")),
        "b": bearer(_token(client, "admin01")),
        "c": bearer(_token(client, "2110511003")),
    }


def _create(client, headers, **fields):
    data = {"category": "Listrik", "title": "Lampu mati", "details": "Lampu koridor mati"}
    data.update(fields)
    return client.post("/api/reports", headers=headers, data=data, content_type="multipart/form-data")


def test_requires_token(client):
    r = client.get("/api/reports/my-reports")
    assert r.status_code == 401
    assert r.json["error"] == "TokenMissing"


def test_full_lifecycle_over_http(client, tokens):
    r = _create(client, tokens["a"])
    assert r.status_code == 201
    report = r.json["report"]
    assert report["status"] == "pending"
    rid = report["id"]

    r = client.patch(f"/api/reports/{rid}/status", headers=tokens["b"], json={"status": "in_progress"})
    assert r.status_code == 200
    assert r.json["report"]["status"] == "in_progress"

    r = client.post(f"/api/reports/{rid}/messages", headers=tokens["a"], json={"message": "Kapan diperbaiki?"})
    assert r.status_code == 201
    assert r.json["reportMessage"]["is_admin_authored"] is False

    r = client.patch(f"/api/reports/{rid}/resolve", headers=tokens["c"])
    assert r.status_code == 403
    assert r.json["error"] == "Forbidden"

    r = client.patch(f"/api/reports/{rid}/resolve", headers=tokens["a"])
    assert r.status_code == 200
    assert r.json["data"]["status"] == "resolved"

    r = client.get(f"/api/reports/{rid}", headers=tokens["a"])
    assert r.json["report"]["status"] == "resolved"
    assert r.json["report"]["owner_name"] == "Andi"


def test_create_with_images(client, tokens):
    r = _create(
        client,
        tokens["a"],
        images=[
            (io.BytesIO(b"jpeg-1"), "lampu.jpg", "image/jpeg"),
            (io.BytesIO(b"png-2"), "koridor.png", "image/png"),
        ],
    )
    assert r.status_code == 201
    images = r.json["report"]["images"]
    assert len(images) == 2
    served = client.get(images[0][images[0].index("/uploads/"):])
    assert served.status_code == 200
    assert served.data == b"jpeg-1"


def test_create_rejects_too_many_images(client, tokens):
    files = [(io.BytesIO(b"x"), f"{i}.jpg", "image/jpeg") for i in range(6)]
    r = _create(client, tokens["a"], images=files)
    assert r.status_code == 400
    assert r.json["error"] == "ValidationError"


def test_create_rejects_non_image(client, tokens):
    r = _create(client, tokens["a"], images=[(io.BytesIO(b"MZ"), "virus.exe", "application/octet-stream")])
    assert r.status_code == 400


def test_create_accepts_indonesian_field_names(client, tokens):
    r = client.post(
        "/api/reports",
        headers=tokens["a"],
        json={"kategori": "Air", "judul": "Keran bocor", "rincian": "Toilet lantai 2"},
    )
    assert r.status_code == 201
    assert r.json["report"]["category"] == "Air"


def test_create_missing_fields(client, tokens):
    r = _create(client, tokens["a"], title="")
    assert r.status_code == 400
    assert r.json["error"] == "ValidationError"


def _stored_files(root):
    root = root / "storage"
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


def test_rejected_create_leaves_no_uploads(client, tokens, tmp_path):
    r = _create(client, tokens["a"], title="", images=[(io.BytesIO(b"jpeg-1"), "lampu.jpg", "image/jpeg")])
    assert r.status_code == 400
    assert r.json["error"] == "ValidationError"
    assert _stored_files(tmp_path) == []


def test_failed_upload_rolls_back_report(client, tokens, tmp_path, monkeypatch):
    real_put = LocalStorage.put_bytes
    calls = []

    def flaky_put(self, key, data, *, content_type=None):
        calls.append(key)
        if len(calls) == 2:
            raise StorageError("disk full")
        real_put(self, key, data, content_type=content_type)

    monkeypatch.setattr(LocalStorage, "put_bytes", flaky_put)
    r = _create(
        client,
        tokens["a"],
        images=[
            (io.BytesIO(b"jpeg-1"), "lampu.jpg", "image/jpeg"),
            (io.BytesIO(b"png-2"), "koridor.png", "image/png"),
        ],
    )
    assert r.status_code == 500
    assert r.json["error"] == "StorageFailure"
    assert _stored_files(tmp_path) == []
    assert client.get("/api/reports/my-reports", headers=tokens["a"]).json["reports"] == []


def test_not_found_before_forbidden(client, tokens):
    r = client.get("/api/reports/9999", headers=tokens["c"])
    assert r.status_code == 404
    assert r.json["error"] == "NotFound"

    rid = _create(client, tokens["a"]).json["report"]["id"]
    r = client.get(f"/api/reports/{rid}", headers=tokens["c"])
    assert r.status_code == 403
    assert r.json["error"] == "AccessDenied"


def test_member_cannot_change_status(client, tokens):
    rid = _create(client, tokens["a"]).json["report"]["id"]
    r = client.patch(f"/api/reports/{rid}/status", headers=tokens["a"], json={"status": "resolved"})
    assert r.status_code == 403
    r = client.patch(f"/api/reports/{rid}/feedback", headers=tokens["a"], json={"feedback": "beres"})
    assert r.status_code == 403


def test_invalid_status(client, tokens):
    rid = _create(client, tokens["a"]).json["report"]["id"]
    r = client.patch(f"/api/reports/{rid}/status", headers=tokens["b"], json={"status": "done"})
    assert r.status_code == 400
    assert r.json["error"] == "InvalidStatus"


def test_non_text_status_is_invalid_status(client, tokens):
    rid = _create(client, tokens["a"]).json["report"]["id"]
    for status in (5, "", None):
        r = client.patch(f"/api/reports/{rid}/status", headers=tokens["b"], json={"status": status})
        assert r.status_code == 400
        assert r.json["error"] == "InvalidStatus"
    assert client.get(f"/api/reports/{rid}", headers=tokens["a"]).json["report"]["status"] == "pending"


def test_non_text_message_rejected(client, tokens):
    rid = _create(client, tokens["a"]).json["report"]["id"]
    r = client.post(f"/api/reports/{rid}/messages", headers=tokens["a"], json={"message": 42})
    assert r.status_code == 400
    assert r.json["error"] == "ValidationError"


def test_strict_transitions_via_config(app, client, tokens):
    app.config["STRICT_STATUS_TRANSITIONS"] = True
    rid = _create(client, tokens["a"]).json["report"]["id"]
    assert client.patch(f"/api/reports/{rid}/status", headers=tokens["b"], json={"status": "rejected"}).status_code == 200
    r = client.patch(f"/api/reports/{rid}/status", headers=tokens["b"], json={"status": "pending"})
    assert r.status_code == 400
    assert r.json["error"] == "InvalidStatus"


def test_feedback(client, tokens):
    rid = _create(client, tokens["a"]).json["report"]["id"]
    r = client.patch(f"/api/reports/{rid}/feedback", headers=tokens["b"], json={"feedback": "Teknisi dijadwalkan"})
    assert r.status_code == 200
    assert r.json["data"]["admin_feedback"] == "Teknisi dijadwalkan"
    assert r.json["data"]["status"] == "pending"


def test_messages_thread(client, tokens):
    rid = _create(client, tokens["a"]).json["report"]["id"]
    client.post(f"/api/reports/{rid}/messages", headers=tokens["a"], json={"message": "Halo"})
    client.post(f"/api/reports/{rid}/messages", headers=tokens["b"], json={"message": "Siap"})

    r = client.get(f"/api/reports/{rid}/messages", headers=tokens["a"])
    assert r.status_code == 200
    thread = r.json["messages"]
    assert [m["body"] for m in thread] == ["Halo", "Siap"]
    assert [m["is_admin_authored"] for m in thread] == [False, True]
    assert thread[1]["author_name"] == "Bu Admin"

    assert client.get(f"/api/reports/{rid}/messages", headers=tokens["c"]).status_code == 403
    r = client.post(f"/api/reports/{rid}/messages", headers=tokens["a"], json={"message": ""})
    assert r.status_code == 400


def test_listing(client, tokens):
    _create(client, tokens["a"], category="Listrik")
    _create(client, tokens["a"], category="Air")
    _create(client, tokens["c"], category="Listrik")

    r = client.get("/api/reports/my-reports", headers=tokens["a"])
    assert r.status_code == 200
    assert r.json["pagination"]["totalCount"] == 2

    r = client.get("/api/reports?category=Listrik&limit=1", headers=tokens["b"])
    assert r.status_code == 200
    assert len(r.json["reports"]) == 1
    assert r.json["pagination"] == {"currentPage": 1, "totalPages": 2, "totalCount": 2, "limit": 1}

    r = client.get("/api/reports", headers=tokens["a"])
    assert r.status_code == 403

    r = client.get("/api/reports?status=done", headers=tokens["b"])
    assert r.status_code == 400
