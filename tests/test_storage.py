"""Tests for upload storage helpers."""
from datetime import date

import pytest

from app.laporfik.storage import (
    LocalStorage,
    S3Storage,
    StorageError,
    build_upload_key,
    discard_uploads,
    is_allowed_image,
    public_url,
    storage_from_config,
)


class TestUploadKey:
    def test_layout(self):
        key = build_upload_key("reports", "foto lampu.JPG", upload_date=date(2026, 3, 4))
        prefix, day, name = key.split("/")
        assert prefix == "reports"
        assert day == "2026-03-04"
        assert name.endswith("-foto_lampu.JPG")

    def test_unique(self):
        d = date(2026, 3, 4)
        assert build_upload_key("reports", "a.jpg", d) != build_upload_key("reports", "a.jpg", d)

    def test_path_components_stripped(self):
        key = build_upload_key("profiles", "../../etc/passwd.png", upload_date=date(2026, 3, 4))
        assert ".." not in key
        assert key.count("/") == 2


@pytest.mark.parametrize(
    "filename,content_type,allowed",
    [
        ("a.jpg", "image/jpeg", True),
        ("a.PNG", "image/png", True),
        ("a.webp", None, True),
        ("a.gif", "application/octet-stream", False),
        ("a.pdf", "application/pdf", False),
        ("noext", "image/png", False),
    ],
)
def test_is_allowed_image(filename, content_type, allowed):
    assert is_allowed_image(filename, content_type) is allowed


def test_local_storage_roundtrip(tmp_path):
    st = LocalStorage(root=tmp_path)
    st.put_bytes("reports/2026-03-04/x.jpg", b"data")
    assert st.exists("reports/2026-03-04/x.jpg")
    with st.open("reports/2026-03-04/x.jpg") as f:
        assert f.read() == b"data"


def test_local_storage_refuses_escape(tmp_path):
    st = LocalStorage(root=tmp_path / "storage")
    with pytest.raises(StorageError):
        st.put_bytes("../outside.txt", b"x")
    assert not st.exists("../outside.txt")


def test_storage_from_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    local = storage_from_config({"STORAGE_BACKEND": "local"})
    assert isinstance(local, LocalStorage)
    assert local.root == tmp_path / "storage"
    s3 = storage_from_config({"STORAGE_BACKEND": "s3", "S3_BUCKET": "laporfik"})
    assert isinstance(s3, S3Storage)
    assert s3.bucket == "laporfik"


def test_public_url():
    assert public_url("http://localhost/", "reports/a.jpg") == "http://localhost/uploads/reports/a.jpg"


def test_discard_uploads_removes_and_tolerates_failures(tmp_path, caplog):
    storage = LocalStorage(root=tmp_path)
    storage.put_bytes("reports/a.jpg", b"a")
    storage.put_bytes("reports/b.jpg", b"b")

    discard_uploads(storage, ["reports/a.jpg", "../outside.jpg", "reports/missing.jpg", "reports/b.jpg"])

    assert not storage.exists("reports/a.jpg")
    assert not storage.exists("reports/b.jpg")
    assert "outside.jpg" in caplog.text
