import pytest

from ledger_service.storage import LocalStorage, discard_files, guess_content_type, normalize_document_url

PNG = b"\x89PNG\r\n\x1a\nfake"


def test_upload_and_fetch_through_proxy(client, headers):
    resp = client.post(
        "/api/upload",
        files={"file": ("receipt.png", PNG, "image/png")},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["fileName"] == "receipt.png"
    assert body["mimeType"] == "image/png"
    assert body["url"].startswith("/api/documents/documents/")
    assert body["url"].endswith(".png")

    fetched = client.get(body["url"], headers=headers)
    assert fetched.status_code == 200
    assert fetched.content == PNG
    assert fetched.headers["content-type"] == "image/png"
    assert fetched.headers["cache-control"] == "public, max-age=31536000, immutable"


def test_upload_rejects_unsupported_type(client, headers):
    resp = client.post(
        "/api/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["field"] == "file"


def test_upload_rejects_oversized_file(client, headers, monkeypatch):
    from ledger_service import storage
    monkeypatch.setattr(storage, "MAX_UPLOAD_BYTES", 4)
    resp = client.post(
        "/api/upload",
        files={"file": ("big.pdf", b"%PDF-1.7", "application/pdf")},
        headers=headers,
    )
    assert resp.status_code == 400


def test_upload_requires_auth(client):
    resp = client.post("/api/upload", files={"file": ("r.png", PNG, "image/png")})
    assert resp.status_code == 401


def test_missing_document_is_404(client, headers):
    assert client.get("/api/documents/documents/nope.png", headers=headers).status_code == 404


def test_local_storage_refuses_paths_outside_root(tmp_path):
    store = LocalStorage(tmp_path / "root")
    (tmp_path / "secret.txt").write_text("x")
    with pytest.raises(FileNotFoundError):
        store.read_file("../secret.txt")


def test_local_storage_delete(tmp_path):
    store = LocalStorage(tmp_path)
    store.save_file(b"abc", "documents/a.pdf")
    assert store.read_file("documents/a.pdf") == b"abc"
    store.delete_file("documents/a.pdf")
    with pytest.raises(FileNotFoundError):
        store.read_file("documents/a.pdf")


@pytest.mark.parametrize("url, expected", [
    ("/api/documents/documents/a.png", "/api/documents/documents/a.png"),
    ("https://abc.r2.cloudflarestorage.com/documents/a.png", "/api/documents/documents/a.png"),
    ("abc.r2.cloudflarestorage.com/documents/a.png?X-Amz-Signature=1", "/api/documents/documents/a.png"),
    ("https://pub-123.r2.dev/documents/b.pdf", "/api/documents/documents/b.pdf"),
    ("https://example.com/a.png", "https://example.com/a.png"),
    ("", ""),
])
def test_normalize_document_url(url, expected):
    assert normalize_document_url(url) == expected


def test_stored_extension_follows_validated_type(client, headers):
    resp = client.post(
        "/api/upload",
        files={"file": ("invoice.html", b"<script>alert(1)</script>", "application/pdf")},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["fileName"] == "invoice.html"
    assert body["url"].endswith(".pdf")

    fetched = client.get(body["url"], headers=headers)
    assert fetched.headers["content-type"] == "application/pdf"


@pytest.mark.parametrize("key, expected", [
    ("documents/a.jpg", "image/jpeg"),
    ("documents/a.JPEG", "image/jpeg"),
    ("documents/a.pdf", "application/pdf"),
    ("documents/a.html", "application/octet-stream"),
    ("documents/a.svg", "application/octet-stream"),
    ("documents/a", "application/octet-stream"),
])
def test_guess_content_type_only_serves_allowed_types(key, expected):
    assert guess_content_type(key) == expected


def test_oversized_upload_rejected_before_reading(client, headers, monkeypatch):
    from starlette.datastructures import UploadFile
    from ledger_service import storage

    monkeypatch.setattr(storage, "MAX_UPLOAD_BYTES", 4)
    reads = []
    original = UploadFile.read

    async def tracking_read(self, size=-1):
        reads.append(size)
        return await original(self, size)

    monkeypatch.setattr(UploadFile, "read", tracking_read)
    resp = client.post(
        "/api/upload",
        files={"file": ("big.pdf", b"%PDF-1.7", "application/pdf")},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["field"] == "file"
    assert reads == []


def test_discard_files_ignores_missing_keys(tmp_path):
    store = LocalStorage(tmp_path)
    store.save_file(b"abc", "documents/a.pdf")
    discard_files(store, ["documents/a.pdf", "documents/gone.pdf", "../outside.pdf"])
    with pytest.raises(FileNotFoundError):
        store.read_file("documents/a.pdf")
