import json
import os

import httpx
import pytest

from sitecheck.config import Settings
from sitecheck.services.storage import (
    FilesystemPhotoStorage,
    HttpPhotoStorage,
    build_storage,
    path_from_url,
)
from sitecheck.utils.exceptions import DeleteError, UploadError

BUCKET = "report-photos"


def test_path_from_url():
    url = f"https://x.supabase.co/storage/v1/object/public/{BUCKET}/AMBEL/2026-03-01/site_panoramic_photo_ab12cd34.jpg"
    assert path_from_url(url, BUCKET) == "AMBEL/2026-03-01/site_panoramic_photo_ab12cd34.jpg"
    assert path_from_url(url + "?t=1", BUCKET) == "AMBEL/2026-03-01/site_panoramic_photo_ab12cd34.jpg"
    assert path_from_url(url, "other-bucket") is None
    assert path_from_url("https://example.com/photo.jpg", BUCKET) is None


@pytest.mark.asyncio
async def test_filesystem_upload_and_remove(tmp_path):
    storage = FilesystemPhotoStorage(str(tmp_path), BUCKET, "http://localhost:8000/")
    path = "AMBEL/2026-03-01/panoramic_photo_0a1b2c3d.jpg"

    await storage.upload(path, b"jpeg-bytes", "image/jpeg")
    target = tmp_path / BUCKET / path
    assert target.read_bytes() == b"jpeg-bytes"

    # same path overwrites
    await storage.upload(path, b"newer", "image/jpeg")
    assert target.read_bytes() == b"newer"

    url = storage.public_url(path)
    assert url == f"http://localhost:8000/storage/v1/object/public/{BUCKET}/{path}"
    assert path_from_url(url, BUCKET) == path

    await storage.remove([path])
    assert not target.exists()
    # already gone
    await storage.remove([path])


@pytest.mark.asyncio
async def test_filesystem_rejects_paths_outside_bucket(tmp_path):
    storage = FilesystemPhotoStorage(str(tmp_path), BUCKET, "http://localhost:8000")
    with pytest.raises(UploadError):
        await storage.upload("../escape.jpg", b"x", "image/jpeg")
    assert not os.path.exists(tmp_path / "escape.jpg")
    with pytest.raises(DeleteError):
        await storage.remove(["../../etc/passwd"])


@pytest.mark.asyncio
async def test_http_upload_sends_upsert_request():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Key": "ok"})

    storage = HttpPhotoStorage(
        "https://x.supabase.co", BUCKET, "service-key", transport=httpx.MockTransport(handler)
    )
    await storage.upload("AMBEL/2026-03-01/a.jpg", b"data", "image/jpeg")

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == f"/storage/v1/object/{BUCKET}/AMBEL/2026-03-01/a.jpg"
    assert request.headers["x-upsert"] == "true"
    assert request.headers["content-type"] == "image/jpeg"
    assert request.headers["authorization"] == "Bearer service-key"
    assert request.content == b"data"
    assert storage.public_url("AMBEL/a.jpg") == f"https://x.supabase.co/storage/v1/object/public/{BUCKET}/AMBEL/a.jpg"


@pytest.mark.asyncio
async def test_http_errors_become_upload_and_delete_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    storage = HttpPhotoStorage("https://x.supabase.co", BUCKET, "", transport=httpx.MockTransport(handler))
    with pytest.raises(UploadError):
        await storage.upload("AMBEL/a.jpg", b"data", "image/jpeg")
    with pytest.raises(DeleteError):
        await storage.remove(["AMBEL/a.jpg"])


@pytest.mark.asyncio
async def test_http_network_failure_is_upload_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    storage = HttpPhotoStorage("https://x.supabase.co", BUCKET, "", transport=httpx.MockTransport(handler))
    with pytest.raises(UploadError):
        await storage.upload("AMBEL/a.jpg", b"data", "image/jpeg")


@pytest.mark.asyncio
async def test_http_remove_sends_prefixes():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    storage = HttpPhotoStorage("https://x.supabase.co", BUCKET, "k", transport=httpx.MockTransport(handler))
    await storage.remove(["AMBEL/a.jpg", "AMBEL/b.jpg"])

    assert seen[0].method == "DELETE"
    assert seen[0].url.path == f"/storage/v1/object/{BUCKET}"
    assert json.loads(seen[0].content) == {"prefixes": ["AMBEL/a.jpg", "AMBEL/b.jpg"]}


def test_build_storage_picks_backend(tmp_path):
    fs = build_storage(Settings(data_dir=str(tmp_path), storage_backend="filesystem"))
    assert isinstance(fs, FilesystemPhotoStorage)

    http = build_storage(Settings(storage_backend="http", storage_url="https://x.supabase.co"))
    assert isinstance(http, HttpPhotoStorage)

    with pytest.raises(ValueError):
        build_storage(Settings(storage_backend="http", storage_url=""))
