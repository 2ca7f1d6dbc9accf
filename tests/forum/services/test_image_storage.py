"""Tests for the local and Imgur avatar uploaders."""

from __future__ import annotations

import base64
from urllib.parse import parse_qs

import httpx
import pytest

from forum.errors import InvalidOperationError
from forum.services.image_storage import (
    IMGUR_UPLOAD_URL,
    ImageUpload,
    ImgurImageUploader,
    LocalImageStorage,
    build_image_uploader,
)
from forum.settings import AppSettings

PNG = ImageUpload(filename="Avatar.PNG", content_type="image/png", data=b"\x89PNG-data")


@pytest.mark.asyncio
async def test_local_storage_writes_file_and_returns_public_path(tmp_path) -> None:
    storage = LocalImageStorage(tmp_path / "upload", max_bytes=1024)

    reference = await storage.upload(PNG)

    assert reference.startswith("/upload/")
    assert reference.endswith(".png")
    stored = tmp_path / "upload" / reference.rsplit("/", 1)[1]
    assert stored.read_bytes() == PNG.data


@pytest.mark.asyncio
async def test_local_storage_without_file_returns_none(tmp_path) -> None:
    storage = LocalImageStorage(tmp_path, max_bytes=1024)

    assert await storage.upload(None) is None
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_local_storage_rejects_non_images(tmp_path) -> None:
    storage = LocalImageStorage(tmp_path, max_bytes=1024)
    document = ImageUpload(filename="cv.pdf", content_type="application/pdf", data=b"%PDF")

    with pytest.raises(InvalidOperationError, match="must be a PNG, JPEG, GIF or WebP image"):
        await storage.upload(document)


@pytest.mark.asyncio
async def test_local_storage_names_file_after_content_type(tmp_path) -> None:
    storage = LocalImageStorage(tmp_path, max_bytes=1024)
    disguised = ImageUpload(
        filename="x.html", content_type="image/jpeg; charset=binary", data=b"<script>"
    )

    reference = await storage.upload(disguised)

    assert reference.endswith(".jpg")
    assert [path.suffix for path in tmp_path.iterdir()] == [".jpg"]


@pytest.mark.asyncio
async def test_local_storage_rejects_svg_even_with_image_prefix(tmp_path) -> None:
    storage = LocalImageStorage(tmp_path, max_bytes=1024)
    vector = ImageUpload(filename="logo.svg", content_type="image/svg+xml", data=b"<svg/>")

    with pytest.raises(InvalidOperationError):
        await storage.upload(vector)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_local_storage_rejects_oversized_files(tmp_path) -> None:
    storage = LocalImageStorage(tmp_path, max_bytes=4)

    with pytest.raises(InvalidOperationError):
        await storage.upload(PNG)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_imgur_uploader_posts_base64_and_returns_link() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["authorization"] = request.headers["Authorization"]
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(
            200, json={"data": {"link": "https://i.imgur.com/abc.png"}, "success": True}
        )

    uploader = ImgurImageUploader(
        "client-123", max_bytes=1024, transport=httpx.MockTransport(handler)
    )

    link = await uploader.upload(PNG)

    assert link == "https://i.imgur.com/abc.png"
    assert captured["url"] == IMGUR_UPLOAD_URL
    assert captured["authorization"] == "Client-ID client-123"
    form = captured["form"]
    assert form["image"] == [base64.b64encode(PNG.data).decode("ascii")]
    assert form["type"] == ["base64"]


@pytest.mark.asyncio
async def test_imgur_uploader_raises_on_http_error() -> None:
    uploader = ImgurImageUploader(
        "client-123",
        max_bytes=1024,
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    with pytest.raises(httpx.HTTPStatusError):
        await uploader.upload(PNG)


@pytest.mark.asyncio
async def test_imgur_uploader_requires_link_in_response() -> None:
    uploader = ImgurImageUploader(
        "client-123",
        max_bytes=1024,
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"data": {}})
        ),
    )

    with pytest.raises(RuntimeError):
        await uploader.upload(PNG)


@pytest.mark.asyncio
async def test_imgur_uploader_skips_request_without_file() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    uploader = ImgurImageUploader(
        "client-123", max_bytes=1024, transport=httpx.MockTransport(handler)
    )

    assert await uploader.upload(None) is None


def test_build_image_uploader_prefers_imgur_when_configured(tmp_path) -> None:
    local = build_image_uploader(AppSettings(upload_dir=str(tmp_path), imgur_client_id=None))
    remote = build_image_uploader(AppSettings(imgur_client_id="client-123"))

    assert isinstance(local, LocalImageStorage)
    assert isinstance(remote, ImgurImageUploader)
