"""Image upload endpoints and the local blob store."""
from pathlib import Path

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.models import NewsImage
from newsroom.services import image_service
from newsroom.storage import LocalBlobStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def _create_news(client: AsyncClient, title: str = "With images") -> int:
    resp = await client.post("/api/v1/news", json={"title": title})
    assert resp.status_code == 201
    return resp.json()["id"]


async def _upload(client: AsyncClient, news_id: int, filename: str = "Front Page.png", **form):
    return await client.post(
        f"/api/v1/news/{news_id}/images",
        files={"image": (filename, PNG_BYTES, "image/png")},
        data=form,
    )


@pytest.mark.asyncio
async def test_upload_list_and_serve_image(async_client: AsyncClient, blob_store: LocalBlobStore):
    news_id = await _create_news(async_client)

    resp = await _upload(async_client, news_id, caption="Portada", alt_text="Foto", position="2")
    assert resp.status_code == 201
    image = resp.json()
    assert image["news_id"] == news_id
    assert image["caption"] == "Portada"
    assert image["position"] == 2
    assert image["url"].startswith("/media/")
    assert image["url"].endswith("-front-page.png")

    stored = blob_store.path_for(image["url"])
    assert stored is not None and stored.read_bytes() == PNG_BYTES

    listing = await async_client.get(f"/api/v1/news/{news_id}/images")
    assert [img["id"] for img in listing.json()] == [image["id"]]

    served = await async_client.get(image["url"])
    assert served.status_code == 200
    assert served.content == PNG_BYTES

    detail = (await async_client.get(f"/api/v1/news/{news_id}")).json()
    assert detail["image_url"] == image["url"]


@pytest.mark.asyncio
async def test_upload_rejects_unsupported_type(async_client: AsyncClient):
    news_id = await _create_news(async_client)
    resp = await async_client.post(
        f"/api/v1/news/{news_id}/images",
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_upload_rejects_oversized_file(async_client: AsyncClient, settings):
    news_id = await _create_news(async_client)
    resp = await async_client.post(
        f"/api/v1/news/{news_id}/images",
        files={"image": ("big.jpg", b"\xff" * (settings.MAX_UPLOAD_SIZE + 1), "image/jpeg")},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_upload_to_missing_news_returns_404(async_client: AsyncClient, settings):
    resp = await _upload(async_client, 9999)
    assert resp.status_code == 404
    assert not list(Path(settings.MEDIA_ROOT).rglob("*.png"))


@pytest.mark.asyncio
async def test_delete_image_removes_row_and_blob(async_client: AsyncClient, blob_store: LocalBlobStore):
    news_id = await _create_news(async_client)
    image = (await _upload(async_client, news_id)).json()
    stored = blob_store.path_for(image["url"])

    resp = await async_client.delete(f"/api/v1/news/{news_id}/images/{image['id']}")
    assert resp.status_code == 204
    assert not stored.exists()
    assert (await async_client.get(f"/api/v1/news/{news_id}/images")).json() == []

    again = await async_client.delete(f"/api/v1/news/{news_id}/images/{image['id']}")
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_rolled_back_image_delete_keeps_blob(
    async_client: AsyncClient, db_session: AsyncSession, blob_store: LocalBlobStore
):
    news_id = await _create_news(async_client)
    image = (await _upload(async_client, news_id)).json()
    stored = blob_store.path_for(image["url"])

    url = await image_service.delete_image(db_session, news_id, image["id"])
    assert url == image["url"]
    assert stored.exists()
    await db_session.rollback()

    remaining = await db_session.execute(select(NewsImage.id).where(NewsImage.news_id == news_id))
    assert remaining.scalars().all() == [image["id"]]
    assert stored.exists()


@pytest.mark.asyncio
async def test_discard_blob_logs_storage_errors(blob_store: LocalBlobStore, monkeypatch, caplog):
    async def failing_delete(url):
        raise OSError("disk gone")

    monkeypatch.setattr(blob_store, "delete", failing_delete)
    await image_service.discard_blob(blob_store, "/media/2026/01/01/x.png")
    assert "Could not delete blob" in caplog.text


@pytest.mark.asyncio
async def test_blob_store_ignores_foreign_urls(tmp_path):
    store = LocalBlobStore(str(tmp_path), "/media")
    assert store.path_for("https://cdn.example.com/x.jpg") is None
    assert store.path_for("/media/../../etc/passwd") is None
    assert await store.delete("/media/2026/01/01/missing.jpg") is False
