"""Category endpoint tests: the tree rules and the delete guards."""
import pytest
from httpx import AsyncClient


async def _create(client: AsyncClient, name: str, parent_id: int | None = None) -> dict:
    resp = await client.post("/api/v1/categories", json={"name": name, "parent_id": parent_id})
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_create_and_list_categories(async_client: AsyncClient):
    parent = await _create(async_client, "Política Internacional")
    child = await _create(async_client, "Europa", parent["id"])
    assert parent["slug"] == "politica-internacional"
    assert child["parent_id"] == parent["id"]

    everything = (await async_client.get("/api/v1/categories")).json()
    assert [c["name"] for c in everything] == ["Política Internacional", "Europa"]

    children = (await async_client.get("/api/v1/categories", params={"parent_id": parent["id"]})).json()
    assert [c["id"] for c in children] == [child["id"]]


@pytest.mark.asyncio
async def test_duplicate_name_gets_suffixed_slug(async_client: AsyncClient):
    first = await _create(async_client, "Deportes")
    second = await _create(async_client, "Deportes")
    assert (first["slug"], second["slug"]) == ("deportes", "deportes-1")


@pytest.mark.asyncio
async def test_missing_parent_returns_404(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/categories", json={"name": "Orphan", "parent_id": 99})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_self_parent_returns_400(async_client: AsyncClient):
    category = await _create(async_client, "Loop")
    resp = await async_client.put(
        f"/api/v1/categories/{category['id']}", json={"parent_id": category["id"]}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_cycle_returns_400(async_client: AsyncClient):
    root = await _create(async_client, "Root")
    mid = await _create(async_client, "Mid", root["id"])
    leaf = await _create(async_client, "Leaf", mid["id"])

    resp = await async_client.put(f"/api/v1/categories/{root['id']}", json={"parent_id": leaf["id"]})
    assert resp.status_code == 400

    unchanged = (await async_client.get(f"/api/v1/categories/{root['id']}")).json()
    assert unchanged["parent_id"] is None


@pytest.mark.asyncio
async def test_update_category(async_client: AsyncClient):
    category = await _create(async_client, "Tecnologia")
    resp = await async_client.put(
        f"/api/v1/categories/{category['id']}",
        json={"name": "Tecnología y Ciencia", "slug": "tec-ciencia", "description": "Todo"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Tecnología y Ciencia"
    assert data["slug"] == "tec-ciencia"
    assert data["description"] == "Todo"


@pytest.mark.asyncio
async def test_delete_with_child_returns_409(async_client: AsyncClient):
    parent = await _create(async_client, "Parent")
    await _create(async_client, "Child", parent["id"])

    resp = await async_client.delete(f"/api/v1/categories/{parent['id']}")
    assert resp.status_code == 409
    assert resp.json()["error"] == "conflict"
    assert (await async_client.get(f"/api/v1/categories/{parent['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_delete_with_news_returns_409(async_client: AsyncClient):
    category = await _create(async_client, "Busy")
    news = await async_client.post(
        "/api/v1/news", json={"title": "Filed", "main_category_id": category["id"]}
    )
    assert news.status_code == 201
    assert news.json()["category_slug"] == "busy"

    resp = await async_client.delete(f"/api/v1/categories/{category['id']}")
    assert resp.status_code == 409

    still_there = (await async_client.get(f"/api/v1/news/{news.json()['id']}")).json()
    assert still_there["main_category_id"] == category["id"]


@pytest.mark.asyncio
async def test_delete_empty_category(async_client: AsyncClient):
    category = await _create(async_client, "Empty")
    resp = await async_client.delete(f"/api/v1/categories/{category['id']}")
    assert resp.status_code == 204
    assert (await async_client.get(f"/api/v1/categories/{category['id']}")).status_code == 404
