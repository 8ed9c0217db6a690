"""
News endpoint tests: the aggregate CRUD lifecycle over HTTP, list filters,
lookup by slug, error bodies and the diagnostic response headers.

Each test creates the authors, categories and tags it needs via the API,
so test order does not matter.
"""
import pytest
from httpx import AsyncClient


async def _create_author(client: AsyncClient, name: str = "Laura", email: str = "laura@example.com") -> int:
    resp = await client.post("/api/v1/authors", json={"name": name, "email": email})
    assert resp.status_code == 201
    return resp.json()["id"]


async def _create_tag(client: AsyncClient, name: str) -> int:
    resp = await client.post("/api/v1/tags", json={"name": name})
    assert resp.status_code == 201
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Infrastructure / health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_diagnostic_headers_present(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/news")
    assert resp.status_code == 200
    assert "x-response-time-ms" in resp.headers
    assert int(resp.headers["x-query-count"]) >= 1


# ---------------------------------------------------------------------------
# Create + read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_news_returns_full_aggregate(async_client: AsyncClient):
    author_id = await _create_author(async_client)
    tag_id = await _create_tag(async_client, "Economía")

    resp = await async_client.post("/api/v1/news", json={
        "title": "Inflación baja por tercer mes",
        "summary": "Los precios se moderan.",
        "author_id": author_id,
        "status": "published",
        "blocks": [
            {"type": "heading", "content": "Datos"},
            {"type": "text", "content": "El índice bajó 0.3%."},
        ],
        "images": [{"url": "/media/chart.png", "alt_text": "Gráfico"}],
        "tags": [tag_id, tag_id],
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["canonical_slug"] == "inflacion-baja-por-tercer-mes"
    assert data["author_name"] == "Laura"
    assert data["published_at"] is not None
    assert [b["position"] for b in data["blocks"]] == [0, 1]
    assert data["image_url"] == "/media/chart.png"
    assert [t["slug"] for t in data["tags"]] == ["economia"]

    fetched = await async_client.get(f"/api/v1/news/{data['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["blocks"] == data["blocks"]


@pytest.mark.asyncio
async def test_same_title_gets_suffixed_slugs(async_client: AsyncClient):
    slugs = []
    for _ in range(3):
        resp = await async_client.post("/api/v1/news", json={"title": "Última hora"})
        assert resp.status_code == 201
        slugs.append(resp.json()["canonical_slug"])
    assert slugs == ["ultima-hora", "ultima-hora-1", "ultima-hora-2"]


@pytest.mark.asyncio
async def test_get_news_by_slug(async_client: AsyncClient):
    created = await async_client.post("/api/v1/news", json={"title": "Slug lookup"})
    resp = await async_client.get("/api/v1/news/slug/slug-lookup")
    assert resp.status_code == 200
    assert resp.json()["id"] == created.json()["id"]

    missing = await async_client.get("/api/v1/news/slug/does-not-exist")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_related_news_are_listed(async_client: AsyncClient):
    first = (await async_client.post("/api/v1/news", json={"title": "First"})).json()
    second = await async_client.post("/api/v1/news", json={
        "title": "Second",
        "related_ids": [{"news_id": first["id"], "relation_type": "background"}],
    })
    assert second.status_code == 201
    related = second.json()["related"]
    assert related == [{
        "id": first["id"],
        "title": "First",
        "summary": None,
        "canonical_slug": "first",
        "relation_type": "background",
    }]


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_replaces_supplied_collections_only(async_client: AsyncClient):
    tag_a = await _create_tag(async_client, "a")
    tag_b = await _create_tag(async_client, "b")
    created = (await async_client.post("/api/v1/news", json={
        "title": "Editable",
        "blocks": [{"type": "text", "content": "one"}, {"type": "text", "content": "two"}],
        "images": [{"url": "/media/x.jpg"}],
        "tags": [tag_a],
    })).json()

    resp = await async_client.put(f"/api/v1/news/{created['id']}", json={
        "subtitle": "Now with subtitle",
        "blocks": [],
        "tags": [tag_b],
    })
    assert resp.status_code == 200
    data = resp.json()
    assert data["subtitle"] == "Now with subtitle"
    assert data["title"] == "Editable"
    assert data["blocks"] == []
    assert [img["url"] for img in data["images"]] == ["/media/x.jpg"]
    assert [t["id"] for t in data["tags"]] == [tag_b]


@pytest.mark.asyncio
async def test_update_missing_reference_returns_404_and_changes_nothing(async_client: AsyncClient):
    created = (await async_client.post("/api/v1/news", json={
        "title": "Stable", "blocks": [{"type": "text", "content": "keep"}],
    })).json()

    resp = await async_client.put(f"/api/v1/news/{created['id']}", json={
        "title": "Unstable", "blocks": [], "tags": [9999],
    })
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"

    current = (await async_client.get(f"/api/v1/news/{created['id']}")).json()
    assert current["title"] == "Stable"
    assert [b["content"] for b in current["blocks"]] == ["keep"]


@pytest.mark.asyncio
async def test_update_self_relation_returns_400(async_client: AsyncClient):
    created = (await async_client.post("/api/v1/news", json={"title": "Self"})).json()
    resp = await async_client.put(f"/api/v1/news/{created['id']}", json={"related_ids": [created["id"]]})
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_update_nonexistent_returns_404(async_client: AsyncClient):
    resp = await async_client.put("/api/v1/news/424242", json={"title": "Ghost"})
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_news(async_client: AsyncClient):
    target = (await async_client.post("/api/v1/news", json={"title": "Doomed"})).json()
    pointer = (await async_client.post("/api/v1/news", json={
        "title": "Pointer", "related_ids": [target["id"]],
    })).json()

    resp = await async_client.delete(f"/api/v1/news/{target['id']}")
    assert resp.status_code == 204
    assert (await async_client.get(f"/api/v1/news/{target['id']}")).status_code == 404

    survivor = (await async_client.get(f"/api/v1/news/{pointer['id']}")).json()
    assert survivor["related"] == []

    again = await async_client.delete(f"/api/v1/news/{target['id']}")
    assert again.status_code == 404


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_news_empty(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/news")
    assert resp.status_code == 200
    assert resp.json() == {"items": [], "total": 0, "page": 1, "page_size": 20, "pages": 0}


@pytest.mark.asyncio
async def test_list_news_filters(async_client: AsyncClient):
    author_id = await _create_author(async_client, "Pablo", "pablo@example.com")
    await async_client.post("/api/v1/news", json={"title": "Draft one"})
    await async_client.post("/api/v1/news", json={
        "title": "Published one", "status": "published", "author_id": author_id,
    })
    await async_client.post("/api/v1/news", json={
        "title": "Featured one", "status": "published", "is_featured": True,
    })

    published = (await async_client.get("/api/v1/news", params={"status": "published"})).json()
    assert published["total"] == 2

    by_author = (await async_client.get("/api/v1/news", params={"author_id": author_id})).json()
    assert [item["title"] for item in by_author["items"]] == ["Published one"]
    assert by_author["items"][0]["author_name"] == "Pablo"

    featured = (await async_client.get("/api/v1/news", params={"is_featured": "true"})).json()
    assert [item["title"] for item in featured["items"]] == ["Featured one"]


@pytest.mark.asyncio
async def test_list_news_pagination(async_client: AsyncClient):
    for i in range(5):
        await async_client.post("/api/v1/news", json={"title": f"Item {i}"})
    resp = await async_client.get("/api/v1/news", params={"page": 2, "page_size": 2})
    data = resp.json()
    assert data["total"] == 5
    assert data["pages"] == 3
    assert len(data["items"]) == 2


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invalid_body_returns_400(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/news", json={"summary": "no title"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_error"
    assert body["details"]["errors"]


@pytest.mark.asyncio
async def test_unknown_block_type_returns_400(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/news", json={
        "title": "Bad block", "blocks": [{"type": "hologram"}],
    })
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_unknown_tag_returns_404(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/news", json={"title": "Bad tag", "tags": [31337]})
    assert resp.status_code == 404
    listing = (await async_client.get("/api/v1/news")).json()
    assert listing["total"] == 0


@pytest.mark.asyncio
async def test_slug_exhaustion_returns_422(async_client: AsyncClient, settings):
    settings.SLUG_MAX_ATTEMPTS = 1
    assert (await async_client.post("/api/v1/news", json={"title": "Crowded"})).status_code == 201
    resp = await async_client.post("/api/v1/news", json={"title": "Crowded"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "slug_exhausted"


@pytest.mark.asyncio
async def test_overlong_requested_slug_returns_400(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/news", json={"title": "Long", "canonical_slug": "a" * 341})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_longest_requested_slug_still_fits_with_suffix(async_client: AsyncClient):
    slug = "a" * 340
    first = await async_client.post("/api/v1/news", json={"title": "One", "canonical_slug": slug})
    second = await async_client.post("/api/v1/news", json={"title": "Two", "canonical_slug": slug})
    assert first.status_code == second.status_code == 201
    assert second.json()["canonical_slug"] == f"{slug}-1"
