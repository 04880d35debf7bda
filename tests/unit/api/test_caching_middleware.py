"""Tests for the route-level cache-aside middleware."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException, Response
from fastapi.responses import PlainTextResponse
from httpx import ASGITransport, AsyncClient

from secretforge.api.deps import AppComponents
from secretforge.api.middleware import CacheAsideMiddleware
from secretforge.cache import CacheRule

RULE = CacheRule(ttl=60, key_prefix="cache")


@pytest.fixture
def calls() -> list[str]:
    return []


@pytest.fixture
def cached_app(components: AppComponents, calls: list[str]) -> FastAPI:
    app = FastAPI()
    app.state.components = components
    app.add_middleware(
        CacheAsideMiddleware,
        rules={"/items": RULE, "/text": RULE, "/missing": RULE},
    )

    @app.get("/items")
    async def items(response: Response, tag: str = "a") -> dict:
        calls.append(tag)
        response.set_cookie("first", "1")
        response.set_cookie("second", "2")
        return {"tag": tag}

    @app.post("/items")
    async def create_item() -> dict:
        calls.append("post")
        return {"created": True}

    @app.get("/text", response_class=PlainTextResponse)
    async def text() -> str:
        calls.append("text")
        return "plain"

    @app.get("/missing")
    async def missing() -> dict:
        raise HTTPException(status_code=404, detail="gone")

    return app


@pytest_asyncio.fixture
async def cached_client(cached_app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=cached_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestCacheAsideMiddleware:
    """Tests for CacheAsideMiddleware.dispatch."""

    @pytest.mark.asyncio
    async def test_miss_keeps_repeated_headers(
        self, cached_client: AsyncClient, components: AppComponents
    ) -> None:
        """Both set-cookie headers survive the rebuilt response."""
        response = await cached_client.get("/items", params={"tag": "x"})
        await components.cache_aside.drain()

        assert response.status_code == 200
        assert response.json() == {"tag": "x"}
        assert len(response.headers.get_list("set-cookie")) == 2
        assert await components.store.get("cache:/items?tag=x") == {"tag": "x"}

    @pytest.mark.asyncio
    async def test_hit_skips_endpoint(
        self,
        cached_client: AsyncClient,
        components: AppComponents,
        calls: list[str],
    ) -> None:
        """The second read is served from cache and marked."""
        await cached_client.get("/items")
        await components.cache_aside.drain()
        response = await cached_client.get("/items")

        assert response.json() == {"tag": "a", "cached": True}
        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_non_json_passes_through_uncached(
        self, cached_client: AsyncClient, components: AppComponents
    ) -> None:
        """Plain-text bodies are returned unchanged and never stored."""
        response = await cached_client.get("/text")
        await components.cache_aside.drain()

        assert response.text == "plain"
        assert response.headers["content-type"].startswith("text/plain")
        assert not await components.store.exists("cache:/text")

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(
        self, cached_client: AsyncClient, components: AppComponents
    ) -> None:
        """Only 200 responses populate the cache."""
        response = await cached_client.get("/missing")
        await components.cache_aside.drain()

        assert response.status_code == 404
        assert not await components.store.exists("cache:/missing")

    @pytest.mark.asyncio
    async def test_other_methods_bypass(
        self,
        cached_client: AsyncClient,
        components: AppComponents,
        calls: list[str],
    ) -> None:
        """Only GET is cached."""
        for _ in range(2):
            response = await cached_client.post("/items")
            assert response.json() == {"created": True}
        await components.cache_aside.drain()

        assert calls == ["post", "post"]
        assert await components.store.count_matching("cache:*") == 0
