"""API tests for the secrets endpoints.

Runs the full application in-process against fakeredis and SQLite.
"""

from __future__ import annotations

import pytest
from fakeredis import FakeServer
from httpx import AsyncClient

from secretforge.api.deps import AppComponents


async def generate(client: AsyncClient, **body) -> dict:
    response = await client.post("/api/secrets/generate", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def get(client: AsyncClient, components: AppComponents, url: str, **params) -> dict:
    """GET and wait for any background cache write to land."""
    response = await client.get(url, params=params)
    assert response.status_code == 200, response.text
    await components.cache_aside.drain()
    return response.json()


class TestGenerate:
    """Tests for POST /api/secrets/generate."""

    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient) -> None:
        """An empty body generates 12 characters from upper, lower and digits."""
        data = await generate(client)

        assert len(data["value"]) == 12
        assert data["length"] == 12
        assert data["strength"] == "Strong"
        assert data["options"] == {
            "upper": True,
            "lower": True,
            "numbers": True,
            "symbols": False,
        }
        assert "id" in data and "createdAt" in data and "latencyMs" in data
        assert "ipAddress" not in data

    @pytest.mark.asyncio
    async def test_weak_digits(self, client: AsyncClient) -> None:
        """8 digits classify as Weak."""
        data = await generate(
            client, length=8, options={"upper": False, "lower": False, "numbers": True}
        )
        assert data["value"].isdigit()
        assert data["strength"] == "Weak"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ({"length": 3}, "Length must be between 4 and 64"),
            ({"length": 65}, "Length must be between 4 and 64"),
            ({"length": "12"}, "Length must be an integer"),
            ({"length": 12.5}, "Length must be an integer"),
            (
                {"options": {"upper": False, "lower": False, "numbers": False, "symbols": False}},
                "At least one character type must be selected",
            ),
        ],
    )
    async def test_invalid_requests(
        self,
        client: AsyncClient,
        components: AppComponents,
        body: dict,
        message: str,
    ) -> None:
        """Invalid requests are 400 and store nothing."""
        response = await client.post("/api/secrets/generate", json=body)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": message,
            "code": "ValidationError",
        }
        assert await components.records.count() == 0

    @pytest.mark.asyncio
    async def test_integral_float_length(self, client: AsyncClient) -> None:
        """A length of 12.0 is the number 12."""
        data = await generate(client, length=12.0)
        assert data["length"] == 12
        assert len(data["value"]) == 12

    @pytest.mark.asyncio
    async def test_client_metadata_stored(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """The user agent is stored but never returned."""
        await client.post("/api/secrets/generate", json={}, headers={"user-agent": "agent/1.0"})
        [record] = await components.records.find()
        assert record.user_agent == "agent/1.0"


class TestHistory:
    """Tests for GET /api/secrets/history."""

    @pytest.mark.asyncio
    async def test_second_read_is_cached(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """The second identical read is served from cache with the same data."""
        await generate(client)

        first = await get(client, components, "/api/secrets/history")
        second = await get(client, components, "/api/secrets/history")

        assert "cached" not in first
        assert second.pop("cached") is True
        assert second == first
        assert await components.store.exists("history:20:1")

    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, components: AppComponents) -> None:
        """Pages are newest first with a pagination block."""
        ids = [(await generate(client, length=4 + i))["id"] for i in range(5)]

        body = await get(client, components, "/api/secrets/history", limit=2, page=1)

        assert [item["id"] for item in body["data"]] == [ids[4], ids[3]]
        assert body["pagination"] == {"total": 5, "page": 1, "limit": 2, "totalPages": 3}
        assert await components.store.exists("history:2:1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [{"limit": 0}, {"limit": 101}, {"page": 0}, {"limit": "ten"}],
    )
    async def test_bad_paging(self, client: AsyncClient, params: dict) -> None:
        """Out-of-range paging is a 400."""
        response = await client.get("/api/secrets/history", params=params)
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_generate_invalidates(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """A read after a generation reflects it and is not cached."""
        await get(client, components, "/api/secrets/history")
        await get(client, components, "/api/secrets/history")
        created = await generate(client)

        body = await get(client, components, "/api/secrets/history")

        assert "cached" not in body
        assert body["data"][0]["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_delete_invalidates(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """A read after a delete no longer shows the secret."""
        created = await generate(client)
        await get(client, components, "/api/secrets/history")

        response = await client.delete(f"/api/secrets/{created['id']}")
        assert response.status_code == 200

        body = await get(client, components, "/api/secrets/history")
        assert "cached" not in body
        assert body["data"] == []

    @pytest.mark.asyncio
    async def test_generate_after_transient_timeout_invalidates(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """A store flagged down by one timeout is still invalidated on write."""
        await generate(client)
        await get(client, components, "/api/secrets/history")
        cached = await get(client, components, "/api/secrets/history")
        assert cached["cached"] is True

        components.store._mark_unavailable("read timed out")
        await generate(client)
        await components.store.connect()

        body = await get(client, components, "/api/secrets/history")
        assert "cached" not in body
        assert body["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_generate_during_outage_invalidates_on_recovery(
        self,
        client: AsyncClient,
        components: AppComponents,
        redis_server: FakeServer,
    ) -> None:
        """Pages cached before an outage are not served after a write during it."""
        await generate(client)
        await get(client, components, "/api/secrets/history")

        redis_server.connected = False
        await components.store.connect()
        await generate(client)
        redis_server.connected = True
        await components.store.connect()

        body = await get(client, components, "/api/secrets/history")
        assert "cached" not in body
        assert body["pagination"]["total"] == 2


class TestStats:
    """Tests for GET /api/secrets/stats and /strengths."""

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, components: AppComponents) -> None:
        """Statistics aggregate every stored secret and are cached."""
        await generate(client, length=8, options={"upper": False, "lower": False})
        await generate(client, length=16)

        first = await get(client, components, "/api/secrets/stats")
        second = await get(client, components, "/api/secrets/stats")

        data = first["data"]
        assert data["totalGenerated"] == 2
        assert data["generatedToday"] == 2
        assert data["generatedThisWeek"] == 2
        assert data["averageLength"] == 12
        assert (data["minLength"], data["maxLength"]) == (8, 16)
        assert {b["strength"]: b["count"] for b in data["strengthDistribution"]} == {
            "Weak": 1,
            "Strong": 1,
        }
        assert second["cached"] is True
        assert await components.store.exists("stats:all")

    @pytest.mark.asyncio
    async def test_strengths_route_cache(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """The strengths route is cached by the route-level middleware."""
        await generate(client)

        first = await get(client, components, "/api/secrets/strengths")
        second = await get(client, components, "/api/secrets/strengths")

        assert first == {"success": True, "data": [{"strength": "Strong", "count": 1}]}
        assert second == {**first, "cached": True}
        assert await components.store.exists("cache:/api/secrets/strengths")

    @pytest.mark.asyncio
    async def test_route_cache_key_sorts_query(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """Query parameters are part of the key in sorted order."""
        await get(client, components, "/api/secrets/strengths", z="1", a="2")

        assert await components.store.exists("cache:/api/secrets/strengths?a=2&z=1")

    @pytest.mark.asyncio
    async def test_generate_invalidates_route_cache(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """Route-level entries are read views too."""
        await get(client, components, "/api/secrets/strengths")
        await generate(client)

        body = await get(client, components, "/api/secrets/strengths")
        assert "cached" not in body
        assert body["data"] == [{"strength": "Strong", "count": 1}]


class TestDelete:
    """Tests for the delete endpoints."""

    @pytest.mark.asyncio
    async def test_delete_unknown(self, client: AsyncClient) -> None:
        """Deleting an unknown id is a 404."""
        response = await client.delete("/api/secrets/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "Secret with identifier 'does-not-exist' not found",
            "code": "NotFound",
        }

    @pytest.mark.asyncio
    async def test_clear_history(self, client: AsyncClient, components: AppComponents) -> None:
        """Clearing deletes everything and resets generation counters."""
        for _ in range(3):
            await generate(client)
        await get(client, components, "/api/secrets/stats")

        response = await client.delete("/api/secrets/history")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "History cleared successfully",
            "deletedCount": 3,
        }
        assert not await components.store.exists("stats:all")
        counts = await components.telemetry.generation_counts()
        assert (counts.total, counts.today) == (0, 0)


class TestCorrelation:
    """Tests for correlation headers."""

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client: AsyncClient) -> None:
        """Incoming request ids are echoed back."""
        response = await client.get(
            "/api/secrets/history", headers={"x-request-id": "req-123"}
        )
        assert response.headers["x-request-id"] == "req-123"
        assert response.headers["x-correlation-id"] == "req-123"

    @pytest.mark.asyncio
    async def test_unsafe_request_id_replaced(self, client: AsyncClient) -> None:
        """IDs that are not plain tokens are replaced by a generated one."""
        response = await client.get(
            "/api/secrets/history", headers={"x-request-id": "bad id with spaces"}
        )
        request_id = response.headers["x-request-id"]
        assert request_id != "bad id with spaces"
        assert len(request_id) == 36

    @pytest.mark.asyncio
    async def test_route_cache_hit_is_tagged(
        self, client: AsyncClient, components: AppComponents
    ) -> None:
        """Responses served by the route cache still carry the IDs."""
        await get(client, components, "/api/secrets/strengths")
        response = await client.get(
            "/api/secrets/strengths", headers={"x-correlation-id": "trace-9"}
        )
        assert response.json()["cached"] is True
        assert response.headers["x-correlation-id"] == "trace-9"
        assert response.headers["x-request-id"]
