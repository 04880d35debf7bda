"""Secrets API router.

Endpoints:
- POST   /api/secrets/generate   - Generate and store a secret
- GET    /api/secrets/history    - Paginated history, newest first (cached)
- GET    /api/secrets/stats      - Aggregate statistics (cached)
- GET    /api/secrets/strengths  - Strength distribution (route-level cache)
- DELETE /api/secrets/history    - Delete all secrets
- DELETE /api/secrets/{id}       - Delete one secret

History pages and statistics go through the cache-aside coordinator;
every mutation invalidates all cached read views.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from secretforge.api.deps import get_cache_aside, get_client_info, get_service
from secretforge.api.errors import BadRequestError, NotFoundError
from secretforge.api.models import GenerateRequest
from secretforge.cache import CacheAside, CacheKeys
from secretforge.config import settings
from secretforge.core.generator import SecretValidationError
from secretforge.persistence.base import RecordNotFoundError
from secretforge.service import ClientInfo, SecretService

router = APIRouter(prefix="/api/secrets", tags=["secrets"])


@router.post("/generate", status_code=201)
async def generate_secret(
    body: GenerateRequest,
    service: SecretService = Depends(get_service),
    client: ClientInfo = Depends(get_client_info),
) -> dict[str, Any]:
    """Generate a secret, store it and return it."""
    try:
        record = await service.generate(body.length, body.options.to_option_set(), client)
    except SecretValidationError as e:
        raise BadRequestError(str(e)) from e

    return {"success": True, "data": record.to_public()}


@router.get("/history")
async def get_history(
    limit: int = Query(
        settings.default_history_limit,
        ge=1,
        le=settings.max_history_limit,
        description="Page size",
    ),
    page: int = Query(1, ge=1, description="1-based page number"),
    service: SecretService = Depends(get_service),
    cache_aside: CacheAside = Depends(get_cache_aside),
) -> dict[str, Any]:
    """Return one page of history."""

    async def load() -> dict[str, Any]:
        history = await service.history(limit, page)
        return {
            "success": True,
            "data": [record.to_public() for record in history.items],
            "pagination": history.pagination.model_dump(mode="json", by_alias=True),
        }

    result = await cache_aside.fetch(
        CacheKeys.history(limit, page),
        settings.history_cache_ttl,
        load,
    )
    return result.body()


@router.get("/stats")
async def get_stats(
    service: SecretService = Depends(get_service),
    cache_aside: CacheAside = Depends(get_cache_aside),
) -> dict[str, Any]:
    """Return aggregate statistics."""

    async def load() -> dict[str, Any]:
        statistics = await service.statistics()
        return {"success": True, "data": statistics.model_dump(mode="json", by_alias=True)}

    result = await cache_aside.fetch(CacheKeys.stats(), settings.stats_cache_ttl, load)
    return result.body()


@router.get("/strengths")
async def get_strengths(
    service: SecretService = Depends(get_service),
) -> dict[str, Any]:
    """Return the count of stored secrets per strength class."""
    buckets = await service.strength_distribution()
    return {
        "success": True,
        "data": [bucket.model_dump(mode="json") for bucket in buckets],
    }


@router.delete("/history")
async def clear_history(
    service: SecretService = Depends(get_service),
) -> dict[str, Any]:
    """Delete every stored secret."""
    deleted = await service.clear()
    return {
        "success": True,
        "message": "History cleared successfully",
        "deletedCount": deleted,
    }


@router.delete("/{secret_id}")
async def delete_secret(
    secret_id: str,
    service: SecretService = Depends(get_service),
) -> dict[str, Any]:
    """Delete one stored secret."""
    try:
        await service.delete(secret_id)
    except RecordNotFoundError as e:
        raise NotFoundError("Secret", secret_id) from e

    return {"success": True, "message": "Secret deleted successfully"}
