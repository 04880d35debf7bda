"""Shared FastAPI dependencies for secretforge routers.

The application builds one set of components at startup and stores it on
``app.state``; routers resolve them per request through the getters below.
Tests build components around doubles and pass them to ``create_app``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fastapi import Request
from redis.asyncio import Redis

from secretforge.cache import CacheAside, CacheStore, InvalidationCoordinator
from secretforge.config import settings
from secretforge.observability.telemetry import Telemetry, local_now
from secretforge.persistence.base import RecordStore
from secretforge.service import ClientInfo, SecretService


@dataclass
class AppComponents:
    """Long-lived collaborators shared by every request."""

    store: CacheStore
    telemetry: Telemetry
    cache_aside: CacheAside
    invalidation: InvalidationCoordinator
    records: RecordStore
    service: SecretService


def build_components(
    redis_client: Redis,
    records: RecordStore,
    clock: Callable[[], datetime] = local_now,
) -> AppComponents:
    """Wire the cache layer, telemetry and service around one Redis client."""
    store = CacheStore(redis_client)
    telemetry = Telemetry(store, clock=clock)
    invalidation = InvalidationCoordinator(
        store,
        telemetry,
        route_prefix=settings.route_cache_prefix,
    )
    return AppComponents(
        store=store,
        telemetry=telemetry,
        cache_aside=CacheAside(store, telemetry),
        invalidation=invalidation,
        records=records,
        service=SecretService(records, invalidation, telemetry),
    )


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_service(request: Request) -> SecretService:
    return get_components(request).service


def get_cache_aside(request: Request) -> CacheAside:
    return get_components(request).cache_aside


def get_client_info(request: Request) -> ClientInfo:
    """Client metadata stored with generated records."""
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
