"""Route-level cache-aside middleware.

Wraps selected idempotent GET endpoints: a cached body is served without
running the endpoint, and a successful JSON response is written back in the
background after it has been produced.

Key format: {key_prefix}:{path}[?{sorted query}]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Callable

import orjson
from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from secretforge.cache.aside import CacheRule
from secretforge.cache.keys import CacheKeys

logger = logging.getLogger(__name__)


class CacheAsideMiddleware(BaseHTTPMiddleware):
    """Serve configured GET routes from the cache store.

    Features:
    - Per-route TTL and key prefix
    - Query parameters are part of the key, in sorted order
    - Only 200 responses with a JSON object body are cached
    - Pass-through while the cache store is not ready
    """

    def __init__(self, app, rules: Mapping[str, CacheRule]):
        super().__init__(app)
        self.rules = dict(rules)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rule = self.rules.get(request.url.path)
        if request.method != "GET" or rule is None:
            return await call_next(request)

        cache_aside = request.app.state.components.cache_aside
        key = CacheKeys.route(
            request.url.path,
            request.query_params.multi_items(),
            rule.key_prefix,
        )

        cached = await cache_aside.lookup(key)
        if cached is not None:
            return ORJSONResponse(content={**cached, "cached": True})

        response = await call_next(request)
        if response.status_code != 200 or not cache_aside.store.ready:
            return response

        # The body can only be read once, so the response is rebuilt from it
        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError:
            logger.debug("Not caching non-JSON response", extra={"cache_key": key})
            payload = None

        if isinstance(payload, dict):
            cache_aside.populate(key, payload, rule.ttl)

        rebuilt = Response(content=body, status_code=response.status_code)
        # Raw pairs keep repeated headers such as set-cookie
        rebuilt.raw_headers = list(response.raw_headers)
        return rebuilt
