"""Cache-aside access to upstream F1 data.

Lookup by request signature; on a miss, fetch upstream, classify the request
and store the payload for as long as its volatility class allows. Concurrent
misses for one signature can share a single upstream fetch.
"""
import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from f1_proxy.core.cache import ResponseCache
from f1_proxy.core.cache_policy import classify, request_signature, resolve_ttl
from f1_proxy.core.errors import upstream_error
from f1_proxy.integrations.jolpica import TEMPLATES, JolpicaClient, Resource, UpstreamError

logger = structlog.get_logger(__name__)

_MISSING = object()


class F1DataService:
    """Orchestrates cache lookup, upstream fetch and cache store."""

    def __init__(
        self,
        cache: ResponseCache,
        client: JolpicaClient,
        ttl_overrides: Mapping[str, int] | None = None,
        coalesce: bool = True,
    ):
        self.cache = cache
        self.client = client
        self.ttl_overrides = dict(ttl_overrides or {})
        self.coalesce = coalesce
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def get(
        self,
        resource: Resource,
        endpoint: str,
        params: Mapping[str, str] | None = None,
        description: str = "F1 data",
    ) -> tuple[Any, bool]:
        """Payload for a request and whether it came from the cache.

        Args:
            resource: Upstream resource to fetch on a miss
            endpoint: Public endpoint path, used to classify volatility
            params: Validated request parameters
            description: What is being fetched, for error messages

        Raises:
            ProxyError: upstream failure (kind UPSTREAM)
        """
        params = {k: v for k, v in (params or {}).items() if v is not None}
        signature = request_signature(TEMPLATES[resource], params)

        payload = self.cache.get(signature, _MISSING)
        if payload is not _MISSING:
            logger.debug("cache_hit", endpoint=endpoint, signature=signature)
            return payload, True

        logger.debug("cache_miss", endpoint=endpoint, signature=signature)
        if not self.coalesce:
            payload = await self._fetch_and_store(signature, resource, endpoint, params, description)
            return payload, False

        task = self._in_flight.get(signature)
        if task is None:
            task = asyncio.create_task(
                self._fetch_and_store(signature, resource, endpoint, params, description)
            )
            self._in_flight[signature] = task
            task.add_done_callback(lambda t: self._settle(signature, t))
        else:
            logger.debug("joined_in_flight_fetch", endpoint=endpoint, signature=signature)

        # A cancelled caller must not cancel the fetch other callers share.
        payload = await asyncio.shield(task)
        return payload, False

    def _settle(self, signature: str, task: asyncio.Task) -> None:
        if self._in_flight.get(signature) is task:
            del self._in_flight[signature]
        # Mark the exception retrieved even if every waiter went away.
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(
        self,
        signature: str,
        resource: Resource,
        endpoint: str,
        params: dict[str, str],
        description: str,
    ) -> Any:
        try:
            payload = await self.client.fetch(resource, params)
        except UpstreamError as e:
            logger.error(
                "fetch_failed",
                endpoint=endpoint,
                upstream_status=e.status,
                error=e.message,
            )
            raise upstream_error(f"Failed to fetch {description}", e.status) from e

        volatility = classify(endpoint, params)
        ttl = resolve_ttl(volatility, self.ttl_overrides)
        self.cache.set(signature, payload, ttl)
        logger.debug("data_cached", endpoint=endpoint, ttl=ttl, volatility=volatility.value)
        return payload

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> dict[str, int]:
        return {**self.cache.stats(), "in_flight": self.in_flight}
