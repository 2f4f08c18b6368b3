from __future__ import annotations

"""Ordered fallback across fiat providers.

Providers are tried strictly one after another. Each success is merged into an
accumulator (later providers overwrite overlapping codes) and the chain stops
as soon as every required code is covered. Individual provider failures are
absorbed as warnings; only a chain that produced nothing at all raises.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import httpx

from fxcache.core.errors import NoProviderReachable, RateFetchError
from fxcache.models import NEVER, FiatResult, utcnow
from fxcache.services.http_client import get_json
from .base import RateProvider

logger = logging.getLogger("fxcache.fiat")


class FiatFallbackChain:
    def __init__(
        self,
        providers: Sequence[RateProvider],
        client: httpx.AsyncClient,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._providers = list(providers)
        self._client = client
        self._clock = clock

    @property
    def providers(self) -> List[RateProvider]:
        return list(self._providers)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def _attempt(self, provider: RateProvider) -> Dict[str, float]:
        payload = await get_json(self._client, provider.url, params=provider.params)
        return provider.decode(payload)

    async def fetch(self, required: Iterable[str] = ()) -> FiatResult:
        needed = {c.upper() for c in required}
        aggregated: Dict[str, float] = {}
        timestamp = NEVER
        warnings: List[str] = []
        last_error: Optional[RateFetchError] = None
        succeeded = False

        for provider in self._providers:
            try:
                parsed = await self._attempt(provider)
            except RateFetchError as e:
                last_error = e
                warnings.append(f"{provider.name}: {e}")
                logger.warning("fiat provider failed name=%s error=%s", provider.name, e)
                continue
            succeeded = True
            aggregated.update(parsed)
            timestamp = max(timestamp, self._clock())
            logger.info("fiat provider ok name=%s rates=%d", provider.name, len(parsed))
            if not needed or needed.issubset(aggregated):
                return FiatResult(aggregated, timestamp, tuple(warnings))

        if not succeeded:
            if last_error is not None:
                raise last_error
            raise NoProviderReachable("no fiat provider reachable")

        missing = tuple(sorted(needed.difference(aggregated)))
        logger.warning("fiat chain exhausted with partial coverage missing=%s", ",".join(missing))
        return FiatResult(aggregated, timestamp, tuple(warnings), missing)
