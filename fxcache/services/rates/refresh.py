from __future__ import annotations

"""Refresh service: the consumer-facing side of the rate pipeline.

Purpose:
    Own the in-memory view of current rates and per-class update times, run
    fetch cycles with a small retry budget, and persist successful snapshots
    into the durable store.

Design:
    - `refresh_now()` wraps one orchestrator call in up to `max_attempts`
      attempts with a flat backoff. Final exhaustion is logged and reported as
      `RefreshOutcome.FAILED`; it never raises and leaves the store untouched.
    - Overlapping cycles are not coalesced. Each cycle takes a generation
      number when it starts. Fiat and crypto each remember the last applied
      generation; a completion applies only the classes no later-started cycle
      has applied already, and is reported `SUPERSEDED` when nothing is left.
    - The store write is synchronous and happens in one transaction, so a
      cycle cancelled while awaiting the network never leaves a partial write.
    - `is_fetching` stays true while any cycle is in flight.
"""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Mapping, Optional, Sequence

from fxcache.core.logging import cycle_id_ctx, new_cycle_id
from fxcache.db.dal import RateStore
from fxcache.models import FetchStatus, RatesSnapshot, RefreshOutcome, Selection, utcnow
from .crypto import has_crypto_id
from .fetcher import USD, SupportsFetchAll

logger = logging.getLogger("fxcache.refresh")

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 0.3


class RateRefreshService:
    def __init__(
        self,
        store: RateStore,
        fetcher: SupportsFetchAll,
        selection: Selection,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._fetcher = fetcher
        self._selection = selection
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._sleep = sleep
        self._clock = clock

        self._rates: Dict[str, float] = {}
        self._in_flight = 0
        self._generation = 0
        self._applied_fiat = 0
        self._applied_crypto = 0
        self.last_updated_fiat: Optional[datetime] = None
        self.last_updated_crypto: Optional[datetime] = None
        self.last_snapshot: Optional[RatesSnapshot] = None

    # State -----------------------------------------------------
    @property
    def store(self) -> RateStore:
        return self._store

    @property
    def selection(self) -> Selection:
        return self._selection

    def update_selection(self, selection: Selection) -> None:
        self._selection = selection

    @property
    def is_fetching(self) -> bool:
        return self._in_flight > 0

    @property
    def last_updated(self) -> Optional[datetime]:
        stamps = [t for t in (self.last_updated_fiat, self.last_updated_crypto) if t]
        return max(stamps) if stamps else None

    def rate_map(self) -> Dict[str, float]:
        """Current rates with USD pinned; falls back to the store when memory is empty."""
        if not self._rates:
            self._rates = self._store.rate_map()
        rates = dict(self._rates)
        rates[USD] = 1.0
        return rates

    def load_stored(self) -> int:
        """Populate memory from the durable cache (offline start)."""
        self._rates = self._store.rate_map()
        ts = self._store.last_updated()
        if ts is not None:
            self.last_updated_fiat = ts
            self.last_updated_crypto = ts
        logger.info("loaded stored rates count=%d last_updated=%s", len(self._rates), ts)
        return len(self._rates)

    def seed(self, rates: Mapping[str, float], timestamp: Optional[datetime] = None) -> None:
        """Replace the whole cache with fixed rates (previews and tests only)."""
        ts = timestamp or self._clock()
        self._store.clear_all()
        self._store.upsert_merge(rates, ts)
        self._rates = {k.upper(): v for k, v in rates.items()}
        self.last_updated_fiat = ts
        self.last_updated_crypto = ts

    # Fetch cycle -----------------------------------------------
    def _apply(
        self, generation: int, snapshot: RatesSnapshot, include_fiat: bool, include_crypto: bool
    ) -> bool:
        fresh_fiat = include_fiat and generation > self._applied_fiat
        fresh_crypto = include_crypto and generation > self._applied_crypto
        if not (fresh_fiat or fresh_crypto):
            logger.info(
                "discarding stale completion generation=%d applied_fiat=%d applied_crypto=%d",
                generation,
                self._applied_fiat,
                self._applied_crypto,
            )
            return False
        if include_fiat and not fresh_fiat:
            logger.info("discarding stale fiat part generation=%d", generation)
        if include_crypto and not fresh_crypto:
            logger.info("discarding stale crypto part generation=%d", generation)

        rates: Dict[str, float] = {}
        for code, value in snapshot.rates.items():
            if code == USD or (fresh_crypto if has_crypto_id(code) else fresh_fiat):
                rates[code] = value
        stamps = []
        if fresh_fiat:
            self._applied_fiat = generation
            self.last_updated_fiat = snapshot.fiat_timestamp
            stamps.append(snapshot.fiat_timestamp)
        if fresh_crypto:
            self._applied_crypto = generation
            self.last_updated_crypto = snapshot.crypto_timestamp
            stamps.append(snapshot.crypto_timestamp)
        stamps = [t for t in stamps if t is not None]
        self._store.upsert_merge(rates, max(stamps) if stamps else snapshot.combined_timestamp)
        self._rates.update(rates)
        self.last_snapshot = snapshot
        return True

    async def refresh_now(
        self,
        include_fiat: bool = True,
        include_crypto: bool = True,
        codes: Optional[Sequence[str]] = None,
    ) -> RefreshOutcome:
        if not (include_fiat or include_crypto):
            return RefreshOutcome.SKIPPED
        codes = list(codes) if codes is not None else list(self._selection.codes)
        self._generation += 1
        generation = self._generation
        self._in_flight += 1
        token = cycle_id_ctx.set(new_cycle_id())
        try:
            for attempt in range(1, self._max_attempts + 1):
                logger.info(
                    "refresh start attempt=%d fiat=%s crypto=%s codes=%s",
                    attempt,
                    include_fiat,
                    include_crypto,
                    ",".join(codes),
                )
                try:
                    snapshot = await self._fetcher.fetch_all(codes, include_fiat, include_crypto)
                except Exception as e:
                    logger.warning("refresh failed attempt=%d error=%r", attempt, e)
                    if attempt == self._max_attempts:
                        logger.warning("refresh gave up; keeping cached rates")
                        return RefreshOutcome.FAILED
                    await self._sleep(self._backoff)
                    continue
                if not self._apply(generation, snapshot, include_fiat, include_crypto):
                    return RefreshOutcome.SUPERSEDED
                logger.info(
                    "refresh success attempt=%d rates=%d status=%s",
                    attempt,
                    len(snapshot.rates),
                    snapshot.status.value,
                )
                if snapshot.status is FetchStatus.PARTIAL:
                    return RefreshOutcome.PARTIAL
                return RefreshOutcome.UPDATED
            return RefreshOutcome.FAILED
        finally:
            self._in_flight -= 1
            cycle_id_ctx.reset(token)
