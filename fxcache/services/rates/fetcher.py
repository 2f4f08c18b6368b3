from __future__ import annotations

"""Fetch orchestrator: one fetch cycle across the fiat chain and crypto prices.

Both branches run concurrently and never share mutable state; results are
joined before merging. A requested branch that fails fails the whole call,
recovery belongs to the refresh service.
"""
import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Protocol, Sequence

import httpx

from fxcache.models import NEVER, CryptoResult, FiatResult, RatesSnapshot, utcnow
from fxcache.services.http_client import make_client
from .crypto import CryptoFetcher, has_crypto_id
from .fiat_chain import FiatFallbackChain
from .providers import resolve_fiat_providers

if TYPE_CHECKING:  # pragma: no cover
    from fxcache.core.config import Settings

logger = logging.getLogger("fxcache.fetcher")

USD = "USD"


class SupportsFetchAll(Protocol):
    async def fetch_all(
        self, codes: Sequence[str], include_fiat: bool = True, include_crypto: bool = True
    ) -> RatesSnapshot: ...


def split_codes(codes: Iterable[str]) -> tuple[List[str], List[str]]:
    """Split requested codes into (fiat codes the chain must cover, crypto codes)."""
    fiat: List[str] = []
    crypto: List[str] = []
    for code in codes:
        code = code.upper()
        if has_crypto_id(code):
            if code not in crypto:
                crypto.append(code)
        elif code != USD and code not in fiat:
            fiat.append(code)
    return fiat, crypto


class RateFetcher:
    def __init__(
        self,
        fiat_chain: FiatFallbackChain,
        crypto: CryptoFetcher,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.fiat_chain = fiat_chain
        self.crypto = crypto
        self._client = client  # owned client, closed by aclose()

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "RateFetcher":
        owned = client is None
        client = client or make_client(settings.http_timeout_seconds)
        chain = FiatFallbackChain(resolve_fiat_providers(settings.fiat_providers), client, clock)
        crypto = CryptoFetcher(client, str(settings.crypto_price_url), clock)
        return cls(chain, crypto, client if owned else None)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _skip_fiat(self) -> FiatResult:
        return FiatResult({}, NEVER)

    async def _skip_crypto(self) -> CryptoResult:
        return CryptoResult({}, NEVER)

    async def fetch_all(
        self, codes: Sequence[str], include_fiat: bool = True, include_crypto: bool = True
    ) -> RatesSnapshot:
        fiat_codes, crypto_codes = split_codes(codes)
        logger.info(
            "fetch_all start codes=%s fiat=%s crypto=%s",
            ",".join(c.upper() for c in codes),
            include_fiat,
            include_crypto,
        )
        fiat_coro = self.fiat_chain.fetch(fiat_codes) if include_fiat else self._skip_fiat()
        crypto_coro = self.crypto.fetch(crypto_codes) if include_crypto else self._skip_crypto()
        fiat_res, crypto_res = await asyncio.gather(
            fiat_coro, crypto_coro, return_exceptions=True
        )
        # Fiat error wins when both branches fail
        for res in (fiat_res, crypto_res):
            if isinstance(res, BaseException):
                raise res

        combined = dict(fiat_res.rates)
        combined.update(crypto_res.rates)
        combined[USD] = 1.0

        ts = max(fiat_res.timestamp, crypto_res.timestamp)
        warnings = fiat_res.warnings + tuple(
            f"crypto: no price for {code}" for code in crypto_res.dropped
        )
        logger.info(
            "fetch_all done fiat=%d crypto=%d timestamp=%s",
            len(fiat_res.rates),
            len(crypto_res.rates),
            ts.isoformat(),
        )
        return RatesSnapshot(
            rates=combined,
            fiat_timestamp=fiat_res.timestamp if include_fiat else None,
            crypto_timestamp=crypto_res.timestamp if include_crypto else None,
            combined_timestamp=ts,
            warnings=warnings,
            missing=fiat_res.missing + crypto_res.dropped,
        )
