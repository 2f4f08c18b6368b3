from __future__ import annotations

"""Single-provider batch fetch of crypto prices (CoinGecko simple/price).

The provider quotes USD per coin; the cache stores coins per USD, so every
price is inverted on ingestion. Codes without a known asset id, and coins whose
price is missing, non-finite or not strictly positive, are dropped rather
than failing the batch. A transport or decode failure fails the whole fetch:
there is no fallback provider for crypto.
"""
import logging
import math
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping

import httpx

from fxcache.core.errors import MalformedResponse
from fxcache.models import CryptoResult, utcnow
from fxcache.services.http_client import get_json

logger = logging.getLogger("fxcache.crypto")

DEFAULT_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"

CRYPTO_IDS: Mapping[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
    "USDC": "usd-coin",
    "DAI": "dai",
    "BUSD": "binance-usd",
    "TUSD": "true-usd",
    "USDP": "paxos-standard",
    "GUSD": "gemini-dollar",
    "FDUSD": "first-digital-usd",
    "SOL": "solana",
    "BNB": "binancecoin",
    "DOGE": "dogecoin",
    "TON": "the-open-network",
    "LTC": "litecoin",
    "ADA": "cardano",
    "XRP": "ripple",
}


def has_crypto_id(code: str) -> bool:
    return code.upper() in CRYPTO_IDS


def _price(entry: object) -> float | None:
    if entry is None:
        return None
    if not isinstance(entry, dict):
        raise MalformedResponse(f"expected {{'usd': price}} object, got {entry!r}")
    value = entry.get("usd")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponse(f"non-numeric usd price {value!r}")
    return float(value)


class CryptoFetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        price_url: str = DEFAULT_PRICE_URL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._client = client
        self._price_url = price_url
        self._clock = clock

    async def fetch(self, codes: Iterable[str]) -> CryptoResult:
        wanted: Dict[str, str] = {}
        for code in codes:
            code = code.upper()
            asset_id = CRYPTO_IDS.get(code)
            if asset_id is not None:
                wanted[code] = asset_id
        if not wanted:
            return CryptoResult({}, self._clock())

        ids = sorted(set(wanted.values()))
        payload = await get_json(
            self._client,
            self._price_url,
            params={"ids": ",".join(ids), "vs_currencies": "usd"},
        )

        rates: Dict[str, float] = {}
        dropped: List[str] = []
        for code, asset_id in wanted.items():
            price = _price(payload.get(asset_id))
            if price is None or not math.isfinite(price) or price <= 0:
                dropped.append(code)
                continue
            rates[code] = 1.0 / price
        if dropped:
            logger.info("crypto prices unavailable codes=%s", ",".join(dropped))
        logger.info("crypto fetch ok codes=%s", ",".join(sorted(rates)))
        return CryptoResult(rates, self._clock(), tuple(dropped))
