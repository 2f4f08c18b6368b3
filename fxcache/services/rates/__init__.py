"""Rate acquisition: provider adapters, fiat fallback chain, crypto prices,
the fetch orchestrator and the refresh service that persists its results."""

from .crypto import CRYPTO_IDS, CryptoFetcher
from .fetcher import RateFetcher, SupportsFetchAll
from .fiat_chain import FiatFallbackChain
from .providers import FiatSource, parse, resolve_fiat_providers
from .refresh import RateRefreshService

__all__ = [
    "CRYPTO_IDS",
    "CryptoFetcher",
    "RateFetcher",
    "SupportsFetchAll",
    "FiatFallbackChain",
    "FiatSource",
    "parse",
    "resolve_fiat_providers",
    "RateRefreshService",
]
