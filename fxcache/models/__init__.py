"""Domain models for the rate cache."""

from .currency import (
    ALL_CURRENCIES,
    DEFAULT_SELECTION,
    Currency,
    CurrencyKind,
    kind_of,
    lookup,
)  # re-export
from .rates import (
    NEVER,
    CryptoResult,
    FetchStatus,
    FiatResult,
    RateRecord,
    RatesSnapshot,
    RefreshOutcome,
    Selection,
    utcnow,
)

__all__ = [
    "ALL_CURRENCIES",
    "DEFAULT_SELECTION",
    "Currency",
    "CurrencyKind",
    "kind_of",
    "lookup",
    "NEVER",
    "CryptoResult",
    "FetchStatus",
    "FiatResult",
    "RateRecord",
    "RatesSnapshot",
    "RefreshOutcome",
    "Selection",
    "utcnow",
]
