"""Currency catalog: every code the service knows how to display and classify."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class CurrencyKind(str, Enum):
    FIAT = "fiat"
    CRYPTO = "crypto"


@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    kind: CurrencyKind


DEFAULT_SELECTION: List[str] = ["USD", "EUR", "RUB", "BTC", "ETH", "USDT"]

_FIAT: Dict[str, str] = {
    "USD": "US Dollar",
    "EUR": "Euro",
    "GBP": "British Pound",
    "CHF": "Swiss Franc",
    "JPY": "Japanese Yen",
    "CNY": "Chinese Yuan",
    "RUB": "Russian Ruble",
    "AED": "UAE Dirham",
    "TRY": "Turkish Lira",
    "KZT": "Kazakhstani Tenge",
    "UAH": "Ukrainian Hryvnia",
    "PLN": "Polish Zloty",
    "VND": "Vietnamese Dong",
}

_CRYPTO: Dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "USDT": "Tether USD",
    "USDC": "USD Coin",
    "DAI": "Dai",
    "BUSD": "Binance USD",
    "TUSD": "TrueUSD",
    "USDP": "Pax Dollar",
    "GUSD": "Gemini Dollar",
    "FDUSD": "First Digital USD",
    "SOL": "Solana",
    "BNB": "BNB",
    "DOGE": "Dogecoin",
    "TON": "Toncoin",
    "LTC": "Litecoin",
    "ADA": "Cardano",
    "XRP": "XRP",
}

ALL_CURRENCIES: List[Currency] = sorted(
    [Currency(c, n, CurrencyKind.FIAT) for c, n in _FIAT.items()]
    + [Currency(c, n, CurrencyKind.CRYPTO) for c, n in _CRYPTO.items()],
    key=lambda c: c.code,
)
_BY_CODE: Dict[str, Currency] = {c.code: c for c in ALL_CURRENCIES}


def lookup(code: str) -> Optional[Currency]:
    return _BY_CODE.get(code.upper())


def kind_of(code: str) -> CurrencyKind:
    """Kind for a code; codes outside the catalog are treated as fiat."""
    currency = lookup(code)
    return currency.kind if currency else CurrencyKind.FIAT
