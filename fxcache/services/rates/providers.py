from __future__ import annotations

"""Concrete fiat providers and the closed registry that resolves them.

All three endpoints are free and keyless and quote against base USD, so the
decoded values are already units per 1 USD. The only normalization applied is
upper-casing codes and dropping non-positive or non-finite entries;
non-numeric values are a schema error.
"""
import logging
import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping

from fxcache.core.errors import MalformedResponse, UnsupportedProvider
from .base import RateProvider

logger = logging.getLogger("fxcache.providers")


def _decode_rates(payload: Mapping[str, Any], provider: str) -> Dict[str, float]:
    rates = payload.get("rates")
    if not isinstance(rates, dict):
        raise MalformedResponse(f"{provider}: missing 'rates' object")
    base = payload.get("base") or payload.get("base_code")
    if base is not None and str(base).upper() != "USD":
        raise MalformedResponse(f"{provider}: expected base USD, got {base!r}")
    out: Dict[str, float] = {}
    for code, value in rates.items():
        # bool is an int subclass; a true/false rate is a schema error
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedResponse(f"{provider}: non-numeric rate for {code!r}")
        if not math.isfinite(value) or value <= 0:
            logger.debug("%s: dropping unusable rate %s=%r", provider, code, value)
            continue
        out[str(code).upper()] = float(value)
    return out


class ExchangeRateHostProvider(RateProvider):
    """``{"base": "USD", "date": ..., "rates": {...}}``"""

    name = "exchangerate-host"
    url = "https://api.exchangerate.host/latest"
    params = {"base": "USD"}

    def decode(self, payload: Mapping[str, Any]) -> Dict[str, float]:
        # Keyed variant of this API answers {"success": false, "error": {...}}
        if payload.get("success") is False:
            raise MalformedResponse(f"{self.name}: provider reported error {payload.get('error')!r}")
        if "date" not in payload:
            raise MalformedResponse(f"{self.name}: missing 'date'")
        return _decode_rates(payload, self.name)


class FrankfurterProvider(RateProvider):
    """``{"amount": 1.0, "base": "USD", "date": ..., "rates": {...}}``"""

    name = "frankfurter"
    url = "https://api.frankfurter.app/latest"
    params = {"from": "USD"}

    def decode(self, payload: Mapping[str, Any]) -> Dict[str, float]:
        for key in ("amount", "base", "date"):
            if key not in payload:
                raise MalformedResponse(f"{self.name}: missing '{key}'")
        amount = payload["amount"]
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount != 1:
            raise MalformedResponse(f"{self.name}: unexpected amount {amount!r}")
        return _decode_rates(payload, self.name)


class OpenErApiProvider(RateProvider):
    """``{"result": "success", "base_code": "USD", "rates": {...}}``"""

    name = "open-er-api"
    url = "https://open.er-api.com/v6/latest/USD"

    def decode(self, payload: Mapping[str, Any]) -> Dict[str, float]:
        result = payload.get("result")
        if result != "success":
            raise MalformedResponse(f"{self.name}: result={result!r}")
        return _decode_rates(payload, self.name)


class FiatSource(str, Enum):
    """Closed set of known fiat providers, in default priority order."""

    EXCHANGERATE_HOST = "exchangerate-host"
    FRANKFURTER = "frankfurter"
    OPEN_ER_API = "open-er-api"

    @classmethod
    def from_name(cls, name: str) -> "FiatSource":
        try:
            return cls(name.strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise UnsupportedProvider(
                f"Unknown fiat provider '{name}'. Allowed: {allowed}"
            ) from None

    def make(self) -> RateProvider:
        return _PROVIDER_REGISTRY[self]()


_PROVIDER_REGISTRY = {
    FiatSource.EXCHANGERATE_HOST: ExchangeRateHostProvider,
    FiatSource.FRANKFURTER: FrankfurterProvider,
    FiatSource.OPEN_ER_API: OpenErApiProvider,
}


def resolve_fiat_providers(names: Iterable[str]) -> List[RateProvider]:
    """Turn configured provider names into provider instances, preserving order."""
    providers = [FiatSource.from_name(n).make() for n in names]
    if not providers:
        raise UnsupportedProvider("at least one fiat provider must be configured")
    return providers


def parse(raw: Mapping[str, Any], provider_id: str) -> Dict[str, float]:
    """Decode a raw payload for the provider identified by name."""
    return FiatSource.from_name(provider_id).make().decode(raw)
