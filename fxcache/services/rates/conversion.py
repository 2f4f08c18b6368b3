from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from fxcache.models import Currency, lookup

"""Display conversion across the selected currencies.

Every rate is units per 1 USD, so an amount typed in the base currency is first
turned into USD (amount / rate[base]) and then into each target
(usd * rate[target]). Codes without a rate are reported with has_rate=False
instead of a made-up number.
"""


@dataclass(frozen=True)
class CurrencyAmount:
    currency: Currency
    amount: float
    has_rate: bool
    is_base: bool


def amount_in_usd(amount: float, base: str, rates: Mapping[str, float]) -> Optional[float]:
    base = base.upper()
    if base == "USD":
        return amount
    base_rate = rates.get(base)
    if base_rate is None or base_rate <= 0:
        return None
    return amount / base_rate


def convert_selection(
    amount: float, base: str, codes: Sequence[str], rates: Mapping[str, float]
) -> List[CurrencyAmount]:
    base = base.upper()
    usd = amount_in_usd(amount, base, rates)
    out: List[CurrencyAmount] = []
    for code in codes:
        currency = lookup(code)
        if currency is None:
            continue
        if currency.code == base:
            out.append(CurrencyAmount(currency, amount, has_rate=True, is_base=True))
            continue
        target = 1.0 if currency.code == "USD" else rates.get(currency.code)
        if usd is None or target is None:
            out.append(CurrencyAmount(currency, 0.0, has_rate=False, is_base=False))
            continue
        out.append(CurrencyAmount(currency, usd * target, has_rate=True, is_base=False))
    return out
