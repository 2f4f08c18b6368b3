"""Staleness helpers for cached rates.

Crypto is expected to refresh roughly every minute while fiat providers update
a few times a day, so each kind has its own threshold (configured in
Settings). A missing timestamp is always stale.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fxcache.core.config import Settings
from fxcache.models import CurrencyKind


@dataclass
class StaleThresholds:
    fiat_seconds: int
    crypto_seconds: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaleThresholds":
        return cls(settings.fiat_stale_after_seconds, settings.crypto_stale_after_seconds)

    def for_kind(self, kind: CurrencyKind) -> int:
        return self.crypto_seconds if kind is CurrencyKind.CRYPTO else self.fiat_seconds


def age_seconds(updated_at: Optional[datetime], now: datetime) -> Optional[float]:
    if updated_at is None:
        return None
    return max(0.0, (now - updated_at).total_seconds())


def is_stale(
    kind: CurrencyKind,
    updated_at: Optional[datetime],
    now: datetime,
    thresholds: StaleThresholds,
) -> bool:
    age = age_seconds(updated_at, now)
    if age is None:
        return True
    return age > thresholds.for_kind(kind)


def describe_age(updated_at: Optional[datetime], now: datetime) -> str:
    age = age_seconds(updated_at, now)
    if age is None:
        return "no data"
    seconds = int(age)
    if seconds < 5:
        return "just now"
    if seconds < 90:
        return f"{seconds} s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} h ago"
    days = hours // 24
    if days < 30:
        return f"{days} d ago"
    return f"{days // 30} mo ago"


__all__ = ["StaleThresholds", "age_seconds", "is_stale", "describe_age"]
