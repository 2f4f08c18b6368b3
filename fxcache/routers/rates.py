from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from fxcache.core.config import Settings
from fxcache.models import CurrencyKind, RateRecord, RefreshOutcome, kind_of, utcnow
from fxcache.services.rates.conversion import convert_selection
from fxcache.services.rates.refresh import RateRefreshService
from fxcache.services.staleness import StaleThresholds, age_seconds, describe_age, is_stale

"""Rates router: read the cached table, trigger refreshes, convert amounts.

Endpoints:
    - GET  /rates             -> every cached record with kind and staleness
    - GET  /rates/status      -> fetch flag and per-class update times
    - POST /rates/refresh     -> run one fetch cycle (fiat and/or crypto)
    - GET  /rates/convert     -> amount in the base currency across the selection
    - GET  /rates/{code}      -> one cached record
"""

router = APIRouter(prefix="/rates", tags=["rates"])


def get_service(request: Request) -> RateRefreshService:
    return request.app.state.rate_service


def get_thresholds(request: Request) -> StaleThresholds:
    settings: Settings = request.app.state.settings
    return StaleThresholds.from_settings(settings)


class RateOut(BaseModel):
    code: str
    units_per_usd: float
    updated_at: datetime
    kind: CurrencyKind
    stale: bool
    age: str

    @classmethod
    def from_record(
        cls, record: RateRecord, now: datetime, thresholds: StaleThresholds
    ) -> "RateOut":
        kind = kind_of(record.code)
        return cls(
            code=record.code,
            units_per_usd=record.units_per_usd,
            updated_at=record.updated_at,
            kind=kind,
            stale=is_stale(kind, record.updated_at, now, thresholds),
            age=describe_age(record.updated_at, now),
        )


class ClassStatus(BaseModel):
    updated_at: Optional[datetime]
    age_seconds: Optional[float]
    age: str
    stale: bool


class StatusOut(BaseModel):
    is_fetching: bool
    last_updated: Optional[datetime]
    fiat: ClassStatus
    crypto: ClassStatus
    warnings: List[str]
    missing: List[str]


class RefreshOut(BaseModel):
    outcome: RefreshOutcome
    is_fetching: bool
    last_updated: Optional[datetime]


class ConvertedOut(BaseModel):
    code: str
    kind: CurrencyKind
    amount: Optional[float]
    has_rate: bool
    is_base: bool


def _class_status(
    kind: CurrencyKind, ts: Optional[datetime], now: datetime, thresholds: StaleThresholds
) -> ClassStatus:
    return ClassStatus(
        updated_at=ts,
        age_seconds=age_seconds(ts, now),
        age=describe_age(ts, now),
        stale=is_stale(kind, ts, now, thresholds),
    )


@router.get("/", response_model=List[RateOut], summary="List cached rates")
async def list_rates(
    svc: RateRefreshService = Depends(get_service),
    thresholds: StaleThresholds = Depends(get_thresholds),
):
    now = utcnow()
    return [RateOut.from_record(r, now, thresholds) for r in svc.store.read_all()]


@router.get("/status", response_model=StatusOut, summary="Fetch status and freshness")
async def status(
    svc: RateRefreshService = Depends(get_service),
    thresholds: StaleThresholds = Depends(get_thresholds),
):
    now = utcnow()
    snap = svc.last_snapshot
    return StatusOut(
        is_fetching=svc.is_fetching,
        last_updated=svc.last_updated,
        fiat=_class_status(CurrencyKind.FIAT, svc.last_updated_fiat, now, thresholds),
        crypto=_class_status(CurrencyKind.CRYPTO, svc.last_updated_crypto, now, thresholds),
        warnings=list(snap.warnings) if snap else [],
        missing=list(snap.missing) if snap else [],
    )


@router.post("/refresh", response_model=RefreshOut, summary="Run one fetch cycle now")
async def refresh(
    fiat: bool = Query(True, description="Fetch fiat rates"),
    crypto: bool = Query(True, description="Fetch crypto prices"),
    svc: RateRefreshService = Depends(get_service),
):
    outcome = await svc.refresh_now(include_fiat=fiat, include_crypto=crypto)
    return RefreshOut(outcome=outcome, is_fetching=svc.is_fetching, last_updated=svc.last_updated)


@router.get("/convert", response_model=List[ConvertedOut], summary="Convert across selection")
async def convert(
    amount: float = Query(1.0, description="Amount expressed in the base currency"),
    base: Optional[str] = Query(None, description="Base code (defaults to selection base)"),
    svc: RateRefreshService = Depends(get_service),
):
    selection = svc.selection
    base_code = (base or selection.base).upper()
    codes = list(selection.codes)
    if base_code not in codes:
        codes.insert(0, base_code)
    rows = convert_selection(amount, base_code, codes, svc.rate_map())
    return [
        ConvertedOut(
            code=r.currency.code,
            kind=r.currency.kind,
            amount=r.amount if r.has_rate else None,
            has_rate=r.has_rate,
            is_base=r.is_base,
        )
        for r in rows
    ]


@router.get("/{code}", response_model=RateOut, summary="One cached rate")
async def get_rate(
    code: str,
    svc: RateRefreshService = Depends(get_service),
    thresholds: StaleThresholds = Depends(get_thresholds),
):
    record = svc.store.read_one(code)
    if record is None:
        raise HTTPException(status_code=404, detail=f"no cached rate for {code.upper()}")
    return RateOut.from_record(record, utcnow(), thresholds)
