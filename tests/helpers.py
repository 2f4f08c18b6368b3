"""Shared test doubles: deterministic clock, mock HTTP routing, fake fetchers."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

import httpx

from fxcache.models import RatesSnapshot

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

FRANKFURTER = "api.frankfurter.app"
ER_HOST = "api.exchangerate.host"
OPEN_ER = "open.er-api.com"
COINGECKO = "api.coingecko.com"


class TickingClock:
    """Deterministic clock: each call returns the next second after T0."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


class RecordingHandler:
    """httpx.MockTransport handler routing by host and counting calls per host."""

    def __init__(self, routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> None:
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def calls(self, host: str) -> int:
        return sum(1 for r in self.requests if r.url.host == host)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.host)
        if route is None:
            raise httpx.ConnectError("host unreachable", request=request)
        return route(request)


def json_response(payload: object, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return _respond


def raw_json_response(body: str) -> Callable[[httpx.Request], httpx.Response]:
    """Literal body, for JSON that the encoder would refuse to produce (NaN, Infinity)."""

    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body.encode(), headers={"Content-Type": "application/json"})

    return _respond


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectTimeout("timed out", request=request)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def er_host_payload(rates: Dict[str, float]) -> dict:
    return {"base": "USD", "date": "2026-01-01", "rates": rates}


def frankfurter_payload(rates: Dict[str, float]) -> dict:
    return {"amount": 1.0, "base": "USD", "date": "2026-01-01", "rates": rates}


def open_er_payload(rates: Dict[str, float]) -> dict:
    return {"result": "success", "base_code": "USD", "rates": rates}


def snapshot(rates: Dict[str, float], ts: datetime = T0, missing: Sequence[str] = ()) -> RatesSnapshot:
    merged = dict(rates)
    merged["USD"] = 1.0
    return RatesSnapshot(
        rates=merged,
        fiat_timestamp=ts,
        crypto_timestamp=ts,
        combined_timestamp=ts,
        missing=tuple(missing),
    )


class FakeFetcher:
    """Orchestrator double returning (or raising) queued results in order.

    Once the queue is down to its last item, that item is reused.
    """

    def __init__(self, *results: object, gate: Optional[asyncio.Event] = None) -> None:
        self.results = list(results)
        self.gate = gate
        self.calls: List[tuple] = []

    async def fetch_all(self, codes, include_fiat=True, include_crypto=True) -> RatesSnapshot:
        self.calls.append((list(codes), include_fiat, include_crypto))
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(result, BaseException):
            raise result
        return result
