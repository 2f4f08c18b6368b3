"""Foreground ticker and background refresher (budget, expiration)."""

import asyncio

import pytest

from fxcache.core.errors import TransportError
from fxcache.models import Selection
from fxcache.services.rates.refresh import RateRefreshService
from fxcache.services.scheduler import BackgroundRefresher, ForegroundTicker
from helpers import T0, FakeFetcher, snapshot


async def _no_sleep(delay: float) -> None:
    return None


def make_service(store, fetcher):
    return RateRefreshService(
        store, fetcher, Selection(codes=["EUR", "BTC"]), backoff_seconds=0, sleep=_no_sleep
    )


@pytest.mark.asyncio
async def test_background_success_reports_true(store):
    fetcher = FakeFetcher(snapshot({"EUR": 0.92}))
    bg = BackgroundRefresher(make_service(store, fetcher), ["USD", "EUR"], budget_seconds=5)
    assert await bg.run_once() is True
    assert fetcher.calls[0][0] == ["USD", "EUR"]
    assert store.read_one("EUR") is not None


@pytest.mark.asyncio
async def test_background_failure_reports_false(store):
    bg = BackgroundRefresher(
        make_service(store, FakeFetcher(TransportError("down"))), ["EUR"], budget_seconds=5
    )
    assert await bg.run_once() is False
    assert store.read_all() == []


@pytest.mark.asyncio
async def test_expired_cycle_is_unsuccessful_and_writes_nothing(store):
    store.upsert_merge({"EUR": 0.9}, T0)
    gate = asyncio.Event()
    svc = make_service(store, FakeFetcher(snapshot({"EUR": 0.5}), gate=gate))
    bg = BackgroundRefresher(svc, ["EUR"], budget_seconds=5)

    run = asyncio.create_task(bg.run_once())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert bg.expire() is True

    assert await run is False
    assert svc.is_fetching is False
    assert store.rate_map() == {"EUR": 0.9}
    assert bg.expire() is False


@pytest.mark.asyncio
async def test_budget_overrun_is_unsuccessful(store):
    svc = make_service(store, FakeFetcher(snapshot({"EUR": 0.5}), gate=asyncio.Event()))
    bg = BackgroundRefresher(svc, ["EUR"], budget_seconds=0.01)
    assert await bg.run_once() is False
    assert store.read_all() == []


@pytest.mark.asyncio
async def test_ticker_refreshes_each_interval_and_stops(store):
    fetcher = FakeFetcher(snapshot({"EUR": 0.92}))
    svc = make_service(store, fetcher)
    ticks = asyncio.Queue()

    async def fake_sleep(delay: float) -> None:
        await ticks.get()

    ticker = ForegroundTicker(svc, interval_seconds=60, sleep=fake_sleep)
    ticker.start()
    assert ticker.running
    for _ in range(2):
        ticks.put_nowait(None)
        for _ in range(5):
            await asyncio.sleep(0)
    await ticker.stop()

    assert ticker.running is False
    assert ticker.ticks == 2
    assert len(fetcher.calls) == 2
    assert fetcher.calls[0][0] == ["EUR", "BTC"]
