"""Smoke script for the live upstream providers.

Demonstrates:
 1. Each fiat provider on its own (which ones currently answer, how many codes).
 2. One crypto batch for the default selection.
 3. A full fetch_all cycle as the service would run it.

NOTE: Hits the real public APIs; this is a diagnostic and not a formal test.
"""

import asyncio
import os
import sys
from pprint import pprint


async def run():
    from fxcache.core.config import get_settings
    from fxcache.core.errors import RateFetchError
    from fxcache.core.logging import init_logging
    from fxcache.services.rates.fetcher import RateFetcher, split_codes
    from fxcache.services.rates.fiat_chain import FiatFallbackChain

    settings = get_settings()
    init_logging(debug=True)
    fetcher = RateFetcher.from_settings(settings)
    out = {"fiat_providers": {}, "crypto": {}, "fetch_all": {}}
    fiat_codes, crypto_codes = split_codes(settings.default_selection)
    try:
        for provider in fetcher.fiat_chain.providers:
            single = FiatFallbackChain([provider], fetcher.fiat_chain.client)
            try:
                res = await single.fetch(fiat_codes)
                out["fiat_providers"][provider.name] = {
                    "rates": len(res.rates),
                    "missing": list(res.missing),
                }
            except RateFetchError as e:
                out["fiat_providers"][provider.name] = {"error": str(e)}

        try:
            crypto = await fetcher.crypto.fetch(crypto_codes)
            out["crypto"] = {"rates": crypto.rates, "dropped": list(crypto.dropped)}
        except RateFetchError as e:
            out["crypto"] = {"error": str(e)}

        try:
            snap = await fetcher.fetch_all(settings.default_selection)
            out["fetch_all"] = {
                "status": snap.status.value,
                "selected": {c: snap.rates.get(c) for c in settings.default_selection},
                "combined_timestamp": snap.combined_timestamp.isoformat(),
                "warnings": list(snap.warnings),
            }
        except RateFetchError as e:
            out["fetch_all"] = {"error": str(e)}
    finally:
        await fetcher.aclose()

    pprint(out)


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    asyncio.run(run())
