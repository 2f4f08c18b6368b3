"""Smoke script for the durable rate cache.

Demonstrates:
 1. Refresh into a fresh temporary database through the HTTP surface.
 2. Reading the cached table back with staleness flags.
 3. A second app instance on the same file sees the rates offline (no refresh).

NOTE: The first step hits the real public APIs.
"""

import json
import os
import sys
import tempfile
from pathlib import Path


def run():
    from fastapi.testclient import TestClient

    from fxcache.core.config import Settings
    from fxcache.core.errors import TransportError
    from fxcache.main import create_app

    with tempfile.TemporaryDirectory() as d:
        settings = Settings(data_dir=Path(d), db_path=Path(d) / "smoke.db", enable_ticker=False)
        settings.init_post_load()

        with TestClient(create_app(settings_override=settings)) as online:
            refreshed = online.post("/rates/refresh").json()
            status = online.get("/rates/status").json()

        class Offline:
            async def fetch_all(self, codes, include_fiat=True, include_crypto=True):
                raise TransportError("offline")

        with TestClient(create_app(settings_override=settings, fetcher=Offline())) as offline:
            after_restart = offline.get("/rates/").json()
            offline_refresh = offline.post("/rates/refresh").json()

        print(
            json.dumps(
                {
                    "refresh": refreshed,
                    "status": status,
                    "cached_after_restart": len(after_restart),
                    "sample": after_restart[:3],
                    "offline_refresh": offline_refresh,
                },
                indent=2,
                default=str,
            )
        )


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    run()
