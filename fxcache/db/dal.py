"""Data Access Layer for the durable rate table.

Responsibilities
----------------
- Keep exactly one row per currency code with its last known units-per-USD
  value and update time (upsert-merge, never history).
- Serialize all writes through a single lock so concurrent refresh cycles
  cannot interleave; each merge is one transaction (all rows or none).
- Treat storage as best effort: write failures are logged and swallowed,
  read failures look like an empty cache.
- Persist the consumer's selection in the metadata table for the HTTP layer.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from fxcache.models import RateRecord, Selection

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"
SELECTION_KEY = "selection"

logger = logging.getLogger("fxcache.store")


def _to_iso(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def _from_iso(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class RateStore:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> RateRecord:
        return RateRecord(
            code=row["code"],
            units_per_usd=row["units_per_usd"],
            updated_at=_from_iso(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Rates
    def upsert_merge(self, rates: Mapping[str, float], timestamp: datetime) -> int:
        """Insert or overwrite one row per code; returns rows written.

        Non-positive and non-finite values are skipped. A storage failure rolls the whole
        merge back and is logged, never raised.
        """
        stamp = _to_iso(timestamp)
        rows = []
        for code, value in rates.items():
            if value is None or not (math.isfinite(value) and value > 0):
                logger.warning("skip unusable rate code=%s value=%r", code, value)
                continue
            rows.append((code.upper(), float(value), stamp))
        if not rows:
            return 0
        with self._write_lock:
            try:
                conn = self._connect()
                try:
                    with conn:
                        conn.executemany(
                            """
                            INSERT INTO rates (code, units_per_usd, updated_at)
                            VALUES (?, ?, ?)
                            ON CONFLICT(code) DO UPDATE SET
                                units_per_usd = excluded.units_per_usd,
                                updated_at = excluded.updated_at
                            """,
                            rows,
                        )
                finally:
                    conn.close()
            except sqlite3.Error:
                logger.exception("rate persist failed rows=%d", len(rows))
                return 0
        logger.debug("persisted rates rows=%d at=%s", len(rows), stamp)
        return len(rows)

    def read_all(self) -> List[RateRecord]:
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute("SELECT code, units_per_usd, updated_at FROM rates ORDER BY code")
                return [self._row_to_record(r) for r in cur.fetchall()]
        except (sqlite3.Error, ValueError):
            logger.exception("rate read failed; treating cache as empty")
            return []

    def read_one(self, code: str) -> Optional[RateRecord]:
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute(
                    "SELECT code, units_per_usd, updated_at FROM rates WHERE code = ?",
                    (code.upper(),),
                )
                row = cur.fetchone()
                return self._row_to_record(row) if row else None
        except (sqlite3.Error, ValueError):
            logger.exception("rate read failed code=%s", code)
            return None

    def rate_map(self) -> Dict[str, float]:
        return {r.code: r.units_per_usd for r in self.read_all()}

    def last_updated(self) -> Optional[datetime]:
        records = self.read_all()
        if not records:
            return None
        return max(r.updated_at for r in records)

    def clear_all(self) -> None:
        """Delete every rate row. Only used for seeding previews and tests."""
        with self._write_lock:
            try:
                conn = self._connect()
                try:
                    with conn:
                        conn.execute("DELETE FROM rates")
                finally:
                    conn.close()
            except sqlite3.Error:
                logger.exception("rate clear failed")

    # ------------------------------------------------------------------
    # Consumer selection (metadata)
    def get_selection(self, default_codes: List[str]) -> Selection:
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute("SELECT value FROM metadata WHERE key = ?", (SELECTION_KEY,))
                row = cur.fetchone()
        except sqlite3.Error:
            logger.exception("selection read failed")
            row = None
        if row:
            try:
                data = json.loads(row[0])
                codes = data.get("codes") or []
                if codes:
                    return Selection(codes=list(codes), base=data.get("base", ""))
            except (ValueError, AttributeError):
                logger.warning("ignoring malformed stored selection")
        return Selection(codes=list(default_codes), base=default_codes[0] if default_codes else "USD")

    def set_selection(self, selection: Selection) -> None:
        payload = json.dumps({"codes": selection.codes, "base": selection.base})
        with self._write_lock:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        f"""
                        INSERT INTO metadata (key, value)
                        VALUES (?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = ({UTC_NOW_SQL})
                        """,
                        (SELECTION_KEY, payload),
                    )
            finally:
                conn.close()
