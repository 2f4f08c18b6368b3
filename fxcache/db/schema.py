"""Database schema DDL definitions and initialization utilities.

Tables:
  - rates: last known units-per-USD value for each currency code
  - metadata: key/value store (schema version, consumer selection)
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

RATES_DDL = """
CREATE TABLE IF NOT EXISTS rates (
    code TEXT PRIMARY KEY, -- 'USD', 'EUR', 'BTC', ...
    units_per_usd REAL NOT NULL CHECK (units_per_usd > 0),
    updated_at TEXT NOT NULL -- ISO timestamp (UTC)
);
"""

METADATA_DDL = f"""
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

RATES_UPDATED_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_rates_updated_at ON rates(updated_at);"
)

DDL_ORDER: Sequence[str] = (
    RATES_DDL,
    METADATA_DDL,
    RATES_UPDATED_INDEX_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
