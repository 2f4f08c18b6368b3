"""RateStore upsert-merge, reads, clear, selection persistence."""

import sqlite3
from datetime import timedelta

from fxcache.db.dal import RateStore
from fxcache.db.migrate import CURRENT_SCHEMA_VERSION, apply_migrations
from fxcache.models import Selection
from helpers import T0


def test_upsert_same_value_twice_keeps_one_record_with_second_timestamp(store):
    later = T0 + timedelta(minutes=5)
    store.upsert_merge({"EUR": 0.92}, T0)
    store.upsert_merge({"EUR": 0.92}, later)
    records = store.read_all()
    assert len(records) == 1
    assert records[0].code == "EUR"
    assert records[0].updated_at == later


def test_upsert_merges_without_touching_other_codes(store):
    store.upsert_merge({"EUR": 0.92, "BTC": 0.00002}, T0)
    store.upsert_merge({"EUR": 0.95}, T0 + timedelta(seconds=30))
    rates = store.rate_map()
    assert rates == {"BTC": 0.00002, "EUR": 0.95}
    assert store.read_one("btc").updated_at == T0
    assert store.last_updated() == T0 + timedelta(seconds=30)


def test_non_positive_or_non_finite_values_are_not_written(store):
    written = store.upsert_merge(
        {"EUR": 0.0, "GBP": -1, "CHF": float("inf"), "SEK": float("nan"), "JPY": 150.0}, T0
    )
    assert written == 1
    assert store.rate_map() == {"JPY": 150.0}


def test_empty_store(store):
    assert store.read_all() == []
    assert store.read_one("EUR") is None
    assert store.last_updated() is None


def test_clear_all(store):
    store.upsert_merge({"EUR": 0.92, "RUB": 90.0}, T0)
    store.clear_all()
    assert store.read_all() == []


def test_rates_survive_reopen(store):
    store.upsert_merge({"EUR": 0.92}, T0)
    reopened = RateStore(store.db_path)
    assert reopened.read_one("EUR").units_per_usd == 0.92


def test_read_failure_yields_empty(tmp_path):
    # no migrations applied: the rates table does not exist
    bare = RateStore(tmp_path / "bare.sqlite3")
    assert bare.read_all() == []
    assert bare.last_updated() is None


def test_write_failure_is_swallowed(tmp_path):
    bare = RateStore(tmp_path / "bare.sqlite3")
    assert bare.upsert_merge({"EUR": 0.9}, T0) == 0


def test_migrations_are_idempotent(tmp_path):
    db_path = tmp_path / "m.sqlite3"
    assert apply_migrations(db_path) == CURRENT_SCHEMA_VERSION
    assert apply_migrations(db_path) == CURRENT_SCHEMA_VERSION
    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute("SELECT value FROM metadata WHERE key='schema_version'").fetchone()
    finally:
        conn.close()
    assert row[0] == str(CURRENT_SCHEMA_VERSION)


def test_selection_defaults_then_round_trips(store):
    default = store.get_selection(["USD", "EUR", "BTC"])
    assert default.codes == ["USD", "EUR", "BTC"]
    assert default.base == "USD"

    store.set_selection(Selection(codes=["eur", "btc"], base="BTC"))
    loaded = store.get_selection(["USD"])
    assert loaded.codes == ["EUR", "BTC"]
    assert loaded.base == "BTC"


def test_selection_base_falls_back_to_first_code():
    assert Selection(codes=["EUR", "RUB"], base="JPY").base == "EUR"
    assert Selection(codes=[], base="JPY").base == "USD"
