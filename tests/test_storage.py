"""Tests for the SQLite listing store and sink fan-out."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from zp_agency.models import NormalizedRecord
from zp_agency.storage import MultiSink, Sink, Storage


@pytest.fixture
def db(tmp_path):
    s = Storage(str(tmp_path / "test.db"))
    yield s
    s.close()


def _make_record(**overrides):
    base = {
        "id": "49876543",
        "url": "https://www.zonaprop.com.ar/propiedades/depto-49876543.html",
        "operacion": "Venta",
        "precio": "120000",
        "moneda": "USD",
        "calle": "Av. Corrientes",
        "altura": "3200",
        "barrio": "Almagro",
    }
    base.update(overrides)
    return NormalizedRecord(**base)


def test_init_creates_table(db):
    tables = db.conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    assert "properties" in {row["name"] for row in tables}


def test_save_and_exists(db):
    assert db.exists("49876543") is False
    assert db.save(_make_record()) is True
    assert db.exists("49876543") is True
    assert db.count() == 1


def test_save_upserts_by_id(db):
    db.save(_make_record())
    db.save(_make_record(precio="110000"))
    assert db.count() == 1
    assert db.get_record("49876543").precio == "110000"


def test_record_round_trip(db):
    record = _make_record(m2T="70", antiguedad="A estrenar")
    db.save(record)
    assert db.get_record("49876543") == record


def test_save_rejects_record_without_id(db):
    assert db.save(_make_record(id="")) is False
    assert db.count() == 0
    assert db.exists("") is False


def test_get_record_missing(db):
    assert db.get_record("nope") is None


def test_get_all_records_in_insert_order(db):
    db.save(_make_record(id="2"))
    db.save(_make_record(id="1"))
    assert [r.id for r in db.get_all_records()] == ["2", "1"]


def test_save_returns_false_on_database_error(db):
    db.conn.execute("DROP TABLE properties")
    assert db.save(_make_record()) is False


def test_migrate_adds_missing_columns(tmp_path):
    path = tmp_path / "old.db"
    conn = sqlite3.connect(path)
    conn.execute(
        "CREATE TABLE properties (id_internal INTEGER PRIMARY KEY, id TEXT NOT NULL UNIQUE, "
        "url TEXT NOT NULL, created_at TEXT NOT NULL DEFAULT (datetime('now')), "
        "updated_at TEXT NOT NULL DEFAULT (datetime('now')))"
    )
    conn.commit()
    conn.close()

    storage = Storage(str(path))
    try:
        assert storage.save(_make_record()) is True
        assert storage.get_record("49876543").barrio == "Almagro"
    finally:
        storage.close()


def test_multi_sink_fan_out():
    a, b = MagicMock(spec=Sink), MagicMock(spec=Sink)
    a.save.return_value = True
    b.save.return_value = False
    sink = MultiSink([a, b])
    record = _make_record()
    assert sink.save(record) is False
    a.save.assert_called_once_with(record)
    b.save.assert_called_once_with(record)


def test_multi_sink_exists_requires_all():
    a, b = MagicMock(spec=Sink), MagicMock(spec=Sink)
    a.exists.return_value = True
    b.exists.return_value = False
    assert MultiSink([a, b]).exists("1") is False
    b.exists.return_value = True
    assert MultiSink([a, b]).exists("1") is True


def test_multi_sink_close_continues_after_error():
    a, b = MagicMock(spec=Sink), MagicMock(spec=Sink)
    a.close.side_effect = RuntimeError("boom")
    MultiSink([a, b]).close()
    b.close.assert_called_once()


def test_multi_sink_requires_sinks():
    with pytest.raises(ValueError, match="at least one sink"):
        MultiSink([None])


def test_multi_sink_save_continues_after_error(tmp_path):
    broken = MagicMock(spec=Sink)
    broken.save.side_effect = OSError("workbook locked")
    store = Storage(str(tmp_path / "fanout.db"))
    try:
        sink = MultiSink([broken, store])
        assert sink.save(_make_record()) is False
        assert store.count() == 1
    finally:
        store.close()
