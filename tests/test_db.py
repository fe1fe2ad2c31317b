import sqlite3

import pytest

from rsr.db import StatusStore, StoreNotReady
from rsr.models import DevModeStatus


def test_calls_before_start_raise(tmp_path):
    s = StatusStore(str(tmp_path / "late.db"))
    with pytest.raises(StoreNotReady):
        s.get_devmode_statuses()


def test_every_store_call_closes_its_connection(store, monkeypatch):
    opened = []
    real_open = store._open

    def tracking_open():
        conn = real_open()
        opened.append(conn)
        return conn

    monkeypatch.setattr(store, "_open", tracking_open)

    store.save_devmode_status(DevModeStatus("p1", "p1-devmode"))
    assert store.get_devmode_status("p1") == DevModeStatus("p1", "p1-devmode")

    assert len(opened) == 2
    for conn in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
