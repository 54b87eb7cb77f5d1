from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from aliceifo.runtime.sqlite_db import SqliteDB


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    return row[0]


def test_sqlite_operational_pragmas_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALICEIFO_MODE", "prod")
    monkeypatch.delenv("ALICEIFO_SQLITE_SYNCHRONOUS", raising=False)
    monkeypatch.setenv("ALICEIFO_SQLITE_BUSY_TIMEOUT_MS", "1234")

    db = SqliteDB(path=str(tmp_path / "aliceifo.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(_pragma(con, "journal_mode")).lower() == "wal"

        # FULL is the prod default.
        assert int(_pragma(con, "synchronous")) == 2

        assert int(_pragma(con, "foreign_keys")) == 1

        # MEMORY corresponds to 2
        assert int(_pragma(con, "temp_store")) == 2

        assert int(_pragma(con, "busy_timeout")) == 1234


def test_sqlite_synchronous_defaults_to_normal_outside_prod(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ALICEIFO_MODE", "dev")
    monkeypatch.delenv("ALICEIFO_SQLITE_SYNCHRONOUS", raising=False)

    db = SqliteDB(path=str(tmp_path / "aliceifo.db"))
    db.init_schema()
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "aliceifo.db"))
    db.init_schema()
    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='99' WHERE key='schema_version';")

    with pytest.raises(RuntimeError):
        db.init_schema()
