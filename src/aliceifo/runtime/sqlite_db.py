# src/aliceifo/runtime/sqlite_db.py
from __future__ import annotations

import copy
import json
import os
import random
import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

Json = Dict[str, Any]

_SYNC_LEVELS = ("OFF", "NORMAL", "FULL", "EXTRA")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS meta (
      key TEXT PRIMARY KEY,
      value TEXT NOT NULL
    );
    """,
    # total_claimed is TEXT: ALICE units overflow SQLite INTEGER.
    """
    CREATE TABLE IF NOT EXISTS ledger_state (
      id INTEGER PRIMARY KEY CHECK (id = 1),
      total_claimed TEXT NOT NULL,
      state_json TEXT NOT NULL,
      updated_ts_ms INTEGER NOT NULL
    );
    """,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding for persisted ledger snapshots."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


def _total_claimed_of(st: Json) -> str:
    claims = st.get("claims")
    total = claims.get("total_claimed", 0) if isinstance(claims, dict) else 0
    try:
        return str(int(total))
    except (TypeError, ValueError):
        return "0"


@dataclass(frozen=True)
class SqliteSettings:
    """Operational knobs, read from ALICEIFO_SQLITE_* at connect time."""

    synchronous: str
    connect_timeout_s: float
    busy_timeout_ms: int
    allow_non_wal: bool
    write_deadline_ms: int
    backoff_base_s: float
    backoff_max_s: float

    @classmethod
    def from_env(cls) -> "SqliteSettings":
        mode = (os.environ.get("ALICEIFO_MODE") or "prod").strip().lower()
        default_sync = "FULL" if mode == "prod" else "NORMAL"
        sync = (os.environ.get("ALICEIFO_SQLITE_SYNCHRONOUS") or default_sync).strip().upper()

        connect_ms = _env_int("ALICEIFO_SQLITE_CONNECT_TIMEOUT_MS", 30_000)
        base_s = max(1, _env_int("ALICEIFO_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0
        return cls(
            synchronous=sync if sync in _SYNC_LEVELS else default_sync,
            connect_timeout_s=connect_ms / 1000.0,
            busy_timeout_ms=max(0, _env_int("ALICEIFO_SQLITE_BUSY_TIMEOUT_MS", connect_ms)),
            allow_non_wal=(os.environ.get("ALICEIFO_SQLITE_ALLOW_NON_WAL") or "").strip().lower() in {"1", "true"},
            write_deadline_ms=max(250, _env_int("ALICEIFO_SQLITE_WRITE_DEADLINE_MS", 30_000)),
            backoff_base_s=base_s,
            backoff_max_s=max(base_s, _env_int("ALICEIFO_SQLITE_WRITE_BACKOFF_MAX_MS", 250) / 1000.0),
        )


class LedgerStore(Protocol):
    def exists(self) -> bool:
        ...

    def read(self) -> Json:
        ...

    def write(self, st: Json) -> None:
        ...

    def create(self, st: Json) -> bool:
        ...

    def update(self, mut: Callable[[Json], Any]) -> Any:
        ...


class SqliteDB:
    """SQLite file holding the claim ledger.

    - one connection per call, never shared across threads
    - WAL required unless ALICEIFO_SQLITE_ALLOW_NON_WAL=1
    - write_tx() retries BEGIN IMMEDIATE with jittered backoff, then fails closed
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    def _connect(self) -> sqlite3.Connection:
        s = SqliteSettings.from_env()
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        # isolation_level=None: transactions are opened explicitly in write_tx()
        con = sqlite3.connect(self.path, timeout=s.connect_timeout_s, isolation_level=None, check_same_thread=False)
        con.row_factory = sqlite3.Row

        journal = str(con.execute("PRAGMA journal_mode=WAL;").fetchone()[0]).lower()
        if journal != "wal" and not s.allow_non_wal:
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{journal}', expected 'wal'")

        for pragma in (
            f"synchronous={s.synchronous}",
            "foreign_keys=ON",
            "temp_store=MEMORY",
            f"busy_timeout={s.busy_timeout_ms}",
        ):
            con.execute(f"PRAGMA {pragma};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            for ddl in _SCHEMA:
                con.execute(ddl)

            row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
                return
            have = str(row["value"])
            if have != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version mismatch: have={have} want={self.SCHEMA_VERSION}; refusing to open ledger"
                )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _begin_immediate(con: sqlite3.Connection, s: SqliteSettings) -> None:
        deadline = _now_ms() + s.write_deadline_ms
        attempt = 0
        while True:
            try:
                con.execute("BEGIN IMMEDIATE;")
                return
            except sqlite3.OperationalError as e:
                msg = str(e).lower()
                busy = "database is locked" in msg or "database is busy" in msg
                if not busy or _now_ms() >= deadline:
                    raise
            delay = min(s.backoff_max_s, s.backoff_base_s * (2 ** min(attempt, 8)))
            time.sleep(delay * (0.5 + random.random()))
            attempt += 1

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Single write transaction: COMMIT on success, ROLLBACK and re-raise on error."""
        with self.connection() as con:
            self._begin_immediate(con, SqliteSettings.from_env())
            try:
                yield con
            except BaseException:
                con.execute("ROLLBACK;")
                raise
            con.execute("COMMIT;")


class SqliteLedgerStore:
    """Claim ledger snapshot persisted in SQLite.

    - read(): load the latest ledger snapshot
    - write(st): overwrite the snapshot atomically
    - update(mut): read-modify-write inside a single write transaction

    The authoritative snapshot is a single row.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    @staticmethod
    def _load(row: Optional[sqlite3.Row]) -> Json:
        if row is None:
            raise FileNotFoundError("sqlite ledger_state is missing")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("ledger_state is not a JSON object")
        return st

    def read(self) -> Json:
        with self._db.connection() as con:
            return self._load(con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone())

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger write expects dict")
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO ledger_state(id, total_claimed, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  total_claimed=excluded.total_claimed,
                  state_json=excluded.state_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (_total_claimed_of(st), _canon_json(st), _now_ms()),
            )

    def create(self, st: Json) -> bool:
        """Write the genesis snapshot unless one exists. Returns True if this call created it."""
        if not isinstance(st, dict):
            raise ValueError("ledger create expects dict")
        with self._db.write_tx() as con:
            cur = con.execute(
                """
                INSERT INTO ledger_state(id, total_claimed, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?)
                ON CONFLICT(id) DO NOTHING;
                """,
                (_total_claimed_of(st), _canon_json(st), _now_ms()),
            )
            return cur.rowcount == 1

    def update(self, mut: Callable[[Json], Any]) -> Any:
        with self._db.write_tx() as con:
            st = self._load(con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone())

            out = mut(st)

            con.execute(
                "UPDATE ledger_state SET total_claimed=?, state_json=?, updated_ts_ms=? WHERE id=1;",
                (_total_claimed_of(st), _canon_json(st), _now_ms()),
            )
            return out


class MemoryLedgerStore:
    """In-process LedgerStore with the same all-or-nothing update() semantics."""

    def __init__(self, st: Optional[Json] = None) -> None:
        self._lock = threading.Lock()
        self._state: Optional[Json] = copy.deepcopy(st) if isinstance(st, dict) else None

    def exists(self) -> bool:
        return self._state is not None

    def read(self) -> Json:
        with self._lock:
            if self._state is None:
                raise FileNotFoundError("memory ledger_state is missing")
            return copy.deepcopy(self._state)

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger write expects dict")
        with self._lock:
            self._state = copy.deepcopy(st)

    def create(self, st: Json) -> bool:
        if not isinstance(st, dict):
            raise ValueError("ledger create expects dict")
        with self._lock:
            if self._state is not None:
                return False
            self._state = copy.deepcopy(st)
            return True

    def update(self, mut: Callable[[Json], Any]) -> Any:
        with self._lock:
            if self._state is None:
                raise FileNotFoundError("memory ledger_state is missing")
            work = copy.deepcopy(self._state)
            out = mut(work)
            self._state = work
            return out
