# src/aliceifo/fund/market.py
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import yaml


@dataclass(frozen=True, slots=True)
class SavingsRecord:
    """A principal deposit as reported by the money market."""

    record_id: int
    owner: str
    balance: int
    created_at: int


class MoneyMarket(Protocol):
    def get_record(self, record_id: int) -> Optional[SavingsRecord]:
        ...


@dataclass
class InMemoryMoneyMarket:
    """Money market stand-in that serves savings records from a dict."""

    records: Dict[int, SavingsRecord] = field(default_factory=dict)

    def set_savings_record(self, record_id: int, owner: str, balance: int, created_at: int) -> SavingsRecord:
        rid = int(record_id)
        bal = int(balance)
        if bal < 0:
            raise ValueError(f"balance must be >= 0; got: {bal}")
        rec = SavingsRecord(record_id=rid, owner=str(owner), balance=bal, created_at=int(created_at))
        self.records[rid] = rec
        return rec

    def get_record(self, record_id: int) -> Optional[SavingsRecord]:
        return self.records.get(int(record_id))


class FileMoneyMarket:
    """Read-only money market backed by a JSON or YAML export of savings records.

    The file holds ``{"records": [{"record_id", "owner", "balance", "created_at"}, ...]}``
    (a bare list is accepted too). It is re-read whenever its mtime changes, so an
    external exporter can refresh balances without restarting the service.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._mtime_ns: Optional[int] = None
        self._records: Dict[int, SavingsRecord] = {}
        self._reload_if_changed()

    @staticmethod
    def _parse(text: str, suffix: str) -> Dict[int, SavingsRecord]:
        raw: Any = yaml.safe_load(text) if suffix in {".yaml", ".yml"} else json.loads(text)
        if isinstance(raw, dict):
            raw = raw.get("records")
        if not isinstance(raw, list):
            raise ValueError("money market file must hold a list of records")

        out: Dict[int, SavingsRecord] = {}
        for entry in raw:
            if not isinstance(entry, dict):
                raise ValueError(f"savings record must be a mapping; got: {entry!r}")
            rec = SavingsRecord(
                record_id=int(entry["record_id"]),
                owner=str(entry["owner"]),
                balance=int(entry["balance"]),
                created_at=int(entry["created_at"]),
            )
            if rec.balance < 0:
                raise ValueError(f"balance must be >= 0; got: {rec.balance}")
            out[rec.record_id] = rec
        return out

    def _reload_if_changed(self) -> None:
        mtime = self.path.stat().st_mtime_ns
        with self._lock:
            if mtime == self._mtime_ns:
                return
            self._records = self._parse(self.path.read_text(encoding="utf-8"), self.path.suffix.lower())
            self._mtime_ns = mtime

    def get_record(self, record_id: int) -> Optional[SavingsRecord]:
        self._reload_if_changed()
        return self._records.get(int(record_id))
