# src/aliceifo/runtime/engine_boot.py
from __future__ import annotations

from typing import Optional

from aliceifo.fund.market import FileMoneyMarket, InMemoryMoneyMarket, MoneyMarket
from aliceifo.ledger.curve import DecayCurve
from aliceifo.runtime.engine import ClaimEngine
from aliceifo.runtime.ifo_config import IfoConfig, load_ifo_config
from aliceifo.runtime.sqlite_db import SqliteDB, SqliteLedgerStore


def _market_for(c: IfoConfig) -> MoneyMarket:
    path = str(c.market_path or "").strip()
    if path:
        return FileMoneyMarket(path)
    if c.mode == "prod":
        raise RuntimeError(
            "prod requires market_path: the in-process money market holds no records and cannot back claims"
        )
    return InMemoryMoneyMarket()


def build_engine(cfg: Optional[IfoConfig] = None, *, market: Optional[MoneyMarket] = None) -> ClaimEngine:
    """
    Build a ClaimEngine from an explicit config or, if omitted, from
    ALICEIFO_CONFIG_PATH / defaults.

    Wiring:
      - ledger, ALICE balances and both funds persisted in SQLite at cfg.db_path
      - on a new ledger, the fund (owned by cfg.fund_owner) approves cfg.ifo_id
        and, outside prod, cfg.reserve_seed ALICE is minted and deposited
      - money market read from cfg.market_path; in-process only outside prod
    """
    c = cfg or load_ifo_config()

    curve = DecayCurve(
        starts_at=int(c.starts_at),
        interval=int(c.interval),
        half_life=int(c.half_life),
        base_rate=int(c.base_rate),
    )

    return ClaimEngine(
        market=market if market is not None else _market_for(c),
        curve=curve,
        store=SqliteLedgerStore(db=SqliteDB(path=c.db_path)),
        ifo_id=c.ifo_id,
        fund_owner=c.fund_owner,
        reserve_seed=int(c.reserve_seed) if c.mode != "prod" else 0,
    )
