# src/aliceifo/runtime/ifo_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from aliceifo.ledger.constants import (
    BASE_CLAIM_RATE,
    CLAIM_INTERVAL_SECONDS,
    FUND_OWNER_ACCOUNT_ID,
    HALF_LIFE,
    IFO_ACCOUNT_ID,
    IFO_STARTS_AT,
    SCALE,
)

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        if v is None or isinstance(v, bool):
            return int(default)
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class IfoConfig:
    ifo_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Curve parameters, immutable for the lifetime of a ledger.
    half_life: int
    interval: int
    starts_at: int
    base_rate: int

    db_path: str

    api_host: str
    api_port: int

    log_level: str

    fund_owner: str
    # Dev/testnet only: ALICE minted into the fund at boot.
    reserve_seed: int

    # JSON/YAML savings-record export served by FileMoneyMarket. build_engine refuses prod without it.
    market_path: str = ""


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_ifo_config(cfg: IfoConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.ifo_id, str) or not cfg.ifo_id.strip():
        raise ValueError("ifo_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.half_life) <= SCALE:
        raise ValueError(f"half_life must be > {SCALE} (fixed point 1.0); got: {cfg.half_life}")

    if int(cfg.interval) < 1:
        raise ValueError(f"interval must be >= 1 second; got: {cfg.interval}")

    if int(cfg.starts_at) < 0:
        raise ValueError(f"starts_at must be a unix timestamp >= 0; got: {cfg.starts_at}")

    if int(cfg.base_rate) <= 0:
        raise ValueError(f"base_rate must be > 0; got: {cfg.base_rate}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    if not isinstance(cfg.fund_owner, str) or not cfg.fund_owner.strip():
        raise ValueError("fund_owner must be a non-empty string")

    if int(cfg.reserve_seed) < 0:
        raise ValueError(f"reserve_seed must be >= 0; got: {cfg.reserve_seed}")
    if int(cfg.reserve_seed) > 0 and mode == "prod":
        raise ValueError("reserve_seed is a dev/testnet bootstrap and must be 0 in prod")


def default_ifo_config() -> IfoConfig:
    return IfoConfig(
        ifo_id=IFO_ACCOUNT_ID,
        mode="prod",
        half_life=HALF_LIFE,
        interval=CLAIM_INTERVAL_SECONDS,
        starts_at=IFO_STARTS_AT,
        base_rate=BASE_CLAIM_RATE,
        db_path="./data/aliceifo.db",
        api_host="0.0.0.0",
        api_port=8000,
        log_level="INFO",
        fund_owner=FUND_OWNER_ACCOUNT_ID,
        reserve_seed=0,
    )


def _read_raw(p: Path) -> Json:
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = yaml.safe_load(text)
    else:
        raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("ifo config must be a mapping/object")
    return raw


def read_ifo_config_file(path: str) -> IfoConfig:
    raw = _read_raw(Path(path))
    d = default_ifo_config()

    cfg = IfoConfig(
        ifo_id=_as_str(raw.get("ifo_id"), d.ifo_id),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        half_life=_as_int(raw.get("half_life"), d.half_life),
        interval=_as_int(raw.get("interval"), d.interval),
        starts_at=_as_int(raw.get("starts_at"), d.starts_at),
        base_rate=_as_int(raw.get("base_rate"), d.base_rate),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
        fund_owner=_as_str(raw.get("fund_owner"), d.fund_owner),
        reserve_seed=_as_int(raw.get("reserve_seed"), d.reserve_seed),
        market_path=str(raw.get("market_path") or d.market_path).strip(),
    )

    validate_ifo_config(cfg)
    return cfg


def load_ifo_config(*, config_path: Optional[str] = None) -> IfoConfig:
    p = config_path or os.environ.get("ALICEIFO_CONFIG_PATH")
    if p:
        return read_ifo_config_file(p)

    cfg = default_ifo_config()
    validate_ifo_config(cfg)
    return cfg
