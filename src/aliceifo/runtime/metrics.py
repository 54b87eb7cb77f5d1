# src/aliceifo/runtime/metrics.py
from __future__ import annotations

"""Process-wide claim metrics.

Counters only ever grow; gauges are overwritten. Token quantities are kept as
raw 18-decimal integers so nothing is rounded on the way to the exporter.
"""

import os
import threading
import time
from typing import Dict, List, Tuple

_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)

_HELP: Dict[str, str] = {
    "claims_ok": "Claims settled",
    "claims_paid_units": "ALICE units paid out by settled claims",
    "total_claimed_units": "Ledger total_claimed after the last settled claim",
    "reserve_units": "ALICE units held by the reserve fund at scrape time",
    "reserve_deposited_units": "ALICE units ever deposited into the reserve fund",
    "locked_fund_units": "Unlocked ALICE units held by the locked fund at scrape time",
}


def metrics_enabled() -> bool:
    flag = (os.environ.get("ALICEIFO_METRICS_ENABLED") or "").strip().lower()
    return flag in {"1", "true", "yes", "y", "on"}


def _name(name: str) -> str:
    return str(name or "").strip()


def inc_counter(name: str, value: int = 1) -> None:
    key = _name(name)
    if not key:
        return
    with _lock:
        _counters[key] = _counters.get(key, 0) + max(0, int(value))


def set_gauge(name: str, value: int) -> None:
    key = _name(name)
    if not key:
        return
    with _lock:
        _gauges[key] = int(value)


def observe_claim_settled(amount: int, total_claimed: int) -> None:
    with _lock:
        _counters["claims_ok"] = _counters.get("claims_ok", 0) + 1
        _counters["claims_paid_units"] = _counters.get("claims_paid_units", 0) + int(amount)
        _gauges["total_claimed_units"] = int(total_claimed)


def observe_claim_rejected(code: str) -> None:
    inc_counter(f"claims_rejected_{_name(code) or 'unknown'}")


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    now_ms = int(time.time() * 1000)
    with _lock:
        return {
            "ts_ms": now_ms,
            "started_ms": _started_ms,
            "uptime_ms": now_ms - _started_ms,
            "counters": dict(_counters),
            "gauges": dict(_gauges),
        }


def _family(pre: str, kind: str, items: Dict[str, int]) -> List[str]:
    out: List[str] = []
    rows: List[Tuple[str, int]] = sorted(items.items())
    for name, value in rows:
        help_text = _HELP.get(name)
        if help_text:
            out.append(f"# HELP {pre}{name} {help_text}")
        out.append(f"# TYPE {pre}{name} {kind}")
        out.append(f"{pre}{name} {value}")
    return out


def format_prometheus(prefix: str = "aliceifo_") -> str:
    """Prometheus text exposition (version 0.0.4) of the current snapshot."""
    pre = _name(prefix) or "aliceifo_"
    snap = snapshot()

    lines = [f"# TYPE {pre}uptime_ms gauge", f"{pre}uptime_ms {snap['uptime_ms']}"]
    lines += _family(pre, "counter", snap["counters"])
    lines += _family(pre, "gauge", snap["gauges"])
    return "\n".join(lines) + "\n"
