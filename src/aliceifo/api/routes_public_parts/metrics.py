from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request, Response

from aliceifo.runtime.metrics import format_prometheus, metrics_enabled, set_gauge, snapshot

router = APIRouter()


def _refresh_fund_gauges(request: Request) -> None:
    eng = getattr(request.app.state, "engine", None)
    if eng is None:
        return
    fund = eng.get_fund()
    set_gauge("reserve_units", fund.reserve())
    set_gauge("reserve_deposited_units", fund.deposited)
    set_gauge("locked_fund_units", eng.get_locked_fund().balance())


def _disabled() -> Response:
    return Response(status_code=404, content="not_found\n", media_type="text/plain")


@router.get("/metrics")
def metrics_text(request: Request) -> Response:
    """Claim and custody metrics in Prometheus text format (off unless ALICEIFO_METRICS_ENABLED=1).

    Counters: claims_ok, claims_paid_units, claims_rejected_<code>.
    Gauges: total_claimed_units, plus reserve_units, reserve_deposited_units and
    locked_fund_units read from the ledger on every scrape.
    """
    if not metrics_enabled():
        return _disabled()
    _refresh_fund_gauges(request)
    return Response(content=format_prometheus(), media_type="text/plain; version=0.0.4")


@router.get("/metrics/snapshot", response_model=None)
def metrics_snapshot(request: Request) -> Any:
    if not metrics_enabled():
        return _disabled()
    _refresh_fund_gauges(request)
    snap: Dict[str, Any] = snapshot()
    return {"ok": True, **snap}
