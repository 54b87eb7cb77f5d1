# src/aliceifo/ledger/constants.py
from __future__ import annotations

"""IFO monetary constants.

Deployment anchors:
- ALICE and the money market principal both use 18 decimals
- Half-life: 8.75 * 10^7 ALICE (fixed point)
- One claim round per 24 hours
- Mainnet IFO start: 2019-08-15T00:00:00Z
"""

# Fixed-point precision (1 ALICE = 1e18 units)
TOKEN_DECIMALS: int = 18
SCALE: int = 10**TOKEN_DECIMALS

# Round 0 pays the full principal balance.
BASE_CLAIM_RATE: int = SCALE

HALF_LIFE_ALICE: int = 87_500_000
HALF_LIFE: int = HALF_LIFE_ALICE * SCALE

# Claim cadence
CLAIM_INTERVAL_SECONDS: int = 60 * 60 * 24  # 24 hours
DEV_CLAIM_INTERVAL_SECONDS: int = 60  # 1 minute

IFO_STARTS_AT: int = 1_565_827_200

# Canonical account id of the fund operator in dev bootstraps
FUND_OWNER_ACCOUNT_ID: str = "FUND_ADMIN"

# Account id the reserve fund approves for payouts
IFO_ACCOUNT_ID: str = "IFO"

# Token accounts holding the IFO reserve and the locked-sale reserve
FUND_ACCOUNT_ID: str = "FUND"
LOCKED_FUND_ACCOUNT_ID: str = "LOCKED_FUND"
