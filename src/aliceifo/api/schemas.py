from __future__ import annotations

"""Pydantic request schemas for the public and operator API.

Token quantities travel as decimal strings (18-decimal fixed point does not
fit a JSON number safely); ints are accepted on input as well.
"""

from typing import Union

from pydantic import BaseModel, Field, field_validator


def _units(v: Union[int, str], name: str) -> int:
    if isinstance(v, bool):
        raise ValueError(f"{name} must be an integer amount")
    try:
        n = int(str(v).strip())
    except ValueError as e:
        raise ValueError(f"{name} must be an integer amount") from e
    if n < 0:
        raise ValueError(f"{name} must be >= 0")
    return n


class ClaimRequest(BaseModel):
    record_id: int = Field(..., ge=0, description="Savings record id at the money market")
    caller: str = Field(..., min_length=1, description="Claiming account; must own the record")


class SavingsRecordRequest(BaseModel):
    record_id: int = Field(..., ge=0)
    owner: str = Field(..., min_length=1)
    balance: Union[int, str] = Field(..., description="Principal in 18-decimal units")
    created_at: int = Field(..., ge=0, description="Unix seconds the balance was established")

    @field_validator("balance")
    @classmethod
    def _balance_non_negative_int(cls, v: Union[int, str]) -> int:
        return _units(v, "balance")


class AmountRequest(BaseModel):
    amount: Union[int, str] = Field(..., description="ALICE in 18-decimal units")

    @field_validator("amount")
    @classmethod
    def _amount_non_negative_int(cls, v: Union[int, str]) -> int:
        return _units(v, "amount")


class MintRequest(AmountRequest):
    to: str = Field(..., min_length=1)


class ApproveRequest(AmountRequest):
    spender: str = Field(..., min_length=1, description="Account allowed to pull the fund owner's ALICE")


class ChangeIfoRequest(BaseModel):
    ifo: str = Field(..., min_length=1, description="Account the reserve fund approves for payouts")


class NewOwnerRequest(BaseModel):
    new_owner: str = Field(..., min_length=1)


class LockRequest(AmountRequest):
    to: str = Field(..., min_length=1)
    release_after: int = Field(..., ge=0, description="Unix seconds the locked ALICE becomes unlockable")


class UnlockForRequest(AmountRequest):
    holder: str = Field(..., min_length=1)


class UnlockRequest(AmountRequest):
    caller: str = Field(..., min_length=1, description="Holder redeeming released locked ALICE")
