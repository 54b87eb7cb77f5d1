from aliceifo.fund.locked import LockedFund, LockedFundError
from aliceifo.fund.market import FileMoneyMarket, InMemoryMoneyMarket, MoneyMarket, SavingsRecord
from aliceifo.fund.reserve import FundError, ReserveFund
from aliceifo.fund.token import Token, TokenError

__all__ = [
    "FileMoneyMarket",
    "FundError",
    "InMemoryMoneyMarket",
    "LockedFund",
    "LockedFundError",
    "MoneyMarket",
    "ReserveFund",
    "SavingsRecord",
    "Token",
    "TokenError",
]
