"""Holding model -- one user-recorded asset, read from the investments table."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InvestmentType(str, Enum):
    """Asset categories a holding can belong to.

    Values match what the persisted rows carry in their `type` field.
    """

    MUTUAL_FUND = "Mutual Fund"
    DIGITAL_GOLD = "Digital Gold"
    DIGITAL_SILVER = "Digital Silver"
    SMALLCASE = "Smallcase"
    STOCKS = "Stocks"
    CRYPTO = "Crypto"
    FD = "Fixed Deposit"
    ETF = "ETF"
    REAL_ESTATE = "Real Estate"
    CASH = "Cash/Bank"
    IPO = "IPO"
    TRADING = "Trading Alpha"


BULLION_TYPES = frozenset({InvestmentType.DIGITAL_GOLD, InvestmentType.DIGITAL_SILVER})


class Holding(BaseModel):
    """A single holding as stored by the persistence layer.

    Rows are stored in camelCase (`investedAmount`, `lastUpdated`, ...);
    snake_case field names are accepted too. Extra row fields are ignored.
    The core never mutates a Holding.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    type: InvestmentType
    ticker: str | None = None
    platform: str = ""
    sector: str | None = None
    quantity: float | None = None
    invested_amount: float = Field(default=0.0, ge=0, alias="investedAmount")
    current_value: float = Field(default=0.0, ge=0, alias="currentValue")
    last_updated: str = Field(default="", alias="lastUpdated")
    is_hidden_from_totals: bool = Field(default=False, alias="isHiddenFromTotals")

    @property
    def net_pl(self) -> float:
        return self.current_value - self.invested_amount

    @property
    def roi_percent(self) -> float:
        """Return on investment in percent; 0 when nothing was invested."""
        if self.invested_amount <= 0:
            return 0.0
        return self.net_pl / self.invested_amount * 100

    def allocation_percent(self, portfolio_total: float) -> float:
        """Share of the portfolio this holding represents, in percent."""
        if portfolio_total <= 0:
            return 0.0
        return self.current_value / portfolio_total * 100


def portfolio_total(holdings: list[Holding]) -> float:
    """Sum of current values, skipping holdings hidden from totals."""
    return sum(h.current_value for h in holdings if not h.is_hidden_from_totals)
