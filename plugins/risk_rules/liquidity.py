"""Liquidity rule -- cash reserves as a share of the portfolio."""

from __future__ import annotations

from core.models.holdings import InvestmentType
from core.models.risk import HoldingVerdict, VerdictStatus
from core.protocols import AssetRiskInput


class LiquidityRule:
    def __init__(self, min_cash_allocation: float = 5.0) -> None:
        self.min_cash_allocation = min_cash_allocation

    @property
    def name(self) -> str:
        return "liquidity"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.holding.type != InvestmentType.CASH:
            return None
        if asset.allocation_percent < self.min_cash_allocation:
            return current.model_copy(update={
                "status": VerdictStatus.CRITICAL,
                "issue": "Low Reserves",
                "action": f"Build cash to at least {self.min_cash_allocation:.0f}% of portfolio",
                "rule": self.name,
            })
        return current.model_copy(update={
            "status": VerdictStatus.SAFE,
            "issue": "Dry Powder",
            "action": "Deploy on dips",
            "rule": self.name,
        })
