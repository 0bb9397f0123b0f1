"""Beta rules -- volatility relative to the market, estimated from asset type."""

from __future__ import annotations

from core.models.holdings import Holding, InvestmentType
from core.models.risk import HoldingVerdict, MarketScenario, VerdictStatus
from core.protocols import AssetRiskInput

HIGH_BETA_SECTORS = frozenset({"tech", "technology", "it", "small cap", "small-cap", "smallcap"})
DEFENSIVE_SECTORS = frozenset({
    "fmcg",
    "consumer staples",
    "pharma",
    "healthcare",
    "utilities",
    "utility",
})

TYPE_BETA: dict[InvestmentType, float] = {
    InvestmentType.CASH: 0.0,
    InvestmentType.FD: 0.0,
    InvestmentType.DIGITAL_GOLD: 0.2,
    InvestmentType.DIGITAL_SILVER: 1.2,
    InvestmentType.CRYPTO: 2.5,
    InvestmentType.MUTUAL_FUND: 0.9,
}
DEFAULT_BETA = 1.0


def estimate_beta(holding: Holding) -> float:
    """Rough beta from the holding's type, and its sector for stocks."""
    if holding.type == InvestmentType.STOCKS:
        sector = (holding.sector or "").strip().lower()
        if sector in HIGH_BETA_SECTORS:
            return 1.5
        if sector in DEFENSIVE_SECTORS:
            return 0.7
        return 1.1
    return TYPE_BETA.get(holding.type, DEFAULT_BETA)


class HighBetaRule:
    """High-beta holding while volatility is elevated."""

    def __init__(self, max_beta: float = 1.5) -> None:
        self.max_beta = max_beta

    @property
    def name(self) -> str:
        return "high_beta"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.scenario != MarketScenario.HIGH_VOLATILITY or asset.beta <= self.max_beta:
            return None
        return current.model_copy(update={
            "status": VerdictStatus.WARNING,
            "issue": "High Beta Hazard",
            "action": f"Reduce position (beta {asset.beta:.1f})",
            "rule": self.name,
        })


class BlueChipStagnationRule:
    """Market-tracking holding going nowhere during a bull run."""

    def __init__(self, low_roi: float = -5.0, high_roi: float = 2.0, min_beta: float = 0.8) -> None:
        self.low_roi = low_roi
        self.high_roi = high_roi
        self.min_beta = min_beta

    @property
    def name(self) -> str:
        return "blue_chip_stagnation"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.scenario != MarketScenario.BULL_RUN or asset.beta <= self.min_beta:
            return None
        if not self.low_roi <= asset.roi_percent <= self.high_roi:
            return None
        return current.model_copy(update={
            "status": VerdictStatus.WARNING,
            "issue": "Blue-Chip Stagnation",
            "action": "Rotate into market leaders",
            "rule": self.name,
        })
