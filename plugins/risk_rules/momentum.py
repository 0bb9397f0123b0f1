"""Momentum rules -- react to a holding's return under the current scenario."""

from __future__ import annotations

from core.models.holdings import InvestmentType
from core.models.risk import HoldingVerdict, MarketScenario, VerdictStatus
from core.protocols import AssetRiskInput
from plugins.risk_rules.concentration import CONCENTRATION_TRAP

VOLATILE_TYPES = frozenset({
    InvestmentType.CRYPTO,
    InvestmentType.DIGITAL_SILVER,
    InvestmentType.STOCKS,
})


def _verdict(current: HoldingVerdict, rule: str, status: VerdictStatus, issue: str, action: str) -> HoldingVerdict:
    return current.model_copy(update={"status": status, "issue": issue, "action": action, "rule": rule})


class FlashRallyRule:
    """Volatile asset up sharply while the market is unstable: book some profit."""

    SCENARIOS = frozenset({
        MarketScenario.HIGH_VOLATILITY,
        MarketScenario.SILVER_CRASH,
        MarketScenario.GOLD_RALLY,
    })

    def __init__(self, min_roi: float = 15.0) -> None:
        self.min_roi = min_roi

    @property
    def name(self) -> str:
        return "flash_rally"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.holding.type not in VOLATILE_TYPES:
            return None
        if asset.roi_percent <= self.min_roi or asset.scenario not in self.SCENARIOS:
            return None
        return _verdict(
            current, self.name, VerdictStatus.WARNING,
            "Flash Rally",
            "Book partial profit (sell 25-30%)",
        )


class FallingKnifeRule:
    """Silver dropping during a silver crash."""

    def __init__(self, trigger_roi: float = -8.0, stop_loss_roi: float = -15.0) -> None:
        self.trigger_roi = trigger_roi
        self.stop_loss_roi = stop_loss_roi

    @property
    def name(self) -> str:
        return "falling_knife"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.scenario != MarketScenario.SILVER_CRASH:
            return None
        if asset.holding.type != InvestmentType.DIGITAL_SILVER or asset.roi_percent >= self.trigger_roi:
            return None
        action = "Exit (stop-loss breached)" if asset.roi_percent < self.stop_loss_roi else "HOLD"
        return _verdict(current, self.name, VerdictStatus.CRITICAL, "Falling Knife", action)


class FreeRideRule:
    """Doubled money: take the principal off the table. Skipped for concentrated holdings."""

    def __init__(self, min_roi: float = 100.0) -> None:
        self.min_roi = min_roi

    @property
    def name(self) -> str:
        return "free_ride"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.roi_percent <= self.min_roi or current.issue == CONCENTRATION_TRAP:
            return None
        return _verdict(
            current, self.name, VerdictStatus.SAFE,
            "Free Ride",
            "Harvest principal, let profits run",
        )


class SlowBleedRule:
    """Steady loss in an otherwise normal market."""

    def __init__(self, max_loss_roi: float = -10.0) -> None:
        self.max_loss_roi = max_loss_roi

    @property
    def name(self) -> str:
        return "slow_bleed"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.scenario != MarketScenario.NORMAL or asset.roi_percent >= self.max_loss_roi:
            return None
        return _verdict(
            current, self.name, VerdictStatus.WARNING,
            "Slow Bleed",
            "Review thesis; consider tax-loss harvesting",
        )


class DeadCatBounceRule:
    """Deep loser while the rest of the market rallies."""

    SCENARIOS = frozenset({MarketScenario.GOLD_RALLY, MarketScenario.BULL_RUN})

    def __init__(self, max_loss_roi: float = -30.0) -> None:
        self.max_loss_roi = max_loss_roi

    @property
    def name(self) -> str:
        return "dead_cat_bounce"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.scenario not in self.SCENARIOS or asset.roi_percent >= self.max_loss_roi:
            return None
        return _verdict(
            current, self.name, VerdictStatus.WARNING,
            "Dead Cat Bounce",
            "Use the rally to exit; avoid averaging down",
        )


class WeakRallyRule:
    """Silver gains during a silver crash are rallies to sell into.

    Fires for a small relief bounce (0% < ROI < 10%), and for any gain at or
    above the crash-tightened bubble limit unless an earlier rule already
    flagged the holding CRITICAL (concentration or sector overload).
    """

    def __init__(self, bounce_ceiling: float = 10.0) -> None:
        self.bounce_ceiling = bounce_ceiling

    @property
    def name(self) -> str:
        return "weak_rally"

    def evaluate(self, asset: AssetRiskInput, current: HoldingVerdict) -> HoldingVerdict | None:
        if asset.scenario != MarketScenario.SILVER_CRASH:
            return None
        if asset.holding.type != InvestmentType.DIGITAL_SILVER:
            return None

        roi = asset.roi_percent
        if 0 < roi < self.bounce_ceiling:
            action = "Sell into strength (relief bounce)"
        elif (
            roi > 0
            and roi >= asset.context.profile.bubble_limit_percent
            and current.status != VerdictStatus.CRITICAL
        ):
            action = f"Sell into strength (gain above {asset.context.profile.bubble_limit_percent:.0f}% bubble limit)"
        else:
            return None
        return _verdict(current, self.name, VerdictStatus.WARNING, "Weak Rally", action)
