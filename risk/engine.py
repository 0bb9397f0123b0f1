"""Risk engine -- per-holding verdicts and the holistic portfolio verdict.

Completely deterministic. Every evaluation reads one RiskContext snapshot,
taken at entry from the injected MarketContextState unless the caller
passes its own, so a context transition mid-batch cannot split a batch
across two scenarios.
"""

from __future__ import annotations

import logging

from core.models.holdings import BULLION_TYPES, Holding, InvestmentType
from core.models.risk import (
    AssetSignals,
    BullionExposure,
    HoldingVerdict,
    MarketScenario,
    PortfolioVerdict,
    RiskContext,
    VerdictLevel,
    VerdictStatus,
)
from core.protocols import AssetRiskInput, HoldingRule
from plugins.risk_rules import default_rules, estimate_beta
from risk.context import MarketContextState

logger = logging.getLogger(__name__)

UNCLASSIFIED_SECTOR = "Unclassified"

BASE_SCORE = 90
SILVER_KILL_SWITCH_PERCENT = 20.0
SILVER_CAUTION_PERCENT = 10.0
SILVER_TARGET_PERCENT = 15.0

_STATUS_ORDER = {VerdictStatus.CRITICAL: 0, VerdictStatus.WARNING: 1, VerdictStatus.SAFE: 2}


def sector_allocations(holdings: list[Holding], total: float) -> dict[str, float]:
    """Percent of `total` held in each sector."""
    total = total or 1
    values: dict[str, float] = {}
    for h in holdings:
        sector = h.sector or UNCLASSIFIED_SECTOR
        values[sector] = values.get(sector, 0.0) + h.current_value
    return {sector: value / total * 100 for sector, value in values.items()}


class RiskEngine:
    """Rule-based risk classifier for holdings and whole portfolios.

    Usage:
        engine = RiskEngine(MarketContextState(config.risk.base_profile()))
        engine.state.set_context(scenario="SILVER_CRASH")
        verdict = engine.generate_verdict(holdings, total)
    """

    def __init__(self, state: MarketContextState | None = None, rules: list[HoldingRule] | None = None) -> None:
        self.state = state or MarketContextState()
        self._rules: list[HoldingRule] = default_rules() if rules is None else rules

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self._rules]

    # ------------------------------------------------------------------
    # Per-holding
    # ------------------------------------------------------------------

    def evaluate(
        self,
        holding: Holding,
        portfolio_total: float,
        sector_allocations: dict[str, float],
        context: RiskContext | None = None,
    ) -> HoldingVerdict:
        """Run every rule in order; the last matching rule decides the verdict."""
        context = context or self.state.snapshot()

        sector_percent = None
        if holding.sector:
            sector_percent = sector_allocations.get(holding.sector)

        asset = AssetRiskInput(
            holding=holding,
            context=context,
            roi_percent=holding.roi_percent,
            allocation_percent=holding.allocation_percent(portfolio_total),
            sector_percent=sector_percent,
            beta=estimate_beta(holding),
        )

        verdict = HoldingVerdict(holding_id=holding.id, name=holding.name)
        for rule in self._rules:
            try:
                outcome = rule.evaluate(asset, verdict)
            except Exception:
                logger.exception("Holding rule '%s' raised an error for %s", rule.name, holding.id)
                continue
            if outcome is not None:
                verdict = outcome

        return verdict

    def evaluate_all(
        self,
        holdings: list[Holding],
        portfolio_total: float,
        context: RiskContext | None = None,
    ) -> list[HoldingVerdict]:
        """Evaluate a batch against one context snapshot, most severe first."""
        context = context or self.state.snapshot()
        sectors = sector_allocations(holdings, portfolio_total)

        verdicts = [self.evaluate(h, portfolio_total, sectors, context=context) for h in holdings]
        verdicts.sort(key=lambda v: _STATUS_ORDER[v.status])

        flagged = sum(1 for v in verdicts if v.status != VerdictStatus.SAFE)
        logger.info(
            "Evaluated %d holdings under %s (%d flagged)",
            len(verdicts), context.scenario.value, flagged,
        )
        return verdicts

    def analyze_asset(self, holding: Holding, context: RiskContext | None = None) -> AssetSignals:
        """Profit-booking and bubble signals for one holding."""
        profile = (context or self.state.snapshot()).profile
        roi = holding.roi_percent
        return AssetSignals(
            roi_percent=roi,
            should_book_profit=(
                holding.type in (InvestmentType.STOCKS, InvestmentType.CRYPTO)
                and roi >= profile.profit_booking_threshold_percent
            ),
            is_bubble_risk=(
                holding.type == InvestmentType.DIGITAL_SILVER
                and roi > profile.bubble_limit_percent
            ),
        )

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    def analyze_portfolio(
        self,
        holdings: list[Holding],
        total_net_worth: float,
        context: RiskContext | None = None,
    ) -> BullionExposure:
        """Combined gold + silver exposure against the bullion cap."""
        profile = (context or self.state.snapshot()).profile
        exposure = _exposure_percent(holdings, BULLION_TYPES, total_net_worth)
        return BullionExposure(
            exposure_percent=exposure,
            limit_percent=profile.bullion_cap_percent,
            is_overweight=exposure > profile.bullion_cap_percent,
        )

    def generate_verdict(
        self,
        holdings: list[Holding],
        total_net_worth: float,
        context: RiskContext | None = None,
    ) -> PortfolioVerdict:
        """Score the portfolio (0-100) and build a level, narrative and action plan."""
        if total_net_worth <= 0:
            return PortfolioVerdict(
                score=100,
                level=VerdictLevel.SAFE,
                title="No Holdings",
                narrative="Nothing to evaluate yet.",
            )

        context = context or self.state.snapshot()
        profile = context.profile

        score = BASE_SCORE
        level = VerdictLevel.SAFE
        title = "All Clear"
        narrative = f"No structural risks detected under {context.scenario.value.replace('_', ' ')}."
        action_plan: list[str] = []

        silver = _exposure_percent(holdings, {InvestmentType.DIGITAL_SILVER}, total_net_worth)
        bullion = _exposure_percent(holdings, BULLION_TYPES, total_net_worth)

        if context.scenario == MarketScenario.SILVER_CRASH:
            if silver > SILVER_KILL_SWITCH_PERCENT:
                score -= 40
                level = VerdictLevel.KILL_SWITCH
                title = "Kill Switch: Silver Overexposure"
                narrative = (
                    f"Silver is {silver:.1f}% of net worth during a silver crash. "
                    "Capital is in danger; stop the bleeding before anything else."
                )
                action_plan = [
                    "IMMEDIATE: Halt all silver SIPs",
                    f"SELL silver down to {SILVER_TARGET_PERCENT:.0f}% of net worth",
                    "Hedge proceeds into fixed income or gold",
                ]
            elif silver >= SILVER_CAUTION_PERCENT:
                score -= 20
                level = VerdictLevel.CAUTION
                title = "Caution: Silver Drawdown"
                narrative = f"Silver is {silver:.1f}% of net worth during a silver crash."
                action_plan = [
                    "Hold silver; do not add fresh money",
                    "Set a stop-loss on silver positions",
                ]

        if bullion > profile.bullion_cap_percent and level != VerdictLevel.KILL_SWITCH:
            score -= 20
            if level == VerdictLevel.SAFE:
                level = VerdictLevel.CAUTION
                title = "Bullion Overweight"
                narrative = (
                    f"Gold and silver are {bullion:.1f}% of net worth, "
                    f"above the {profile.bullion_cap_percent:.0f}% cap."
                )
            else:
                level = VerdictLevel.CRITICAL
            action_plan.append(
                f"Rebalance bullion from {bullion:.1f}% to below {profile.bullion_cap_percent:.0f}%"
            )

        score = max(0, min(100, score))
        logger.info("Portfolio verdict: %s (score=%d, scenario=%s)", level.value, score, context.scenario.value)

        return PortfolioVerdict(
            score=score,
            level=level,
            title=title,
            narrative=narrative,
            action_plan=action_plan,
        )


def _exposure_percent(holdings: list[Holding], types: set | frozenset, total: float) -> float:
    if total <= 0:
        return 0.0
    value = sum(h.current_value for h in holdings if h.type in types)
    return value / total * 100
