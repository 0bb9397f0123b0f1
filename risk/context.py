"""Market-context state -- the scenario the risk rules are tuned for.

The state is owned by the caller and injected into the RiskEngine. Every
transition re-derives the RiskProfile from the base thresholds, so the
profile is never set directly once a scenario override applies.
Evaluations read an immutable RiskContext snapshot taken at entry.
"""

from __future__ import annotations

import logging

from core.models.risk import MarketContext, MarketScenario, RiskContext, RiskProfile

logger = logging.getLogger(__name__)

# SILVER_CRASH tightens the bubble limit and bullion cap
CRASH_BUBBLE_LIMIT = 10.0
CRASH_BULLION_CAP = 25.0
# HIGH_VOLATILITY books profit sooner
VOLATILE_PROFIT_THRESHOLD = 15.0
# adapt_to_market() allows more safe-haven allocation in a fear spike
FEAR_SPIKE_BULLION_CAP = 50.0


def derive_profile(scenario: MarketScenario, base: RiskProfile) -> RiskProfile:
    """Thresholds for a scenario, starting from the base profile."""
    if scenario == MarketScenario.SILVER_CRASH:
        return base.model_copy(update={
            "bubble_limit_percent": CRASH_BUBBLE_LIMIT,
            "bullion_cap_percent": CRASH_BULLION_CAP,
        })
    if scenario == MarketScenario.HIGH_VOLATILITY:
        return base.model_copy(update={
            "profit_booking_threshold_percent": VOLATILE_PROFIT_THRESHOLD,
        })
    # GOLD_RALLY, CRYPTO_WINTER, BULL_RUN and NORMAL carry no threshold overrides yet
    return base


class MarketContextState:
    """Mutable holder for the current MarketContext and its derived profile.

    Usage:
        state = MarketContextState(config.risk.base_profile())
        state.set_context(scenario=MarketScenario.SILVER_CRASH, volatility_index=45)
        snapshot = state.snapshot()
    """

    def __init__(self, base_profile: RiskProfile | None = None, high_volatility_vix: float = 30.0) -> None:
        self._base = base_profile or RiskProfile()
        self._high_volatility_vix = high_volatility_vix
        self._context = MarketContext()
        self._profile = self._base
        self._fear_spike = False

    @property
    def context(self) -> MarketContext:
        return self._context

    @property
    def profile(self) -> RiskProfile:
        return self._profile

    @property
    def base_profile(self) -> RiskProfile:
        return self._base

    def snapshot(self) -> RiskContext:
        return RiskContext(market=self._context, profile=self._profile)

    def set_context(
        self,
        scenario: MarketScenario | str | None = None,
        volatility_index: float | None = None,
        commodity_ratio: float | None = None,
    ) -> RiskContext:
        """Apply a partial context update and re-derive the thresholds."""
        update: dict = {}
        if scenario is not None:
            update["scenario"] = MarketScenario(scenario)
        if volatility_index is not None:
            update["volatility_index"] = volatility_index
        if commodity_ratio is not None:
            update["commodity_ratio"] = commodity_ratio

        previous = self._context.scenario
        self._context = self._context.model_copy(update=update)
        if self._context.scenario != MarketScenario.HIGH_VOLATILITY:
            self._fear_spike = False
        self._profile = derive_profile(self._context.scenario, self._base)
        if self._fear_spike:
            self._profile = self._profile.model_copy(update={"bullion_cap_percent": FEAR_SPIKE_BULLION_CAP})

        if self._context.scenario != previous:
            logger.info(
                "Market context %s -> %s (bullion cap %.0f%%, bubble limit %.0f%%, profit booking %.0f%%)",
                previous.value,
                self._context.scenario.value,
                self._profile.bullion_cap_percent,
                self._profile.bubble_limit_percent,
                self._profile.profit_booking_threshold_percent,
            )
        return self.snapshot()

    def adapt_to_market(self, vix: float) -> RiskContext:
        """Switch between HIGH_VOLATILITY and NORMAL from a volatility reading.

        A fear spike also raises the bullion cap. The raised cap holds across
        later set_context() calls until the scenario leaves HIGH_VOLATILITY.
        """
        if vix > self._high_volatility_vix:
            self._fear_spike = True
            return self.set_context(scenario=MarketScenario.HIGH_VOLATILITY, volatility_index=vix)

        self._fear_spike = False
        self._context = MarketContext(volatility_index=vix)
        self._profile = self._base
        logger.info("Market context reset to NORMAL (vix=%.1f)", vix)
        return self.snapshot()
