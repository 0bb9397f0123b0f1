"""
Risk engine -- per-holding rule order and portfolio verdicts
"""
import pytest

from core.models.holdings import Holding, InvestmentType
from core.models.risk import MarketScenario, VerdictLevel, VerdictStatus
from plugins.risk_rules import estimate_beta
from risk.context import MarketContextState
from risk.engine import RiskEngine, sector_allocations

TOTAL = 1_000_000.0


def _holding(hid="h1", type=InvestmentType.STOCKS, invested=10_000.0, current=10_000.0, sector=None):
    return Holding(
        id=hid,
        name=f"Holding {hid}",
        type=type,
        investedAmount=invested,
        currentValue=current,
        lastUpdated="2024-01-01",
        sector=sector,
    )


def _engine(scenario=None):
    state = MarketContextState()
    if scenario:
        state.set_context(scenario=scenario)
    return RiskEngine(state)


def _evaluate(holding, scenario=None, total=TOTAL, sectors=None):
    return _engine(scenario).evaluate(holding, total, sectors or {})


# ===================================================================
#  Per-holding rules
# ===================================================================

class TestHoldingRules:
    def test_default_is_safe(self):
        verdict = _evaluate(_holding())
        assert verdict.status == VerdictStatus.SAFE
        assert verdict.issue == "No Issues"
        assert verdict.rule is None
        assert verdict.holding_id == "h1"

    def test_concentration_beats_free_ride(self):
        holding = _holding(invested=100_000, current=300_000)
        verdict = _evaluate(holding)
        assert verdict.status == VerdictStatus.CRITICAL
        assert verdict.issue == "Concentration Trap"

    def test_free_ride_when_not_concentrated(self):
        verdict = _evaluate(_holding(invested=10_000, current=25_000))
        assert verdict.status == VerdictStatus.SAFE
        assert verdict.issue == "Free Ride"

    def test_silver_rally_safe_in_normal_warning_in_crash(self):
        silver = _holding(type=InvestmentType.DIGITAL_SILVER, invested=10_000, current=11_200)
        assert _evaluate(silver).status == VerdictStatus.SAFE

        verdict = _evaluate(silver, scenario="SILVER_CRASH")
        assert verdict.status == VerdictStatus.WARNING
        assert verdict.issue == "Weak Rally"

    def test_weak_rally_small_bounce(self):
        silver = _holding(type=InvestmentType.DIGITAL_SILVER, invested=10_000, current=10_500)
        verdict = _evaluate(silver, scenario="SILVER_CRASH")
        assert verdict.issue == "Weak Rally"
        assert "relief bounce" in verdict.action

    def test_concentrated_silver_rally_stays_critical(self):
        silver = _holding(type=InvestmentType.DIGITAL_SILVER, invested=200_000, current=300_000)
        verdict = _evaluate(silver, scenario="SILVER_CRASH")
        assert verdict.status == VerdictStatus.CRITICAL
        assert verdict.issue == "Concentration Trap"

    def test_sector_overloaded_silver_rally_stays_critical(self):
        silver = _holding(
            type=InvestmentType.DIGITAL_SILVER, invested=10_000, current=11_500, sector="Metals",
        )
        verdict = _evaluate(silver, scenario="SILVER_CRASH", sectors={"Metals": 45.0})
        assert verdict.status == VerdictStatus.CRITICAL
        assert verdict.issue == "Sector Overload"

    @pytest.mark.parametrize("current,action", [
        (9_000, "HOLD"),
        (8_000, "Exit (stop-loss breached)"),
    ])
    def test_falling_knife(self, current, action):
        silver = _holding(type=InvestmentType.DIGITAL_SILVER, invested=10_000, current=current)
        verdict = _evaluate(silver, scenario="SILVER_CRASH")
        assert verdict.status == VerdictStatus.CRITICAL
        assert verdict.issue == "Falling Knife"
        assert verdict.action == action

    def test_flash_rally(self):
        verdict = _evaluate(_holding(invested=10_000, current=12_000), scenario="GOLD_RALLY")
        assert verdict.status == VerdictStatus.WARNING
        assert verdict.issue == "Flash Rally"

    def test_flash_rally_ignored_in_normal_market(self):
        verdict = _evaluate(_holding(invested=10_000, current=12_000))
        assert verdict.status == VerdictStatus.SAFE

    def test_high_beta_overrides_flash_rally(self):
        crypto = _holding(type=InvestmentType.CRYPTO, invested=10_000, current=13_000)
        verdict = _evaluate(crypto, scenario="HIGH_VOLATILITY")
        assert verdict.status == VerdictStatus.WARNING
        assert verdict.issue == "High Beta Hazard"

    def test_slow_bleed_only_in_normal(self):
        fund = _holding(type=InvestmentType.MUTUAL_FUND, invested=10_000, current=8_800)
        assert _evaluate(fund).issue == "Slow Bleed"
        assert _evaluate(fund, scenario="CRYPTO_WINTER").status == VerdictStatus.SAFE

    def test_dead_cat_bounce(self):
        verdict = _evaluate(_holding(invested=10_000, current=6_000), scenario="BULL_RUN")
        assert verdict.status == VerdictStatus.WARNING
        assert verdict.issue == "Dead Cat Bounce"

    def test_sector_overload_overrides_free_ride(self):
        bank = _holding(invested=10_000, current=25_000, sector="Banking")
        verdict = _evaluate(bank, sectors={"Banking": 45.0})
        assert verdict.status == VerdictStatus.CRITICAL
        assert verdict.issue == "Sector Overload"

    def test_holding_without_sector_never_sector_overloaded(self):
        verdict = _evaluate(_holding(), sectors={"Unclassified": 90.0})
        assert verdict.status == VerdictStatus.SAFE

    def test_blue_chip_stagnation(self):
        verdict = _evaluate(_holding(invested=10_000, current=10_100), scenario="BULL_RUN")
        assert verdict.status == VerdictStatus.WARNING
        assert verdict.issue == "Blue-Chip Stagnation"

    def test_defensive_stock_not_stagnant(self):
        fmcg = _holding(invested=10_000, current=10_100, sector="FMCG")
        verdict = _evaluate(fmcg, scenario="BULL_RUN", sectors={"FMCG": 1.0})
        assert verdict.status == VerdictStatus.SAFE

    @pytest.mark.parametrize("current,status,issue", [
        (20_000, VerdictStatus.CRITICAL, "Low Reserves"),
        (100_000, VerdictStatus.SAFE, "Dry Powder"),
    ])
    def test_liquidity(self, current, status, issue):
        cash = _holding(type=InvestmentType.CASH, invested=current, current=current)
        verdict = _evaluate(cash)
        assert verdict.status == status
        assert verdict.issue == issue

    def test_explicit_context_wins_over_engine_state(self):
        silver = _holding(type=InvestmentType.DIGITAL_SILVER, invested=10_000, current=11_200)
        engine = _engine()
        crash = MarketContextState()
        crash.set_context(scenario="SILVER_CRASH")
        verdict = engine.evaluate(silver, TOTAL, {}, context=crash.snapshot())
        assert verdict.issue == "Weak Rally"
        assert engine.state.context.scenario == MarketScenario.NORMAL

    def test_rule_errors_are_skipped(self):
        class Broken:
            name = "broken"

            def evaluate(self, asset, current):
                raise RuntimeError("boom")

        engine = RiskEngine(rules=[Broken()])
        verdict = engine.evaluate(_holding(), TOTAL, {})
        assert verdict.status == VerdictStatus.SAFE


class TestEstimateBeta:
    @pytest.mark.parametrize("type,sector,beta", [
        (InvestmentType.STOCKS, "Tech", 1.5),
        (InvestmentType.STOCKS, "Small Cap", 1.5),
        (InvestmentType.STOCKS, "Pharma", 0.7),
        (InvestmentType.STOCKS, "Banking", 1.1),
        (InvestmentType.STOCKS, None, 1.1),
        (InvestmentType.CASH, None, 0.0),
        (InvestmentType.FD, None, 0.0),
        (InvestmentType.DIGITAL_GOLD, None, 0.2),
        (InvestmentType.DIGITAL_SILVER, None, 1.2),
        (InvestmentType.CRYPTO, None, 2.5),
        (InvestmentType.MUTUAL_FUND, None, 0.9),
        (InvestmentType.REAL_ESTATE, None, 1.0),
    ])
    def test_lookup(self, type, sector, beta):
        assert estimate_beta(_holding(type=type, sector=sector)) == beta


class TestEvaluateAll:
    def test_sorted_by_severity(self):
        holdings = [
            _holding("safe"),
            _holding("cash", type=InvestmentType.CASH),
            _holding("bleed", type=InvestmentType.MUTUAL_FUND, invested=10_000, current=8_000),
        ]
        verdicts = _engine().evaluate_all(holdings, TOTAL)
        assert [v.holding_id for v in verdicts] == ["cash", "bleed", "safe"]

    def test_sector_allocations(self):
        holdings = [
            _holding("a", current=300, sector="Tech"),
            _holding("b", current=100, sector="Tech"),
            _holding("c", current=600),
        ]
        assert sector_allocations(holdings, 1000) == pytest.approx({"Tech": 40.0, "Unclassified": 60.0})
        assert sector_allocations([], 0) == {}


# ===================================================================
#  Portfolio verdict
# ===================================================================

class TestPortfolioVerdict:
    def test_silver_kill_switch(self):
        holdings = [
            _holding("silver", type=InvestmentType.DIGITAL_SILVER, invested=350_000, current=300_000),
            _holding("fd", type=InvestmentType.FD, invested=700_000, current=700_000),
        ]
        verdict = _engine("SILVER_CRASH").generate_verdict(holdings, TOTAL)
        assert verdict.level == VerdictLevel.KILL_SWITCH
        assert verdict.score <= 50
        assert any("Halt" in step for step in verdict.action_plan)

    def test_kill_switch_not_escalated_by_bullion_cap(self):
        holdings = [_holding("silver", type=InvestmentType.DIGITAL_SILVER, current=300_000)]
        verdict = _engine("SILVER_CRASH").generate_verdict(holdings, TOTAL)
        assert verdict.score == 50
        assert len(verdict.action_plan) == 3

    def test_silver_caution(self):
        holdings = [_holding("silver", type=InvestmentType.DIGITAL_SILVER, current=150_000)]
        verdict = _engine("SILVER_CRASH").generate_verdict(holdings, TOTAL)
        assert verdict.level == VerdictLevel.CAUTION
        assert verdict.score == 70
        assert len(verdict.action_plan) == 2

    def test_caution_escalates_to_critical_on_bullion_cap(self):
        holdings = [
            _holding("silver", type=InvestmentType.DIGITAL_SILVER, current=150_000),
            _holding("gold", type=InvestmentType.DIGITAL_GOLD, current=200_000),
        ]
        verdict = _engine("SILVER_CRASH").generate_verdict(holdings, TOTAL)
        assert verdict.level == VerdictLevel.CRITICAL
        assert verdict.score == 50
        assert verdict.action_plan[-1].startswith("Rebalance")

    def test_bullion_overweight_in_normal_market(self):
        holdings = [_holding("gold", type=InvestmentType.DIGITAL_GOLD, current=500_000)]
        verdict = _engine().generate_verdict(holdings, TOTAL)
        assert verdict.level == VerdictLevel.CAUTION
        assert verdict.score == 70
        assert verdict.title == "Bullion Overweight"

    def test_silver_ignored_outside_crash(self):
        holdings = [_holding("silver", type=InvestmentType.DIGITAL_SILVER, current=300_000)]
        verdict = _engine().generate_verdict(holdings, TOTAL)
        assert verdict.level == VerdictLevel.SAFE
        assert verdict.score == 90
        assert verdict.action_plan == []

    def test_zero_net_worth(self):
        verdict = _engine("SILVER_CRASH").generate_verdict([], 0)
        assert verdict.level == VerdictLevel.SAFE
        assert verdict.score == 100
        assert verdict.action_plan == []


class TestAnalyze:
    def test_analyze_portfolio(self):
        holdings = [
            _holding("gold", type=InvestmentType.DIGITAL_GOLD, current=300_000),
            _holding("silver", type=InvestmentType.DIGITAL_SILVER, current=150_000),
        ]
        exposure = _engine().analyze_portfolio(holdings, TOTAL)
        assert exposure.exposure_percent == pytest.approx(45.0)
        assert exposure.limit_percent == 40
        assert exposure.is_overweight

        engine = RiskEngine(MarketContextState())
        engine.state.adapt_to_market(40)
        assert not engine.analyze_portfolio(holdings, TOTAL).is_overweight

    def test_analyze_asset(self):
        engine = _engine()
        signals = engine.analyze_asset(_holding(invested=100, current=125))
        assert signals.roi_percent == pytest.approx(25.0)
        assert signals.should_book_profit
        assert not signals.is_bubble_risk

        silver = _holding(type=InvestmentType.DIGITAL_SILVER, invested=100, current=112)
        assert not engine.analyze_asset(silver).is_bubble_risk
        engine.state.set_context(scenario="SILVER_CRASH")
        assert engine.analyze_asset(silver).is_bubble_risk
