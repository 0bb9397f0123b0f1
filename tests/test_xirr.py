"""
XIRR -- unit tests

Deterministic dates, no IO.
"""
import math
from datetime import datetime, timedelta

import pytest

from analytics.xirr import (
    CashFlow,
    build_cash_flows,
    calculate_cagr,
    parse_date,
    portfolio_xirr,
    rolling_xirr,
    solve_xirr,
)
from core.models.holdings import Holding, InvestmentType

NOW = datetime(2024, 10, 18, 12, 0, 0)


def _holding(hid="h1", invested=100_000.0, current=100_000.0, when="2024-01-01"):
    return Holding(
        id=hid,
        name=f"Holding {hid}",
        type=InvestmentType.MUTUAL_FUND,
        investedAmount=invested,
        currentValue=current,
        lastUpdated=when,
    )


def _years(d0: datetime, d1: datetime) -> float:
    return (d1 - d0).total_seconds() / (365.25 * 86400)


# ===================================================================
#  Cash-flow builder
# ===================================================================

class TestBuildCashFlows:
    def test_outflows_then_inflow_sorted(self):
        holdings = [
            _holding("b", invested=200.0, when="2023-06-01"),
            _holding("a", invested=100.0, when="2023-01-01"),
        ]
        flows = build_cash_flows(holdings, 350.0, now=NOW)
        assert [cf.amount for cf in flows] == [-100.0, -200.0, 350.0]
        assert flows[-1].date == NOW
        assert flows == sorted(flows, key=lambda cf: cf.date)

    def test_unparseable_dates_skipped(self):
        holdings = [_holding("a", when="not a date"), _holding("b", when="2023-01-01")]
        flows = build_cash_flows(holdings, 0, now=NOW)
        assert len(flows) == 1
        assert flows[0].date == datetime(2023, 1, 1)

    def test_zero_invested_excluded(self):
        flows = build_cash_flows([_holding(invested=0.0)], 500.0, now=NOW)
        assert [cf.amount for cf in flows] == [500.0]

    def test_no_inflow_when_value_zero(self):
        flows = build_cash_flows([_holding()], 0.0, now=NOW)
        assert all(cf.amount < 0 for cf in flows)

    def test_parse_date_timezone_normalized(self):
        assert parse_date("2024-01-01T05:30:00+05:30") == datetime(2024, 1, 1, 0, 0)
        assert parse_date("2024-01-01T00:00:00Z") == datetime(2024, 1, 1)
        assert parse_date("") is None
        assert parse_date(None) is None


# ===================================================================
#  Solver
# ===================================================================

class TestSolveXirr:
    def test_one_year_fifty_percent(self):
        flows = [
            CashFlow(datetime(2023, 1, 1), -100_000),
            CashFlow(datetime(2024, 1, 1), 150_000),
        ]
        rate = solve_xirr(flows)
        assert rate is not None
        assert abs(rate - 0.5) < 1e-3

    @pytest.mark.parametrize("amount,value,days", [
        (100_000, 150_000, 365),
        (50_000, 60_500, 731),
        (10_000, 9_000, 180),
        (25_000, 80_000, 1825),
    ])
    def test_round_trip(self, amount, value, days):
        d0 = datetime(2020, 3, 1)
        d1 = d0 + timedelta(days=days)
        rate = solve_xirr([CashFlow(d0, -amount), CashFlow(d1, value)])
        assert rate is not None
        grown = amount * (1 + rate) ** _years(d0, d1)
        assert abs(grown - value) / value < 1e-4

    def test_multiple_investments(self):
        flows = [
            CashFlow(datetime(2022, 1, 1), -1000),
            CashFlow(datetime(2022, 7, 1), -1000),
            CashFlow(datetime(2023, 1, 1), -1000),
            CashFlow(datetime(2024, 1, 1), 3600),
        ]
        rate = solve_xirr(flows)
        assert rate is not None
        base = flows[0].date
        npv = sum(cf.amount / (1 + rate) ** _years(base, cf.date) for cf in flows)
        assert abs(npv) < 1e-3

    @pytest.mark.parametrize("flows", [
        [],
        [CashFlow(datetime(2023, 1, 1), -100)],
        [CashFlow(datetime(2023, 1, 1), 100), CashFlow(datetime(2024, 1, 1), 200)],
        [CashFlow(datetime(2023, 1, 1), -100), CashFlow(datetime(2024, 1, 1), -200)],
    ])
    def test_invalid_sets_return_none(self, flows):
        assert solve_xirr(flows) is None

    def test_unsorted_input_uses_earliest_date_as_base(self):
        flows = [
            CashFlow(datetime(2024, 1, 1), 150_000),
            CashFlow(datetime(2023, 1, 1), -100_000),
        ]
        rate = solve_xirr(flows)
        assert rate is not None
        assert abs(rate - 0.5) < 1e-3

    def test_bisection_fallback(self):
        flows = [
            CashFlow(datetime(2023, 1, 1), -100_000),
            CashFlow(datetime(2024, 1, 1), 150_000),
        ]
        newton = solve_xirr(flows)
        fallback = solve_xirr(flows, max_iterations=0)
        assert fallback is not None
        assert abs(fallback - newton) < 1e-6

    def test_total_loss_returns_none_without_raising(self):
        flows = [
            CashFlow(datetime(2023, 1, 1), -100_000),
            CashFlow(datetime(2023, 1, 2), 1),
        ]
        assert solve_xirr(flows) is None

    def test_same_day_flows_do_not_raise(self):
        flows = [
            CashFlow(datetime(2023, 1, 1), -100),
            CashFlow(datetime(2023, 1, 1), 150),
        ]
        assert solve_xirr(flows) is None

    def test_monotonic_in_current_value(self):
        rates = []
        for value in (80_000, 100_000, 120_000, 150_000, 200_000):
            flows = build_cash_flows([_holding(invested=100_000, when="2023-01-01")], value, now=NOW)
            rates.append(solve_xirr(flows))
        assert all(r is not None for r in rates)
        assert rates == sorted(rates)


# ===================================================================
#  Rolling windows
# ===================================================================

class TestRollingXirr:
    def test_labels(self):
        result = rolling_xirr([], now=NOW)
        assert list(result) == ["1M", "3M", "6M", "1Y", "3Y", "5Y", "ALL"]
        assert all(rate is None for rate in result.values())

    def test_old_holdings_leave_short_windows_empty(self):
        holdings = [_holding(invested=100.0, current=121.0, when="2022-10-18")]
        result = rolling_xirr(holdings, now=NOW)
        for label in ("1M", "3M", "6M", "1Y"):
            assert result[label] is None
        for label in ("3Y", "5Y", "ALL"):
            assert result[label] is not None
            assert abs(result[label] - 0.1) < 2e-3

    def test_window_uses_only_its_holdings_value(self):
        holdings = [
            _holding("old", invested=100.0, current=1000.0, when="2020-01-01"),
            _holding("new", invested=100.0, current=100.0, when="2024-09-18"),
        ]
        result = rolling_xirr(holdings, now=NOW)
        assert result["1M"] is None
        assert result["3M"] is not None
        assert abs(result["3M"]) < 1e-6
        assert result["ALL"] > 0.5

    def test_portfolio_xirr(self):
        holdings = [_holding(invested=100_000, current=150_000, when="2023-10-18T12:00:00")]
        rate = portfolio_xirr(holdings, now=NOW)
        assert rate is not None
        assert abs(rate - 0.5) < 2e-3


class TestCagr:
    def test_doubling_in_one_year(self):
        assert abs(calculate_cagr(100, 200, 1) - 1.0) < 1e-12

    def test_ten_percent(self):
        assert math.isclose(calculate_cagr(100, 121, 2), 0.1)

    @pytest.mark.parametrize("begin,end,years", [(0, 100, 1), (-5, 100, 1), (100, 200, 0)])
    def test_invalid(self, begin, end, years):
        assert calculate_cagr(begin, end, years) is None
