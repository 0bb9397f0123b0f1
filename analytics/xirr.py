"""XIRR -- annualized return for irregular cash flows, pure Python math.

Newton-Raphson on the NPV function, with bisection as a fallback when
Newton fails to converge. Solvers return None instead of raising when the
cash flows cannot produce an answer; callers render that as
"not enough history", never as 0%.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from core.models.holdings import Holding

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
SECONDS_PER_YEAR = DAYS_PER_YEAR * 24 * 60 * 60

# Newton divergence guards: a step outside (-0.99, 100) is pulled back to these
RATE_FLOOR_RESET = -0.9
RATE_CEILING_RESET = 10.0
# Converged rates outside this band are treated as meaningless
MIN_ACCEPTED_RATE = -0.99
MAX_ACCEPTED_RATE = 100.0

BISECTION_LOW = -0.9
BISECTION_HIGH = 10.0
BISECTION_STEPS = 200
BISECTION_TOLERANCE = 1e-5

ROLLING_WINDOWS: dict[str, int | None] = {
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
    "3Y": 1095,
    "5Y": 1825,
    "ALL": None,
}


@dataclass
class CashFlow:
    """A dated amount. Outflows (investments) are negative."""

    date: datetime
    amount: float


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value: object) -> datetime | None:
    """Parse a holding date into a naive UTC datetime; None if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ---------------------------------------------------------------------------
# Cash-flow construction
# ---------------------------------------------------------------------------

def build_cash_flows(
    holdings: Iterable[Holding],
    current_total_value: float,
    now: datetime | None = None,
) -> list[CashFlow]:
    """Turn holdings into sorted cash flows.

    Each holding with a positive invested amount and a parseable date is an
    outflow on that date; the current total value is one inflow at `now`.
    The result is not validated for count or sign mix.
    """
    flows: list[CashFlow] = []

    for holding in holdings:
        when = parse_date(holding.last_updated)
        if when is None or holding.invested_amount <= 0:
            continue
        flows.append(CashFlow(date=when, amount=-holding.invested_amount))

    if current_total_value > 0:
        flows.append(CashFlow(date=parse_date(now) if now else _utcnow(), amount=current_total_value))

    flows.sort(key=lambda cf: cf.date)
    return flows


# ---------------------------------------------------------------------------
# Solver
# ---------------------------------------------------------------------------

def _year_fractions(cash_flows: list[CashFlow]) -> list[float]:
    base = min(cf.date for cf in cash_flows)
    return [(cf.date - base).total_seconds() / SECONDS_PER_YEAR for cf in cash_flows]


def _npv(rate: float, amounts: list[float], years: list[float]) -> float:
    return sum(amount / (1 + rate) ** t for amount, t in zip(amounts, years))


def _npv_derivative(rate: float, amounts: list[float], years: list[float]) -> float:
    return sum(-t * amount / (1 + rate) ** (t + 1) for amount, t in zip(amounts, years) if t != 0)


def solve_xirr(
    cash_flows: list[CashFlow],
    guess: float = 0.10,
    tolerance: float = 1e-7,
    max_iterations: int = 100,
) -> float | None:
    """Annualized rate (0.15 = 15%) that zeroes the NPV of the cash flows.

    Returns None for fewer than two flows, for flows without both an
    outflow and an inflow, and when neither Newton-Raphson nor bisection
    finds an acceptable root.
    """
    if len(cash_flows) < 2:
        return None
    if not any(cf.amount > 0 for cf in cash_flows) or not any(cf.amount < 0 for cf in cash_flows):
        return None

    amounts = [cf.amount for cf in cash_flows]
    years = _year_fractions(cash_flows)

    rate = guess if guess > MIN_ACCEPTED_RATE else RATE_FLOOR_RESET
    try:
        for _ in range(max_iterations):
            value = _npv(rate, amounts, years)
            derivative = _npv_derivative(rate, amounts, years)

            if abs(derivative) < 1e-10:
                # Flat spot: move away and retry
                rate += 0.1
                continue

            new_rate = rate - value / derivative

            if abs(new_rate - rate) < tolerance:
                if new_rate < MIN_ACCEPTED_RATE or new_rate > MAX_ACCEPTED_RATE:
                    return None
                return new_rate

            rate = new_rate
            if rate < MIN_ACCEPTED_RATE:
                rate = RATE_FLOOR_RESET
            if rate > MAX_ACCEPTED_RATE:
                rate = RATE_CEILING_RESET
    except (OverflowError, ZeroDivisionError):
        logger.debug("Newton-Raphson overflowed at rate %.6f", rate)

    logger.debug("Newton-Raphson did not converge, falling back to bisection")
    return _bisect(amounts, years)


def _bisect(amounts: list[float], years: list[float]) -> float | None:
    low, high = BISECTION_LOW, BISECTION_HIGH
    try:
        for _ in range(BISECTION_STEPS):
            mid = (low + high) / 2
            value = _npv(mid, amounts, years)

            if abs(value) < BISECTION_TOLERANCE:
                return mid

            if value > 0:
                low = mid
            else:
                high = mid
    except (OverflowError, ZeroDivisionError):
        logger.debug("Bisection overflowed")
        return None

    logger.debug("Bisection did not bracket a root")
    return None


# ---------------------------------------------------------------------------
# Portfolio helpers
# ---------------------------------------------------------------------------

def portfolio_xirr(holdings: list[Holding], now: datetime | None = None) -> float | None:
    """XIRR of all holdings against their combined current value."""
    total = sum(h.current_value for h in holdings)
    return solve_xirr(build_cash_flows(holdings, total, now=now))


def rolling_xirr(holdings: list[Holding], now: datetime | None = None) -> dict[str, float | None]:
    """XIRR per trailing window (1M ... ALL).

    A window keeps holdings whose date falls inside it and values them at
    their own current value. Empty windows map to None.
    """
    now = parse_date(now) if now else _utcnow()
    result: dict[str, float | None] = {}

    for label, days in ROLLING_WINDOWS.items():
        cutoff = now - timedelta(days=days) if days is not None else None

        in_window = []
        for holding in holdings:
            when = parse_date(holding.last_updated)
            if when is None:
                continue
            if cutoff is None or when >= cutoff:
                in_window.append(holding)

        if not in_window:
            result[label] = None
            continue

        window_value = sum(h.current_value for h in in_window)
        result[label] = solve_xirr(build_cash_flows(in_window, window_value, now=now))

    return result


def calculate_cagr(beginning_value: float, ending_value: float, years: float) -> float | None:
    """Compound annual growth rate, as a simple benchmark next to XIRR."""
    if beginning_value <= 0 or years <= 0:
        return None
    if ending_value < 0:
        return None
    return math.pow(ending_value / beginning_value, 1 / years) - 1
