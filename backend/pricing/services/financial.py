"""
Financial primitives for lease pricing.

Excel-compatible PMT / NPV / IRR plus the cash-flow helpers used by the quote
aggregator. Every function is pure and works in Decimal. Degenerate inputs resolve
to sentinel values (0 or None) instead of raising, so a dashboard can always
render a figure or "N/A".
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

from .utils import ONE, ZERO, d

logger = logging.getLogger(__name__)

IRR_TOLERANCE = Decimal("1e-7")
DEFAULT_IRR_GUESS = Decimal("0.10")


def amortized_payment(periodic_rate, num_periods, present_value, future_value=ZERO) -> Decimal:
    """
    Periodic payment that amortizes `present_value` down to `future_value` (PMT).

    Args:
        periodic_rate: Interest rate per period (annual % / 12 / 100 for monthly).
        num_periods: Number of payment periods.
        present_value: Financed amount, normally negative (cash out).
        future_value: Balloon / residual at the end of the term.

    Returns:
        Decimal payment per period; 0 when there are no usable periods.
    """
    n = d(num_periods)
    if not n.is_finite() or n <= ZERO:
        return ZERO

    rate = d(periodic_rate)
    pv = d(present_value)
    fv = d(future_value)

    if rate == ZERO:
        return -(pv + fv) / n

    pvif = (ONE + rate) ** n
    if pvif == ONE:
        # rate too small to register at the working precision
        return -(pv + fv) / n
    return -(rate * (pv * pvif + fv) / (pvif - ONE))


def net_present_value(rate, cash_flows: Sequence) -> Decimal:
    """Sum of cash_flows[i] / (1 + rate)^i. Period 0 is undiscounted."""
    flows = [d(cf) for cf in cash_flows]
    if not flows:
        return ZERO

    r = d(rate)
    if r <= -ONE:
        return flows[0]

    base = ONE + r
    total = ZERO
    for i, cf in enumerate(flows):
        total += cf / (base ** i)
    return total


def internal_rate_of_return(
    cash_flows: Sequence,
    guess=DEFAULT_IRR_GUESS,
    max_iterations: int = 1000,
) -> Optional[Decimal]:
    """
    Newton-Raphson search for the rate where NPV(rate) == 0.

    Returns the periodic rate as a fraction (0.015 == 1.5% per period), or None
    when the iteration cannot converge: zero or non-finite derivative, a
    non-finite estimate, an arithmetic failure, or max_iterations exhausted.
    """
    flows = [d(cf) for cf in cash_flows]
    if not flows:
        return None

    rate = d(guess)
    for _ in range(max_iterations):
        try:
            npv_val = ZERO
            dnpv = ZERO
            base = ONE + rate
            for j, cf in enumerate(flows):
                npv_val += cf / (base ** j)
                dnpv -= (j * cf) / (base ** (j + 1))

            if dnpv == ZERO or not dnpv.is_finite():
                return None

            new_rate = rate - npv_val / dnpv
        except (ArithmeticError, InvalidOperation):
            logger.debug("IRR iteration aborted at rate=%s", rate)
            return None

        if not new_rate.is_finite():
            return None

        if abs(new_rate - rate) < IRR_TOLERANCE:
            return new_rate

        rate = new_rate

    return None


def generate_cash_flows(
    initial_outlay,
    monthly_inflow,
    monthly_costs,
    term_months: int,
    residual_value,
) -> List[Decimal]:
    """[-outlay, net, net, ..., net + residual] with `term_months` net periods."""
    flows: List[Decimal] = [-d(initial_outlay)]
    net = d(monthly_inflow) - d(monthly_costs)
    residual = d(residual_value)

    for month in range(1, int(term_months) + 1):
        if month == term_months:
            flows.append(net + residual)
        else:
            flows.append(net)
    return flows


def payback_period(cash_flows: Sequence) -> Optional[int]:
    """Index of the first period where the cumulative cash position is >= 0."""
    cumulative = ZERO
    for i, cf in enumerate(cash_flows):
        cumulative += d(cf)
        if cumulative >= ZERO:
            return i
    return None


def margin_band(margin) -> str:
    m = d(margin)
    if m >= 35:
        return "excellent"
    if m >= 25:
        return "good"
    if m >= 15:
        return "acceptable"
    return "poor"
