"""
Fleet-level aggregation over the six slots of a quote.

Two bases are used on purpose:

* the blended margin is weighted by each slot's *sales value*
  (margin x selling x quantity / total selling), so one large low-margin unit
  dominates a handful of small high-margin ones;
* the cash-flow series that drives IRR/NPV starts from the fleet's *landed cost*.

Keep both when changing this module; finance signs off on figures computed this way.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..dataclasses import CommissionTierData, QuoteTotals, Slot
from .commission import calculate_commission, default_tiers
from .financial import (
    generate_cash_flows,
    internal_rate_of_return,
    net_present_value,
    payback_period,
)
from .slot_pricing import price_slot
from .utils import ZERO, d, monthly_rate

logger = logging.getLogger(__name__)


def active_slots(slots: Sequence[Slot]):
    return [s for s in slots if s.is_active]


def average_term(slots: Sequence[Slot]) -> int:
    """Arithmetic mean of lease terms, rounded to whole months."""
    if not slots:
        return 0
    return int(round(sum(int(s.lease_term_months) for s in slots) / len(slots)))


def compute_quote_totals(
    quote,
    commission_tiers: Optional[Sequence[CommissionTierData]] = None,
) -> QuoteTotals:
    """
    Aggregate every active slot of `quote` into fleet totals.

    Args:
        quote: Anything exposing `slots`, `factory_roe` and `annual_interest_rate`
            (normally a `quotes.state.QuoteState`).
        commission_tiers: Tier table to use; defaults to the settings tiers.

    Returns:
        QuoteTotals. An empty fleet yields all-zero totals with `irr=None`.
    """
    slots = active_slots(quote.slots)
    if not slots:
        return QuoteTotals()

    totals = QuoteTotals()
    weighted_margin = ZERO
    total_maintenance = ZERO

    for slot in slots:
        pricing = price_slot(slot, quote.factory_roe)
        if pricing is None:
            continue
        qty = int(slot.quantity)
        totals.total_sales_price += pricing.selling_price * qty
        totals.total_factory_cost += pricing.factory_cost * qty
        totals.total_landed_cost += pricing.landed_cost * qty
        totals.total_lease_payment += pricing.lease_payment * qty
        totals.total_monthly += pricing.total_monthly * qty
        # already multiplied by quantity
        totals.total_contract_value += pricing.total_contract_value
        weighted_margin += pricing.margin * pricing.selling_price * qty
        total_maintenance += pricing.maintenance_monthly * qty
        totals.total_residual_value += pricing.residual_value * qty
        totals.unit_count += qty

    totals.total_maintenance = total_maintenance
    if totals.total_sales_price > ZERO:
        totals.average_margin = weighted_margin / totals.total_sales_price

    totals.average_term_months = average_term(slots)
    totals.cash_flows = generate_cash_flows(
        totals.total_landed_cost,
        totals.total_lease_payment,
        total_maintenance,
        totals.average_term_months,
        totals.total_residual_value,
    )
    totals.irr = internal_rate_of_return(totals.cash_flows)
    if totals.irr is None:
        logger.info("IRR did not converge for quote %s", getattr(quote, "id", "?"))
    totals.npv = net_present_value(monthly_rate(d(quote.annual_interest_rate)), totals.cash_flows)
    totals.payback_period = payback_period(totals.cash_flows)

    tiers = default_tiers() if commission_tiers is None else commission_tiers
    totals.commission = calculate_commission(totals.total_sales_price, totals.average_margin, tiers)
    return totals
