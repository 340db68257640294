from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from ..dataclasses import Slot, SlotPricing
from .financial import amortized_payment
from .utils import HUNDRED, ONE, ZERO, d, monthly_rate, pct

logger = logging.getLogger(__name__)


def landed_cost_local(slot: Slot, factory_cost) -> Decimal:
    """Factory cost plus every local-currency charge carried by the slot."""
    return (
        d(factory_cost)
        + slot.clearing_charges.total()
        + slot.local_costs.total()
        + d(slot.local_battery_cost)
        + d(slot.local_attachment_cost)
        + d(slot.local_telematics_cost)
    )


def price_slot(slot: Slot, factory_roe) -> Optional[SlotPricing]:
    """
    Run the cost -> price -> cash-flow cascade for one line item.

    The steps are order dependent; each one feeds the next:

        gross EUR -> net EUR (discount) -> factory cost (x ROE) -> landed cost
        -> selling price (markup) -> margin -> residual -> lease payment
        -> maintenance -> total monthly -> cost per hour -> contract value

    Nothing is rounded here. Presentation code rounds with `utils.q2`.

    Args:
        slot: The line item.
        factory_roe: Local currency units per EUR.

    Returns:
        SlotPricing, or None when the slot is empty.
    """
    if not slot.is_active:
        return None

    roe = d(factory_roe)
    hours = d(slot.operating_hours_per_month)
    term = int(slot.lease_term_months)

    # 1-3: factory side, EUR then local
    gross_eur = d(slot.eur_cost) + d(slot.configuration_cost) + d(slot.attachments_cost)
    net_eur = gross_eur * (ONE - pct(slot.discount_pct))
    factory_cost = net_eur * roe

    # 4-6: landed, selling, margin
    landed = landed_cost_local(slot, factory_cost)
    selling = landed * (ONE + pct(slot.markup_pct))
    if selling == ZERO:
        margin = ZERO
    else:
        margin = (selling - landed) / selling * HUNDRED

    # 7-8: lease
    residual = selling * pct(slot.residual_value_pct)
    lease = amortized_payment(monthly_rate(slot.finance_cost_pct), term, -selling, residual)

    # 9-12: running costs and contract
    maintenance = slot.maintenance_rate_per_hr * hours
    total_monthly = (
        lease
        + maintenance
        + d(slot.telematics_subscription_selling_per_month)
        + d(slot.operator_price_per_month)
    )
    cost_per_hour = total_monthly / hours if hours != ZERO else ZERO
    contract_value = total_monthly * term * int(slot.quantity)

    return SlotPricing(
        gross_cost_eur=gross_eur,
        factory_cost_eur=net_eur,
        factory_cost=factory_cost,
        landed_cost=landed,
        selling_price=selling,
        margin=margin,
        residual_value=residual,
        lease_payment=lease,
        maintenance_monthly=maintenance,
        total_monthly=total_monthly,
        cost_per_hour=cost_per_hour,
        total_contract_value=contract_value,
    )
