from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from django.conf import settings

from ..dataclasses import CommissionTierData
from .utils import HUNDRED, ZERO, d

logger = logging.getLogger(__name__)


def default_tiers() -> List[CommissionTierData]:
    """Tiers from settings.DEFAULT_COMMISSION_TIERS (list of dicts)."""
    raw = getattr(settings, "DEFAULT_COMMISSION_TIERS", [])
    return [
        CommissionTierData(
            min_margin=d(t["min_margin"]),
            max_margin=d(t["max_margin"]),
            commission_rate=d(t["commission_rate"]),
        )
        for t in raw
    ]


def load_tiers() -> List[CommissionTierData]:
    """Tiers from the CommissionTier table, or the settings defaults when it is empty."""
    from ..models import CommissionTier

    rows = list(CommissionTier.objects.order_by("min_margin"))
    if not rows:
        return default_tiers()
    return [row.as_data() for row in rows]


def find_tier(margin, tiers: Iterable[CommissionTierData]) -> Optional[CommissionTierData]:
    """First tier with min_margin <= margin < max_margin."""
    m = d(margin)
    for tier in tiers:
        if tier.min_margin <= m < tier.max_margin:
            return tier
    return None


def calculate_commission(total_sales, margin, tiers: Sequence[CommissionTierData]) -> Decimal:
    tier = find_tier(margin, tiers)
    if tier is None:
        return ZERO
    return d(total_sales) * tier.commission_rate / HUNDRED


def validate_tiers(tiers: Sequence[CommissionTierData]) -> List[str]:
    """
    Sanity-check an edited tier table before it is stored.

    Returns a list of human readable problems (empty when the table is usable):
    inverted bounds, margins or rates outside 0..100, and gaps between
    consecutive tiers.
    """
    if not tiers:
        return ["At least one commission tier is required"]

    errors: List[str] = []
    for i, tier in enumerate(tiers, start=1):
        if tier.min_margin >= tier.max_margin:
            errors.append(f"Tier {i}: min margin must be less than max margin")
        if tier.min_margin < ZERO or tier.max_margin > HUNDRED:
            errors.append(f"Tier {i}: margin must be between 0% and 100%")
        if tier.commission_rate < ZERO or tier.commission_rate > HUNDRED:
            errors.append(f"Tier {i}: commission rate must be between 0% and 100%")

    ordered = sorted(tiers, key=lambda t: t.min_margin)
    for i in range(len(ordered) - 1):
        gap = ordered[i + 1].min_margin - ordered[i].max_margin
        if gap > ZERO:
            errors.append(f"Gap of {gap}% between tier {i + 1} and tier {i + 2}")

    return errors
