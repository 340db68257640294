"""
Tests for fleet aggregation: quantity weighting, sales-weighted margin and the
blended cash-flow series.
"""

from decimal import Decimal
from types import SimpleNamespace

from ..dataclasses import CommissionTierData, QuoteTotals, Slot
from ..services.financial import net_present_value
from ..services.quote_totals import average_term, compute_quote_totals
from ..services.slot_pricing import price_slot
from ..services.utils import monthly_rate

ROE = Decimal("20")


def _slot(index, **overrides):
    base = dict(slot_index=index, is_empty=False, model_code=f"M{index}", series_code="1275",
                eur_cost=Decimal("1000"), markup_pct=Decimal("25"))
    base.update(overrides)
    return Slot(**base)


def _quote(*slots, rate=Decimal("9.5")):
    padded = list(slots) + [Slot(slot_index=i) for i in range(len(slots), 6)]
    return SimpleNamespace(id="q-test", slots=padded, factory_roe=ROE, annual_interest_rate=rate)


FLAT_FIVE_PCT = [CommissionTierData(Decimal("-100"), Decimal("100"), Decimal("5"))]


class TestComputeQuoteTotals:
    """Test compute_quote_totals"""

    def test_empty_fleet_returns_zero_totals(self):
        totals = compute_quote_totals(_quote())
        assert totals == QuoteTotals()
        assert totals.irr is None
        assert totals.total_sales_price == 0

    def test_quantity_weighting(self):
        single = compute_quote_totals(_quote(_slot(0)), FLAT_FIVE_PCT)
        triple = compute_quote_totals(_quote(_slot(0, quantity=3)), FLAT_FIVE_PCT)
        assert triple.total_sales_price == single.total_sales_price * 3
        assert triple.total_landed_cost == single.total_landed_cost * 3
        assert triple.total_lease_payment == single.total_lease_payment * 3
        assert triple.unit_count == 3
        # per-slot contract value already carries the quantity
        assert triple.total_contract_value == price_slot(_slot(0, quantity=3), ROE).total_contract_value

    def test_margin_weighted_by_sales_value(self):
        """25,000 at 20% and 20,000 at 50% blend to 33.33%, not the simple 35% average"""
        cheap = _slot(0)
        rich = _slot(1, eur_cost=Decimal("500"), markup_pct=Decimal("100"))
        totals = compute_quote_totals(_quote(cheap, rich), FLAT_FIVE_PCT)
        assert totals.total_sales_price == Decimal("45000")
        expected = (Decimal("20") * 25000 + Decimal("50") * 20000) / 45000
        assert abs(totals.average_margin - expected) < Decimal("1e-20")
        assert totals.average_margin != Decimal("35")

    def test_empty_slots_do_not_contribute(self):
        with_empty = _quote(_slot(0), _slot(1, is_empty=True, eur_cost=Decimal("99999")))
        assert compute_quote_totals(with_empty).total_sales_price == Decimal("25000")

    def test_cash_flow_series(self):
        slot = _slot(0, maintenance_rate_truck_per_hr=Decimal("1"))
        totals = compute_quote_totals(_quote(slot), FLAT_FIVE_PCT)
        flows = totals.cash_flows
        assert len(flows) == 61
        assert flows[0] == -totals.total_landed_cost
        net = totals.total_lease_payment - totals.total_maintenance
        assert flows[1] == net
        assert flows[-1] == net + totals.total_residual_value

    def test_npv_uses_quote_monthly_rate(self):
        totals = compute_quote_totals(_quote(_slot(0), rate=Decimal("6")), FLAT_FIVE_PCT)
        assert totals.npv == net_present_value(monthly_rate(Decimal("6")), totals.cash_flows)

    def test_irr_found_for_profitable_lease(self):
        totals = compute_quote_totals(_quote(_slot(0)), FLAT_FIVE_PCT)
        assert totals.irr is not None
        assert totals.irr > 0

    def test_average_term_is_rounded_mean(self):
        slots = [_slot(0, lease_term_months=36), _slot(1, lease_term_months=60)]
        assert average_term(slots) == 48
        totals = compute_quote_totals(_quote(*slots), FLAT_FIVE_PCT)
        assert totals.average_term_months == 48
        assert len(totals.cash_flows) == 49

    def test_commission_from_tiers(self):
        totals = compute_quote_totals(_quote(_slot(0)), FLAT_FIVE_PCT)
        assert totals.commission == Decimal("25000") * Decimal("5") / 100

    def test_commission_defaults_to_settings_tiers(self, settings):
        settings.DEFAULT_COMMISSION_TIERS = [{"min_margin": "15", "max_margin": "25", "commission_rate": "2"}]
        totals = compute_quote_totals(_quote(_slot(0)))
        assert totals.commission == Decimal("500")
