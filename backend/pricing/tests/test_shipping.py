"""
Tests for container suggestions and their staleness signature.
"""

from decimal import Decimal

import pytest

from ..dataclasses import ContainerMappingData, ShippingEntry, Slot
from ..services.shipping import (
    SOURCE_SUGGESTED,
    collect_mapping_notes,
    compute_signature,
    containers_needed,
    find_mapping,
    generate_shipping_suggestion,
    group_by_series,
    is_suggestion_stale,
    shipping_total,
    signatures_match,
)

MAPPINGS = [
    ContainerMappingData("1275", "E Counterbalance", 4, container_cost_eur=Decimal("3300"), model="All"),
    ContainerMappingData("386", "E Counterbalance", 6, container_cost_eur=Decimal("3300"), model="All",
                         notes="* Quantities based on standard spec * Attachments reduce qty"),
    ContainerMappingData("5021", "IC Counterbalance", 2, container_cost_eur=Decimal("3300"), model="All"),
]
ROE = Decimal("19.73")


def _fleet(*pairs):
    return [
        Slot(slot_index=i, is_empty=False, model_code=f"{code}-m", series_code=code, quantity=qty)
        for i, (code, qty) in enumerate(pairs)
    ]


class TestContainersNeeded:
    """Test the ceiling division"""

    @pytest.mark.parametrize("units,per,expected", [(5, 4, 2), (4, 4, 1), (1, 4, 1), (8, 4, 2), (13, 6, 3)])
    def test_ceiling(self, units, per, expected):
        assert containers_needed(units, per) == expected

    def test_non_positive_capacity_rejected(self):
        with pytest.raises(ValueError):
            containers_needed(3, 0)


class TestFindMapping:
    """Test series code matching"""

    def test_exact_and_prefix(self):
        assert find_mapping("1275", MAPPINGS).series_code == "1275"
        assert find_mapping("12750000000", MAPPINGS).series_code == "1275"
        assert find_mapping("38600000000", MAPPINGS).series_code == "386"

    def test_unknown_and_blank(self):
        assert find_mapping("99990000000", MAPPINGS) is None
        assert find_mapping("", MAPPINGS) is None
        assert find_mapping("1275", []) is None


class TestGenerateShippingSuggestion:
    """Test generate_shipping_suggestion"""

    def test_one_entry_per_family(self):
        entries = generate_shipping_suggestion(_fleet(("12750000000", 3), ("38600000000", 5)), MAPPINGS, ROE)
        assert len(entries) == 2
        assert all(e.source == SOURCE_SUGGESTED for e in entries)
        assert entries[0].series_codes == ["12750000000"]
        assert entries[0].description == "Series 1275 - E Counterbalance (3 units)"
        assert entries[1].quantity == 1

    def test_quantities_summed_across_slots(self):
        entries = generate_shipping_suggestion(_fleet(("12750000000", 3), ("12750000000", 4)), MAPPINGS, ROE)
        assert len(entries) == 1
        assert entries[0].quantity == 2
        assert "(7 units)" in entries[0].description

    def test_cost_is_container_eur_times_roe(self):
        entries = generate_shipping_suggestion(_fleet(("12750000000", 5)), MAPPINGS, ROE)
        assert entries[0].cost == Decimal("3300") * ROE
        assert shipping_total(entries) == Decimal("3300") * ROE * 2

    def test_unmapped_family_becomes_placeholder(self):
        entries = generate_shipping_suggestion(_fleet(("12750000000", 3), ("99990000000", 2)), MAPPINGS, ROE)
        placeholder = entries[1]
        assert placeholder.needs_manual_entry is True
        assert placeholder.cost == 0
        assert "enter manually" in placeholder.description
        assert entries[0].needs_manual_entry is False

    def test_empty_fleet(self):
        assert generate_shipping_suggestion([Slot(slot_index=0)], MAPPINGS, ROE) == []

    def test_entries_carry_signature(self):
        fleet = _fleet(("12750000000", 2))
        entries = generate_shipping_suggestion(fleet, MAPPINGS, ROE)
        assert signatures_match(entries[0].signature, compute_signature(fleet, ROE))


class TestSignature:
    """Test order independence and sensitivity of the fleet signature"""

    def test_order_independent(self):
        a = compute_signature(_fleet(("A", 2), ("B", 3)), ROE)
        b = compute_signature(_fleet(("B", 3), ("A", 2)), ROE)
        assert signatures_match(a, b)

    def test_quantity_change_changes_signature(self):
        a = compute_signature(_fleet(("A", 2), ("B", 3)), ROE)
        b = compute_signature(_fleet(("A", 2), ("B", 4)), ROE)
        assert not signatures_match(a, b)

    def test_rate_change_changes_signature(self):
        fleet = _fleet(("A", 2), ("B", 3))
        assert not signatures_match(compute_signature(fleet, ROE), compute_signature(fleet, Decimal("20")))

    def test_missing_signature_never_matches(self):
        assert not signatures_match(None, compute_signature(_fleet(("A", 1)), ROE))

    def test_group_by_series_skips_inactive(self):
        fleet = _fleet(("A", 2)) + [Slot(slot_index=5, series_code="A", quantity=9)]
        assert dict(group_by_series(fleet)) == {"A": 2}


class TestStaleness:
    """Test is_suggestion_stale"""

    def test_fresh_then_stale_after_fleet_change(self):
        fleet = _fleet(("12750000000", 3))
        entries = generate_shipping_suggestion(fleet, MAPPINGS, ROE)
        assert not is_suggestion_stale(entries, fleet, ROE)
        fleet[0].quantity = 4
        assert is_suggestion_stale(entries, fleet, ROE)
        assert is_suggestion_stale(entries, _fleet(("12750000000", 3)), Decimal("20"))

    def test_manual_entries_never_stale(self):
        manual = [ShippingEntry(id="x", description="Own freight", cost=Decimal("1000"))]
        assert not is_suggestion_stale(manual, _fleet(("A", 1)), ROE)

    def test_mapping_notes_deduplicated(self):
        notes = collect_mapping_notes(MAPPINGS, ["38600000000", "386", "12750000000"])
        assert notes == ["* Quantities based on standard spec * Attachments reduce qty"]
