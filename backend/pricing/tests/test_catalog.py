"""
Tests for the catalog lookup.
"""

from decimal import Decimal

import pytest

from ..models import ContainerMapping
from ..services.catalog import CatalogLookup, DatabaseCatalog


class TestDatabaseCatalog:
    """Test container mappings read from the database"""

    @pytest.mark.django_db
    def test_mappings_ordered_by_series(self):
        ContainerMapping.objects.create(series_code="386", category="E Counterbalance", qty_per_container=6,
                                        container_cost_eur=Decimal("3300"))
        ContainerMapping.objects.create(series_code="1275", category="E Counterbalance", qty_per_container=4,
                                        container_cost_eur=Decimal("3300"))
        mappings = DatabaseCatalog().container_mappings()
        assert [m.series_code for m in mappings] == ["1275", "386"]
        assert mappings[0].qty_per_container == 4

    @pytest.mark.django_db
    def test_empty_table(self):
        assert DatabaseCatalog().container_mappings() == []

    def test_lookup_is_abstract(self):
        with pytest.raises(TypeError):
            CatalogLookup()
