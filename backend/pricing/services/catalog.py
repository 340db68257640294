"""
Container-mapping lookups.

The price list itself is maintained outside this service; pricing only needs the
narrow view defined by `CatalogLookup`. `DatabaseCatalog` reads container
mappings from the `ContainerMapping` table.
"""
from __future__ import annotations

import abc
from typing import List

from ..dataclasses import ContainerMappingData


class CatalogLookup(abc.ABC):
    """What pricing needs from the price catalog."""

    @abc.abstractmethod
    def container_mappings(self) -> List[ContainerMappingData]:
        raise NotImplementedError


class DatabaseCatalog(CatalogLookup):
    def container_mappings(self) -> List[ContainerMappingData]:
        from ..models import ContainerMapping

        return [m.as_data() for m in ContainerMapping.objects.order_by("series_code")]
