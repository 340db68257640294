"""
Shipping container suggestions for a fleet.

Slots are grouped by series (product family) code, each family is matched to a
container mapping, and the number of containers is derived from the family's
units-per-container. Every suggestion carries a signature of the fleet
composition and factory ROE it was built from, so callers can tell when a
previously applied suggestion no longer matches the quote.
"""
from __future__ import annotations

import json
import logging
import re
import uuid
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

from django.utils import timezone

from ..dataclasses import (
    DEFAULT_CONTAINER_TYPE,
    ContainerMappingData,
    ShippingEntry,
    Slot,
    SuggestionSignature,
)
from .utils import ZERO, d

logger = logging.getLogger(__name__)

SOURCE_MANUAL = "manual"
SOURCE_SUGGESTED = "suggested"

_TRAILING_ZEROS = re.compile(r"0+$")
_TRAILING_ZEROS_AND_DIGIT = re.compile(r"0+\d?$")


def _short_code(series_code: str) -> str:
    return _TRAILING_ZEROS.sub("", series_code) or series_code


def group_by_series(slots: Iterable[Slot]) -> "OrderedDict[str, int]":
    """Total quantity per series code over active slots, in first-seen order."""
    groups: "OrderedDict[str, int]" = OrderedDict()
    for slot in slots:
        if not slot.is_active or not slot.series_code:
            continue
        groups[slot.series_code] = groups.get(slot.series_code, 0) + int(slot.quantity)
    return groups


def find_mapping(series_code: str, mappings: Sequence[ContainerMappingData]) -> Optional[ContainerMappingData]:
    """
    First mapping whose code equals the series code, is a prefix of it, or equals
    the series code with its trailing zeros (plus one trailing digit) stripped.
    """
    if not series_code or not mappings:
        return None
    stripped = _TRAILING_ZEROS_AND_DIGIT.sub("", series_code)
    for mapping in mappings:
        code = mapping.series_code
        if not code:
            continue
        if code == series_code or series_code.startswith(code) or code == stripped:
            return mapping
    return None


def containers_needed(units: int, qty_per_container: int) -> int:
    """ceil(units / qty_per_container), computed on integers."""
    if qty_per_container <= 0:
        raise ValueError("qty_per_container must be positive")
    return -(-int(units) // int(qty_per_container))


def compute_signature(slots: Iterable[Slot], factory_roe) -> SuggestionSignature:
    """
    Order-independent fingerprint of the fleet composition and ROE.

    Quantities are summed per series and the pairs sorted by series code before
    they are JSON-encoded, so slot order never affects the result.
    """
    pairs = sorted(group_by_series(slots).items())
    slot_hash = json.dumps([[code, qty] for code, qty in pairs], separators=(",", ":"))
    return SuggestionSignature(slot_hash=slot_hash, factory_roe=d(factory_roe))


def signatures_match(a: Optional[SuggestionSignature], b: Optional[SuggestionSignature]) -> bool:
    if a is None or b is None:
        return False
    return a.slot_hash == b.slot_hash and a.factory_roe == b.factory_roe


def generate_shipping_suggestion(
    slots: Sequence[Slot],
    mappings: Sequence[ContainerMappingData],
    factory_roe,
) -> List[ShippingEntry]:
    """
    One suggested ShippingEntry per series present in the fleet.

    Families without a mapping get a zero-cost placeholder flagged
    `needs_manual_entry` instead of failing the whole suggestion.
    """
    groups = group_by_series(slots)
    if not groups:
        return []

    roe = d(factory_roe)
    signature = compute_signature(slots, roe)
    now = timezone.now().isoformat()
    entries: List[ShippingEntry] = []

    for series_code, units in groups.items():
        mapping = find_mapping(series_code, mappings)
        if mapping is None or mapping.qty_per_container <= 0:
            logger.warning("No container mapping for series %s", series_code)
            entries.append(
                ShippingEntry(
                    id=str(uuid.uuid4()),
                    description=f"No mapping for series {_short_code(series_code)} - enter manually",
                    container_type=DEFAULT_CONTAINER_TYPE,
                    quantity=1,
                    cost=ZERO,
                    source=SOURCE_SUGGESTED,
                    series_codes=[series_code],
                    suggested_at=now,
                    needs_manual_entry=True,
                    signature=signature,
                )
            )
            continue

        short = mapping.series_code or _short_code(series_code)
        entries.append(
            ShippingEntry(
                id=str(uuid.uuid4()),
                description=f"Series {short} - {mapping.category} ({units} units)",
                container_type=mapping.container_type,
                quantity=containers_needed(units, mapping.qty_per_container),
                cost=d(mapping.container_cost_eur) * roe,
                source=SOURCE_SUGGESTED,
                series_codes=[series_code],
                suggested_at=now,
                signature=signature,
            )
        )

    return entries


def shipping_total(entries: Iterable[ShippingEntry]):
    return sum((d(e.cost) * int(e.quantity) for e in entries), ZERO)


def collect_mapping_notes(mappings: Sequence[ContainerMappingData], series_codes: Iterable[str]) -> List[str]:
    """Deduplicated, non-blank mapping notes for the given series, first-seen order."""
    seen: Dict[str, None] = {}
    for code in series_codes:
        mapping = find_mapping(code, mappings)
        if mapping and mapping.notes and mapping.notes.strip():
            seen.setdefault(mapping.notes.strip(), None)
    return list(seen)


def is_suggestion_stale(entries: Iterable[ShippingEntry], slots: Sequence[Slot], factory_roe) -> bool:
    """
    True when any applied suggestion was computed from a different fleet or ROE.

    Manual entries never go stale; a quote with no suggested entries is never stale.
    """
    current = compute_signature(slots, factory_roe)
    for entry in entries:
        if entry.source != SOURCE_SUGGESTED:
            continue
        if not signatures_match(entry.signature, current):
            return True
    return False
