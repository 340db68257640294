"""
Mapping between `QuoteState` and its stored form.

Slots and shipping entries live in JSON columns on the `Quote` row, with
Decimals written as strings. Reading is forgiving: a corrupt or wrongly shaped
slot collection is replaced with empty slots, short collections are padded and
missing keys take their defaults. Recovery is logged and never raised, so a
damaged record can still be opened and repaired.
"""
from __future__ import annotations

import dataclasses
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pricing.dataclasses import ClearingCharges, LocalCosts, ShippingEntry, Slot, SuggestionSignature
from pricing.services.utils import safe_d

from .state import SLOT_COUNT, QuoteState, QuoteStatus, blank_shipping_entry, empty_slot, quote_defaults

logger = logging.getLogger(__name__)


def _plain(value):
    if isinstance(value, Decimal):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: _plain(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def slot_to_dict(slot: Slot) -> Dict[str, Any]:
    return _plain(slot)


def _charges_from_dict(cls, raw, default):
    if not isinstance(raw, dict):
        return default
    values = {}
    for f in dataclasses.fields(cls):
        values[f.name] = safe_d(raw.get(f.name), getattr(default, f.name))
    return cls(**values)


def slot_from_dict(raw: Dict[str, Any], index: int, defaults: Optional[Dict[str, Any]] = None) -> Slot:
    """Build a slot from stored data; anything missing or unreadable keeps the empty-slot default."""
    slot = empty_slot(index, defaults)
    for f in dataclasses.fields(Slot):
        if f.name == "slot_index" or f.name not in raw:
            continue
        value = raw[f.name]
        current = getattr(slot, f.name)
        if f.name == "clearing_charges":
            slot.clearing_charges = _charges_from_dict(ClearingCharges, value, current)
        elif f.name == "local_costs":
            slot.local_costs = _charges_from_dict(LocalCosts, value, current)
        elif isinstance(current, bool):
            slot.is_empty = bool(value)
        elif isinstance(current, int):
            setattr(slot, f.name, int(safe_d(value, Decimal(current))))
        elif isinstance(current, Decimal):
            setattr(slot, f.name, safe_d(value, current))
        elif isinstance(current, dict):
            setattr(slot, f.name, dict(value) if isinstance(value, dict) else {})
        elif isinstance(current, list):
            setattr(slot, f.name, list(value) if isinstance(value, list) else [])
        else:
            setattr(slot, f.name, "" if value is None else str(value))
    return slot


def slots_from_json(raw, quote_id: str = "?") -> List[Slot]:
    """Exactly SLOT_COUNT slots from a stored slot collection, recovering what can be recovered."""
    defaults = quote_defaults()
    if not isinstance(raw, list):
        logger.warning("Quote %s: slot data is %s, not a list; using empty slots", quote_id, type(raw).__name__)
        return [empty_slot(i, defaults) for i in range(SLOT_COUNT)]

    if len(raw) != SLOT_COUNT:
        logger.warning("Quote %s: expected %d slots, found %d", quote_id, SLOT_COUNT, len(raw))

    slots: List[Slot] = []
    for i in range(SLOT_COUNT):
        item = raw[i] if i < len(raw) else None
        if not isinstance(item, dict):
            if item is not None:
                logger.warning("Quote %s: slot %d is unreadable, reset to empty", quote_id, i)
            slots.append(empty_slot(i, defaults))
            continue
        slots.append(slot_from_dict(item, i, defaults))
    return slots


def shipping_entry_to_dict(entry: ShippingEntry) -> Dict[str, Any]:
    return _plain(entry)


def shipping_entry_from_dict(raw: Dict[str, Any]) -> ShippingEntry:
    entry = blank_shipping_entry()
    if raw.get("id"):
        entry.id = str(raw["id"])
    entry.description = str(raw.get("description") or "")
    entry.container_type = str(raw.get("container_type") or entry.container_type)
    entry.quantity = max(1, int(safe_d(raw.get("quantity"), Decimal(1))))
    entry.cost = max(Decimal(0), safe_d(raw.get("cost")))
    entry.source = raw.get("source") if raw.get("source") in ("manual", "suggested") else "manual"
    series_codes = raw.get("series_codes")
    if isinstance(series_codes, list):
        entry.series_codes = [str(c) for c in series_codes]
    elif series_codes is not None:
        logger.warning("Shipping line %s: series codes are %s, not a list", entry.id, type(series_codes).__name__)
    suggested_at = raw.get("suggested_at")
    entry.suggested_at = suggested_at if isinstance(suggested_at, str) else None
    entry.needs_manual_entry = bool(raw.get("needs_manual_entry", False))
    signature = raw.get("signature")
    if isinstance(signature, dict) and "slot_hash" in signature:
        entry.signature = SuggestionSignature(
            slot_hash=str(signature["slot_hash"]),
            factory_roe=safe_d(signature.get("factory_roe")),
        )
    return entry


def shipping_entries_from_json(raw, quote_id: str = "?") -> List[ShippingEntry]:
    if not isinstance(raw, list):
        logger.warning("Quote %s: shipping data is not a list; using one blank line", quote_id)
        return [blank_shipping_entry()]
    entries = [shipping_entry_from_dict(item) for item in raw if isinstance(item, dict)]
    if len(entries) != len(raw):
        logger.warning("Quote %s: dropped %d unreadable shipping line(s)", quote_id, len(raw) - len(entries))
    return entries or [blank_shipping_entry()]


def _user_id(value) -> Optional[str]:
    return None if value is None else str(value)


def state_from_record(record) -> QuoteState:
    """QuoteState for a `quotes.models.Quote` row."""
    quote_id = str(record.id)
    status = record.status if record.status in QuoteStatus.values else QuoteStatus.DRAFT
    address = record.client_address
    if isinstance(address, list):
        address = ["" if line is None else str(line) for line in address]
    else:
        if address is not None:
            logger.warning("Quote %s: client address is %s, not a list; using blank lines",
                           quote_id, type(address).__name__)
        address = []
    return QuoteState(
        id=quote_id,
        reference=record.reference,
        status=QuoteStatus(status),
        quote_date=record.quote_date,
        client_name=record.client_name,
        contact_name=record.contact_name,
        contact_title=record.contact_title,
        contact_email=record.contact_email,
        contact_phone=record.contact_phone,
        client_address=(address + ["", "", "", ""])[:4],
        factory_roe=record.factory_roe,
        customer_roe=record.customer_roe,
        discount_pct=record.discount_pct,
        annual_interest_rate=record.annual_interest_rate,
        default_lease_term_months=record.default_lease_term_months,
        slots=slots_from_json(record.slots, quote_id),
        shipping_entries=shipping_entries_from_json(record.shipping_entries, quote_id),
        validity_days=record.validity_days,
        created_by=_user_id(record.created_by_id),
        assigned_to=_user_id(record.assigned_to_id),
        current_assignee_id=_user_id(record.current_assignee_id),
        locked_by=_user_id(record.locked_by_id),
        locked_at=record.locked_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


def apply_state_to_record(quote: QuoteState, record) -> None:
    """Copy the editable parts of `quote` onto `record`. Version and lock columns are the store's."""
    record.reference = quote.reference
    record.status = str(quote.status)
    record.quote_date = quote.quote_date
    record.client_name = quote.client_name
    record.contact_name = quote.contact_name
    record.contact_title = quote.contact_title
    record.contact_email = quote.contact_email
    record.contact_phone = quote.contact_phone
    record.client_address = list(quote.client_address)
    record.factory_roe = quote.factory_roe
    record.customer_roe = quote.customer_roe
    record.discount_pct = quote.discount_pct
    record.annual_interest_rate = quote.annual_interest_rate
    record.default_lease_term_months = quote.default_lease_term_months
    record.slots = [slot_to_dict(s) for s in quote.slots]
    record.shipping_entries = [shipping_entry_to_dict(e) for e in quote.shipping_entries]
    record.validity_days = quote.validity_days
    record.created_by_id = quote.created_by
    record.assigned_to_id = quote.assigned_to
    record.current_assignee_id = quote.current_assignee_id
    record.updated_at = quote.updated_at
