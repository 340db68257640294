"""
Mutating commands over a `QuoteState`.

Every handler takes the aggregate explicitly, changes it in place and advances
`updated_at` when something actually changed, which is what the save scheduler
watches. Out-of-range numeric input is clamped or ignored the same way the
editing screens do it; unknown fields and slot indexes raise.
"""
from __future__ import annotations

import dataclasses
import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pricing.dataclasses import (
    EMPTY_MODEL_CODE,
    LEASE_TERMS,
    ClearingCharges,
    LocalCosts,
    ShippingEntry,
    Slot,
)
from pricing.services.utils import HUNDRED, ZERO, d

from .exceptions import ConfirmationRequired, InvalidFieldValue, UnknownSlotField
from .state import QuoteState, QuoteStatus, blank_shipping_entry, empty_slot

logger = logging.getLogger(__name__)

MIN_QUANTITY = 1
MAX_QUANTITY = 99
MAX_HOURS_PER_MONTH = 720

_SLOT_FIELDS = {f.name: f.type for f in dataclasses.fields(Slot) if f.name != "slot_index"}
_NESTED = {"clearing_charges": ClearingCharges, "local_costs": LocalCosts}
_CLIENT_FIELDS = (
    "client_name",
    "contact_name",
    "contact_title",
    "contact_email",
    "contact_phone",
    "client_address",
)


def _finite(value) -> Optional[Decimal]:
    try:
        out = d(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return out if out.is_finite() else None


def _coerce(name: str, type_name: str, value):
    if type_name == "Decimal":
        out = _finite(value)
        if out is None:
            raise InvalidFieldValue(f"{name}: {value!r} is not a finite number")
        return out
    if type_name == "int":
        out = _finite(value)
        if out is None:
            raise InvalidFieldValue(f"{name}: {value!r} is not a whole number")
        return int(out.to_integral_value(rounding=ROUND_HALF_UP))
    if type_name == "bool":
        return bool(value)
    if type_name == "str":
        return "" if value is None else str(value)
    if type_name.startswith("Dict"):
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise InvalidFieldValue(f"{name}: expected an object, got {type(value).__name__}")
        return dict(value)
    if type_name.startswith("List"):
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise InvalidFieldValue(f"{name}: expected a list, got {type(value).__name__}")
        return list(value)
    return value


def _merged_nested(name: str, current, value):
    """A new charges object with `value` merged over `current`."""
    if isinstance(value, _NESTED[name]):
        return dataclasses.replace(value)
    if value is None:
        return dataclasses.replace(current)
    if not isinstance(value, Mapping):
        raise InvalidFieldValue(f"{name}: expected an object, got {type(value).__name__}")
    known = {f.name for f in dataclasses.fields(current)}
    changes = {}
    for key, raw in value.items():
        if key not in known:
            raise UnknownSlotField(f"{name}.{key}")
        changes[key] = _coerce(f"{name}.{key}", "Decimal", raw)
    return dataclasses.replace(current, **changes)


def update_slot_fields(quote: QuoteState, index: int, updates: Mapping[str, Any]) -> Slot:
    """
    Apply several field updates to one slot.

    Every value is checked and converted before anything is written, so a bad
    name or value leaves the slot untouched. Quantity is rounded half up and
    clamped to 1..99, operating hours to 0..720, and a lease term has to be one
    of LEASE_TERMS. Setting a real model code activates the slot; model code "0"
    empties it.
    """
    slot = quote.slot(index)
    unknown = [name for name in updates if name not in _SLOT_FIELDS]
    if unknown:
        raise UnknownSlotField(", ".join(sorted(unknown)))

    staged = {}
    for name, value in updates.items():
        if name in _NESTED:
            staged[name] = _merged_nested(name, getattr(slot, name), value)
            continue

        value = _coerce(name, _SLOT_FIELDS[name], value)
        if name == "quantity":
            value = max(MIN_QUANTITY, min(MAX_QUANTITY, value))
        elif name == "operating_hours_per_month":
            value = max(ZERO, min(d(MAX_HOURS_PER_MONTH), value))
        elif name == "lease_term_months" and value not in LEASE_TERMS:
            raise InvalidFieldValue(f"lease_term_months: {value} is not one of {', '.join(map(str, LEASE_TERMS))}")
        staged[name] = value

    for name, value in staged.items():
        setattr(slot, name, value)

    model_code = updates.get("model_code")
    if model_code == EMPTY_MODEL_CODE:
        slot.is_empty = True
    elif model_code:
        slot.is_empty = False

    quote.touch()
    return slot


def update_slot_field(quote: QuoteState, index: int, name: str, value) -> Slot:
    return update_slot_fields(quote, index, {name: value})


def clear_slot(quote: QuoteState, index: int) -> Slot:
    quote.slot(index)
    quote.slots[index] = empty_slot(index)
    quote.touch()
    return quote.slots[index]


def set_factory_roe(quote: QuoteState, roe) -> bool:
    value = _finite(roe)
    if value is None or value <= ZERO:
        logger.debug("Ignoring factory ROE %r", roe)
        return False
    quote.factory_roe = value
    quote.touch()
    return True


def set_customer_roe(quote: QuoteState, roe) -> bool:
    value = _finite(roe)
    if value is None or value <= ZERO:
        logger.debug("Ignoring customer ROE %r", roe)
        return False
    quote.customer_roe = value
    quote.touch()
    return True


def set_discount(quote: QuoteState, pct) -> bool:
    value = _finite(pct)
    if value is None:
        return False
    quote.discount_pct = max(ZERO, min(HUNDRED, value))
    quote.touch()
    return True


def set_interest_rate(quote: QuoteState, rate) -> bool:
    value = _finite(rate)
    if value is None or value < ZERO or value > HUNDRED:
        return False
    quote.annual_interest_rate = value
    quote.touch()
    return True


def set_default_lease_term(quote: QuoteState, months) -> bool:
    value = _finite(months)
    if value is None or int(value) not in LEASE_TERMS:
        return False
    quote.default_lease_term_months = int(value)
    quote.touch()
    return True


def set_client_info(quote: QuoteState, **fields) -> None:
    unknown = [name for name in fields if name not in _CLIENT_FIELDS]
    if unknown:
        raise InvalidFieldValue(f"Unknown client field(s): {', '.join(sorted(unknown))}")
    for name, value in fields.items():
        if name == "client_address":
            lines = [str(line) for line in (value or [])][:4]
            value = lines + [""] * (4 - len(lines))
        else:
            value = "" if value is None else str(value)
        setattr(quote, name, value)
    quote.touch()


def set_status(quote: QuoteState, status: str) -> None:
    if status not in QuoteStatus.values:
        raise InvalidFieldValue(f"Unknown quote status {status!r}")
    quote.status = QuoteStatus(status)
    quote.touch()


def apply_shipping_suggestion(
    quote: QuoteState, entries: Iterable[ShippingEntry], confirm: bool = False
) -> List[ShippingEntry]:
    """
    Replace every shipping line with `entries`.

    Manual edits are lost, so the caller has to pass confirm=True.
    """
    if not confirm:
        raise ConfirmationRequired("Applying a shipping suggestion replaces all shipping entries")
    quote.shipping_entries = [dataclasses.replace(e) for e in entries]
    if not quote.shipping_entries:
        quote.shipping_entries = [blank_shipping_entry()]
    quote.touch()
    return quote.shipping_entries


def add_shipping_entry(quote: QuoteState, entry: Optional[ShippingEntry] = None) -> ShippingEntry:
    entry = entry or blank_shipping_entry()
    if not entry.id:
        entry.id = str(uuid.uuid4())
    quote.shipping_entries.append(entry)
    quote.touch()
    return entry


def update_shipping_entry(quote: QuoteState, entry_id: str, updates: Dict[str, Any]) -> Optional[ShippingEntry]:
    entry = next((e for e in quote.shipping_entries if e.id == entry_id), None)
    if entry is None:
        return None

    for name in ("description", "container_type"):
        if name in updates:
            setattr(entry, name, str(updates[name] or ""))
    if "quantity" in updates:
        qty = _finite(updates["quantity"])
        entry.quantity = int(qty) if qty is not None and qty >= 1 else 1
    if "cost" in updates:
        cost = _finite(updates["cost"])
        entry.cost = cost if cost is not None and cost >= ZERO else ZERO

    quote.touch()
    return entry


def remove_shipping_entry(quote: QuoteState, entry_id: str) -> bool:
    """Remove one line; the last remaining line is kept."""
    if len(quote.shipping_entries) <= 1:
        return False
    before = len(quote.shipping_entries)
    quote.shipping_entries = [e for e in quote.shipping_entries if e.id != entry_id]
    if len(quote.shipping_entries) == before:
        return False
    quote.touch()
    return True
