"""
In-memory quote aggregate.

`QuoteState` is the value the edit session works on: command handlers in
`quotes.commands` mutate it, pricing services read it, and the repository maps
it to and from the `Quote` row. It carries no ORM behaviour of its own.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import models
from django.utils import timezone

from pricing.dataclasses import (
    DEFAULT_FINANCE_COST_PCT,
    DEFAULT_LEASE_TERM,
    DEFAULT_OPERATING_HOURS,
    DEFAULT_RESIDUAL_PCT,
    EMPTY_MODEL_CODE,
    LEASE_TERMS,
    ShippingEntry,
    Slot,
)
from pricing.services.utils import ZERO, d

from .exceptions import InvalidSlotIndex

SLOT_COUNT = 6
UNSAVED_REFERENCE = "0000.0"
DEFAULT_VALIDITY_DAYS = 30


class QuoteStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_APPROVAL = "pending-approval", "Pending approval"
    IN_REVIEW = "in-review", "In review"
    CHANGES_REQUESTED = "changes-requested", "Changes requested"
    APPROVED = "approved", "Approved"
    SENT_TO_CUSTOMER = "sent-to-customer", "Sent to customer"
    REJECTED = "rejected", "Rejected"
    EXPIRED = "expired", "Expired"


def quote_defaults() -> Dict[str, Any]:
    """settings.QUOTE_DEFAULTS merged over the built-in fallbacks, as Decimals/ints."""
    raw = {
        "factory_roe": "19.20",
        "customer_roe": "20.60",
        "discount_pct": "0",
        "interest_rate": str(DEFAULT_FINANCE_COST_PCT),
        "lease_term": DEFAULT_LEASE_TERM,
        "operating_hours": str(DEFAULT_OPERATING_HOURS),
        "residual_truck_pct": str(DEFAULT_RESIDUAL_PCT),
    }
    raw.update(getattr(settings, "QUOTE_DEFAULTS", {}) or {})
    lease_term = int(raw["lease_term"])
    return {
        "factory_roe": d(raw["factory_roe"]),
        "customer_roe": d(raw["customer_roe"]),
        "discount_pct": d(raw["discount_pct"]),
        "interest_rate": d(raw["interest_rate"]),
        "lease_term": lease_term if lease_term in LEASE_TERMS else DEFAULT_LEASE_TERM,
        "operating_hours": d(raw["operating_hours"]),
        "residual_truck_pct": d(raw["residual_truck_pct"]),
    }


def empty_slot(index: int, defaults: Optional[Dict[str, Any]] = None) -> Slot:
    cfg = defaults or quote_defaults()
    return Slot(
        slot_index=index,
        is_empty=True,
        model_code=EMPTY_MODEL_CODE,
        discount_pct=cfg["discount_pct"],
        operating_hours_per_month=cfg["operating_hours"],
        lease_term_months=cfg["lease_term"],
        residual_value_pct=cfg["residual_truck_pct"],
        finance_cost_pct=cfg["interest_rate"],
    )


def blank_shipping_entry() -> ShippingEntry:
    return ShippingEntry(id=str(uuid.uuid4()))


@dataclass
class QuoteState:
    id: str
    reference: str = UNSAVED_REFERENCE
    status: str = QuoteStatus.DRAFT
    quote_date: datetime = field(default_factory=timezone.now)

    client_name: str = ""
    contact_name: str = ""
    contact_title: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    client_address: List[str] = field(default_factory=lambda: ["", "", "", ""])

    factory_roe: Decimal = ZERO
    customer_roe: Decimal = ZERO
    discount_pct: Decimal = ZERO
    annual_interest_rate: Decimal = DEFAULT_FINANCE_COST_PCT
    default_lease_term_months: int = DEFAULT_LEASE_TERM

    slots: List[Slot] = field(default_factory=list)
    shipping_entries: List[ShippingEntry] = field(default_factory=list)
    validity_days: int = DEFAULT_VALIDITY_DAYS

    # ownership, approval and locking; user ids are kept as strings
    created_by: Optional[str] = None
    assigned_to: Optional[str] = None
    current_assignee_id: Optional[str] = None
    locked_by: Optional[str] = None
    locked_at: Optional[datetime] = None

    created_at: datetime = field(default_factory=timezone.now)
    updated_at: datetime = field(default_factory=timezone.now)
    version: int = 1

    @property
    def is_saved(self) -> bool:
        return self.reference != UNSAVED_REFERENCE

    @property
    def active_slots(self) -> List[Slot]:
        return [s for s in self.slots if s.is_active]

    @property
    def valid_until(self) -> datetime:
        return self.quote_date + timedelta(days=self.validity_days)

    def slot(self, index: int) -> Slot:
        if not isinstance(index, int) or not 0 <= index < len(self.slots):
            raise InvalidSlotIndex(f"Slot index {index!r} is outside 0..{len(self.slots) - 1}")
        return self.slots[index]

    def touch(self) -> datetime:
        """Advance updated_at; strictly increasing even within one clock tick."""
        now = timezone.now()
        if now <= self.updated_at:
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now
        return now


def new_quote(created_by: Optional[str] = None, defaults: Optional[Dict[str, Any]] = None) -> QuoteState:
    """A fresh draft quote with six empty slots and one blank shipping line."""
    cfg = defaults or quote_defaults()
    now = timezone.now()
    return QuoteState(
        id=str(uuid.uuid4()),
        quote_date=now,
        factory_roe=cfg["factory_roe"],
        customer_roe=cfg["customer_roe"],
        discount_pct=cfg["discount_pct"],
        annual_interest_rate=cfg["interest_rate"],
        default_lease_term_months=cfg["lease_term"],
        slots=[empty_slot(i, cfg) for i in range(SLOT_COUNT)],
        shipping_entries=[blank_shipping_entry()],
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
