from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..dataclasses import LEASE_TERMS
from .utils import HUNDRED, ZERO, d

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

MAX_HOURS_PER_MONTH = 720
HIGH_DISCOUNT_PCT = 50
MIN_ROE_SPREAD_PCT = 2

SUBMITTABLE_STATUSES = ("draft", "changes-requested")


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str
    severity: str = ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR


def _slot_issues(slot) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    field = f"slot{slot.slot_index}"
    label = f"Unit {slot.slot_index + 1}"
    hours = d(slot.operating_hours_per_month)

    if int(slot.quantity) <= 0:
        issues.append(ValidationIssue(field, f"{label}: Quantity must be greater than 0"))
    if hours <= ZERO:
        issues.append(ValidationIssue(field, f"{label}: Operating hours must be greater than 0", WARNING))
    if hours > MAX_HOURS_PER_MONTH:
        issues.append(ValidationIssue(
            field,
            f"{label}: Operating hours ({hours}) exceeds maximum hours in a month ({MAX_HOURS_PER_MONTH})",
            WARNING,
        ))
    if int(slot.lease_term_months) not in LEASE_TERMS:
        issues.append(ValidationIssue(
            field,
            f"{label}: Lease term must be one of {', '.join(str(t) for t in LEASE_TERMS)} months",
        ))
    return issues


def validate_quote(quote) -> List[ValidationIssue]:
    """
    Check a quote for problems that block submission (errors) or deserve a
    second look (warnings). Never raises; an empty list means the quote is clean.
    """
    issues: List[ValidationIssue] = []
    active = [s for s in quote.slots if s.is_active]

    if not active:
        issues.append(ValidationIssue("slots", "At least one unit must be configured"))

    if not (quote.client_name or "").strip():
        issues.append(ValidationIssue("client_name", "Client name is required"))
    if not (quote.contact_name or "").strip():
        issues.append(ValidationIssue("contact_name", "Contact name is required"))

    factory_roe = d(quote.factory_roe)
    customer_roe = d(quote.customer_roe)
    if customer_roe < factory_roe:
        issues.append(ValidationIssue(
            "customer_roe",
            f"Customer ROE ({customer_roe}) is lower than factory ROE ({factory_roe}). "
            "This will result in negative margins.",
            WARNING,
        ))
    if customer_roe <= ZERO or factory_roe <= ZERO:
        issues.append(ValidationIssue("roe", "ROE values must be greater than 0"))

    discount = d(quote.discount_pct)
    if discount < ZERO or discount > HUNDRED:
        issues.append(ValidationIssue("discount_pct", "Discount must be between 0% and 100%"))
    if discount > HIGH_DISCOUNT_PCT:
        issues.append(ValidationIssue(
            "discount_pct",
            f"High discount of {discount}% may require special approval",
            WARNING,
        ))

    for slot in active:
        issues.extend(_slot_issues(slot))

    return issues


def can_submit(issues: List[ValidationIssue]) -> bool:
    return not any(i.is_error for i in issues)


def validate_roe_pair(factory_roe, customer_roe) -> Optional[str]:
    """Advisory message for a factory/customer ROE pair, or None when it looks fine."""
    factory = d(factory_roe)
    customer = d(customer_roe)
    if factory <= ZERO or customer <= ZERO:
        return "ROE values must be greater than 0"
    if customer < factory:
        return f"Customer ROE ({customer}) should not be lower than factory ROE ({factory})"

    spread = (customer - factory) / factory * HUNDRED
    if spread < MIN_ROE_SPREAD_PCT:
        return (
            f"Very low ROE spread ({spread:.2f}%). "
            "Consider increasing customer ROE for better margins."
        )
    return None


def validate_submission(quote, submitter_id, target) -> List[str]:
    """
    Preconditions for handing a quote to an approver.

    `target` is the resolved approver (anything with `pk` and
    `can_approve_quotes`), or None when the requested user does not exist.
    """
    errors: List[str] = []
    if quote.status not in SUBMITTABLE_STATUSES:
        errors.append(f'Quote cannot be submitted in "{quote.status}" status')
    if not any(s.is_active for s in quote.slots):
        errors.append("Quote must have at least one configured unit")
    if not (quote.client_name or "").strip():
        errors.append("Client name is required before submission")
    if target is None:
        errors.append("Selected approver does not exist")
    elif str(submitter_id) == str(target.pk):
        errors.append("Cannot submit to yourself")
    elif not target.can_approve_quotes:
        errors.append("Selected user cannot approve quotes")
    return errors
