from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    if val is None or val == "":
        return ZERO
    return Decimal(str(val))


def safe_d(val, default: Decimal = ZERO) -> Decimal:
    """Like d(), but falls back to `default` for blanks and anything non-numeric or non-finite."""
    if val is None or val == "":
        return default
    try:
        out = d(val)
    except (InvalidOperation, TypeError, ValueError):
        return default
    return out if out.is_finite() else default


def pct(value) -> Decimal:
    """Percentage (0-100) to fraction."""
    return d(value) / HUNDRED


def monthly_rate(annual_pct) -> Decimal:
    """Annual percentage rate (e.g. 9.5) to periodic monthly rate (0.0079166...)."""
    return d(annual_pct) / MONTHS_PER_YEAR / HUNDRED


def q2(amount) -> Decimal:
    """Presentation rounding to cents; the engine itself never rounds."""
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
