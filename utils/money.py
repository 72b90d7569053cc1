"""
Decimal helpers for money arithmetic.

Amounts are Decimal with two places, rounded half-up (away from zero).
Inputs arrive from forms and webhooks in every shape imaginable, so
coercion never raises: anything that is not a finite number becomes zero.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")

# Magnitudes outside 10**-1000 .. 10**1000 coerce like Infinity does.
MAX_ADJUSTED_EXPONENT = 1000

# Enough digits to carry any accepted amount, and sums of them, to the cent.
MONEY_PRECISION = 2 * MAX_ADJUSTED_EXPONENT + 10


def money_context():
    """Decimal context for ledger arithmetic; the default 28 digits would drop cents."""
    return localcontext(prec=MONEY_PRECISION)


def parse_decimal(value: Any) -> Decimal | None:
    """
    Parse a loosely-typed numeric value, or None when it is not a number.

    None, blank strings, non-numeric strings, booleans, NaN, Infinity and
    absurd magnitudes all give None. Floats go through repr so 25.555 stays
    25.555 rather than picking up binary noise.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, int):
            result = Decimal(value)
        elif isinstance(value, float):
            result = Decimal(repr(value))
        elif isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return None
            result = Decimal(stripped)
        else:
            result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None

    if not result.is_finite():
        return None
    if result and abs(result.adjusted()) > MAX_ADJUSTED_EXPONENT:
        return None
    return result


def to_decimal(value: Any) -> Decimal:
    """Coerce a loosely-typed numeric value to Decimal; non-numbers become zero."""
    result = parse_decimal(value)
    return ZERO if result is None else result


def round2(value: Any) -> Decimal:
    """Round to 2 decimal places, half-up, however many digits the amount has."""
    amount = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_line_amount(quantity: Any, unit_amount: Any) -> Decimal:
    """
    Amount of a quantity-mode line: quantity * unit_amount.

    Non-numeric inputs count as zero. The product is not rounded.
    """
    with money_context():
        return to_decimal(quantity) * to_decimal(unit_amount)


def to_cents(value: Any) -> int:
    """Convert a dollar amount to integer cents (payment processor units)."""
    return int(round2(value) * 100)


def from_cents(cents: int | None) -> Decimal:
    """Convert integer cents back to a 2-place dollar amount."""
    return round2(Decimal(cents or 0) / 100)
