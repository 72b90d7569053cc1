"""Utility modules for cross-cutting concerns."""

from utils.money import (
    to_decimal, parse_decimal, round2, to_cents, from_cents, compute_line_amount,
    money_context, ZERO, CENT,
)
from utils.timezone import now_utc, today_utc, add_days, parse_date
