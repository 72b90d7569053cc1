"""
Invoice ledger arithmetic.

Derives subtotal, tax, total and balance due from line items and payment
state, and decides when saving a paid invoice must revert it to draft.

Everything here is pure: no I/O, no clock, no shared state. Each call is a
full recomputation from the complete item set, so it is safe to call on
every keystroke of a live preview and in any order.

Tax is GST at a flat 10%:
- tax-exclusive: tax is added on top (subtotal * 0.1)
- tax-inclusive: amounts already contain tax, which is extracted (subtotal / 11)

Rounding is half-up to cents, applied to each figure independently. Line
amounts are never rounded on their own; only the aggregate subtotal is.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from core.models import Invoice, InvoiceStatus
from utils.money import ZERO, compute_line_amount, money_context, round2, to_decimal

__all__ = [
    "GST_RATE",
    "InvoiceSummary",
    "LedgerTotals",
    "SaveGuardDecision",
    "apply_payment",
    "compute_line_amount",
    "compute_totals",
    "evaluate_save_guard",
    "summarize_invoices",
]

GST_RATE = Decimal("0.1")
GST_INCLUSIVE_DIVISOR = Decimal("11")


@dataclass(frozen=True)
class LedgerTotals:
    """Derived money fields of an invoice."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal
    balance_due: Decimal


@dataclass(frozen=True)
class SaveGuardDecision:
    """Whether a save must be held for confirmation, and the status it forces."""

    requires_confirmation: bool
    forced_status: InvoiceStatus | None = None


@dataclass(frozen=True)
class InvoiceSummary:
    """Aggregate figures across a list of invoices."""

    total_amount: Decimal
    balance_due: Decimal
    overdue: Decimal


def _item_amount(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get("amount")
    return getattr(item, "amount", None)


def compute_totals(
    items: Iterable[Any],
    is_tax_inclusive: bool,
    amount_paid: Any = ZERO,
) -> LedgerTotals:
    """
    Compute subtotal, tax, total and balance due.

    Args:
        items: Line items, as models with an ``amount`` attribute or as
            mappings with an ``"amount"`` key. Missing or malformed amounts
            count as zero.
        is_tax_inclusive: Whether line amounts already include GST
        amount_paid: Amount paid to date

    Returns:
        LedgerTotals. balance_due is not floored: overpayment is negative.
    """
    with money_context():
        subtotal = round2(sum((to_decimal(_item_amount(item)) for item in items), ZERO))

        if is_tax_inclusive:
            tax = round2(subtotal / GST_INCLUSIVE_DIVISOR)
            total = round2(subtotal)
        else:
            tax = round2(subtotal * GST_RATE)
            total = round2(subtotal + tax)

        balance_due = round2(total - to_decimal(amount_paid))

    return LedgerTotals(subtotal=subtotal, tax=tax, total=total, balance_due=balance_due)


def evaluate_save_guard(
    previous_status: InvoiceStatus | str,
    previous_total: Any,
    new_total: Any,
) -> SaveGuardDecision:
    """
    Decide whether saving must revert a paid invoice to draft.

    Fires only when the invoice was paid and the total changed (compared at
    cent precision). Any non-paid invoice may be edited freely, and a paid
    invoice whose edits leave the total unchanged keeps its status.

    This does not save anything. The caller must hold the write, ask the
    user, and either persist with forced_status (plus a status_change
    activity) or abandon the save entirely.
    """
    if previous_status != InvoiceStatus.PAID:
        return SaveGuardDecision(requires_confirmation=False)

    if round2(new_total) == round2(previous_total):
        return SaveGuardDecision(requires_confirmation=False)

    return SaveGuardDecision(requires_confirmation=True, forced_status=InvoiceStatus.DRAFT)


def apply_payment(invoice: Invoice, payment_amount: Any, *, settle: bool = True) -> Invoice:
    """
    Apply a confirmed payment to an invoice.

    amount_paid accumulates and balance_due is recomputed from the stored
    total. With settle=True (processor-confirmed payments) the invoice is
    marked paid unconditionally, even for a partial amount. With
    settle=False (manual entry) it becomes paid only once nothing is left
    owing; otherwise the status is left alone.

    Returns:
        A new Invoice; the input is not modified.
    """
    with money_context():
        amount_paid = round2(to_decimal(invoice.amount_paid) + to_decimal(payment_amount))
        balance_due = round2(to_decimal(invoice.total) - amount_paid)

    if settle or balance_due <= ZERO:
        status = InvoiceStatus.PAID
    else:
        status = invoice.status

    return invoice.model_copy(update={
        "amount_paid": amount_paid,
        "balance_due": balance_due,
        "status": status,
    })


def summarize_invoices(invoices: Iterable[Invoice]) -> InvoiceSummary:
    """Totals for an invoice list: billed, outstanding, and outstanding on overdue invoices."""
    total_amount = ZERO
    balance_due = ZERO
    overdue = ZERO

    with money_context():
        for invoice in invoices:
            total_amount += to_decimal(invoice.total)
            balance_due += to_decimal(invoice.balance_due)
            if invoice.status == InvoiceStatus.OVERDUE:
                overdue += to_decimal(invoice.balance_due)

        return InvoiceSummary(
            total_amount=round2(total_amount),
            balance_due=round2(balance_due),
            overdue=round2(overdue),
        )
