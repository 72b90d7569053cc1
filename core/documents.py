"""
Invoice documents: PDF and email bodies.

Renderers print the figures stored on the invoice exactly as they are.
They never recompute totals, so a document always matches what the
ledger saved.
"""

import html
import io
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from core.models import BusinessProfile, Customer, Invoice, LineItem, LineItemMode
from utils.money import ZERO, round2, to_decimal

DARK = colors.HexColor("#111827")
GRAY = colors.HexColor("#6b7280")
RULE = colors.HexColor("#e5e7eb")
HEADER_FILL = colors.HexColor("#f3f4f6")


@dataclass(frozen=True)
class RenderedEmail:
    """Subject plus plain-text and HTML bodies of one email."""

    subject: str
    text: str
    html: str


def format_money(value: Any) -> str:
    """Dollar string with thousands separators: $1,234.50, -$40.00."""
    amount = round2(to_decimal(value))
    sign = "-" if amount < ZERO else ""
    return f"{sign}${abs(amount):,.2f}"


def _fmt_date(value: date | None) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


def _item_label(item: LineItem) -> str:
    if item.mode == LineItemMode.QUANTITY:
        parts = [p for p in [item.name, item.description] if p]
        return " - ".join(parts) or "-"
    return item.description or item.category or "-"


def _item_rows(invoice: Invoice) -> list[list[str]]:
    rows = [["Description", "Qty", "Unit Price", "Tax", "Amount"]]
    for item in sorted(invoice.items, key=lambda i: i.position):
        if item.mode == LineItemMode.QUANTITY:
            qty = f"{to_decimal(item.quantity).normalize():f}"
            unit = format_money(item.unit_amount)
        else:
            qty, unit = "", ""
        rows.append([_item_label(item)[:60], qty, unit, item.tax_code or "", format_money(item.amount)])
    if len(rows) == 1:
        rows.append(["(No items)", "", "", "", ""])
    return rows


def render_invoice_pdf(
    invoice: Invoice,
    customer: Customer | None,
    profile: BusinessProfile | None,
) -> bytes:
    """
    Render an invoice as a one-page A4 PDF.

    Returns:
        PDF bytes
    """
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4
    left = 18 * mm
    right = width - 18 * mm

    # Issuer
    business_name = profile.display_name if profile else "Our Company"
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 16)
    c.drawString(left, height - 20 * mm, business_name)

    c.setFont("Helvetica", 9)
    c.setFillColor(GRAY)
    y = height - 26 * mm
    issuer_lines = list(profile.address_lines) if profile else []
    if profile and profile.abn_acn:
        issuer_lines.append(f"ABN/ACN: {profile.abn_acn}")
    for line in issuer_lines:
        c.drawString(left, y, line)
        y -= 4.5 * mm

    # Invoice meta
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 20)
    c.drawRightString(right, height - 20 * mm, "TAX INVOICE")
    c.setFont("Helvetica", 9)
    meta = [
        f"Invoice #: {invoice.invoice_number}",
        f"Issue date: {_fmt_date(invoice.issue_date)}",
        f"Due date: {_fmt_date(invoice.due_date)}",
    ]
    if invoice.customer_po_number:
        meta.append(f"PO #: {invoice.customer_po_number}")
    meta_y = height - 27 * mm
    for line in meta:
        c.drawRightString(right, meta_y, line)
        meta_y -= 4.5 * mm

    # Billed to
    y = min(y, meta_y) - 8 * mm
    c.setFont("Helvetica-Bold", 11)
    c.drawString(left, y, "Bill To")
    c.setFont("Helvetica", 9)
    y -= 5 * mm
    bill_to = [customer.display_name] + customer.billing_address_lines if customer else ["-"]
    if customer and customer.billing_email:
        bill_to.append(customer.billing_email)
    for line in bill_to:
        c.drawString(left, y, line[:80])
        y -= 4.5 * mm

    # Items
    y -= 6 * mm
    table = Table(
        _item_rows(invoice),
        colWidths=[82 * mm, 16 * mm, 28 * mm, 18 * mm, 30 * mm],
        hAlign="LEFT",
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
        ("TEXTCOLOR", (0, 0), (-1, 0), DARK),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("LINEBELOW", (0, 0), (-1, -1), 0.5, RULE),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 5),
    ]))
    _, table_height = table.wrapOn(c, right - left, height)
    table.drawOn(c, left, y - table_height)
    y = y - table_height - 10 * mm

    # Totals
    tax_label = "GST included" if invoice.is_tax_inclusive else "GST"
    totals = [
        ("Subtotal", invoice.subtotal),
        (tax_label, invoice.tax),
        ("Total", invoice.total),
        ("Amount paid", invoice.amount_paid),
        ("Balance due", invoice.balance_due),
    ]
    for label, value in totals:
        bold = label in ("Total", "Balance due")
        c.setFont("Helvetica-Bold" if bold else "Helvetica", 10 if bold else 9)
        c.setFillColor(DARK if bold else GRAY)
        c.drawRightString(right - 35 * mm, y, label)
        c.setFillColor(DARK)
        c.drawRightString(right, y, format_money(value))
        y -= 6 * mm

    # Notes
    notes = invoice.notes or (profile.pdf_notes_template if profile else None)
    if notes:
        y -= 6 * mm
        c.setFont("Helvetica-Bold", 10)
        c.setFillColor(DARK)
        c.drawString(left, y, "Notes")
        c.setFont("Helvetica", 9)
        c.setFillColor(GRAY)
        for line in notes.splitlines()[:8]:
            y -= 5 * mm
            c.drawString(left, y, line[:110])

    c.showPage()
    c.save()

    pdf = buf.getvalue()
    buf.close()
    return pdf


def render_invoice_email(
    invoice: Invoice,
    profile: BusinessProfile | None,
    message: str | None = None,
) -> RenderedEmail:
    """Email that delivers an invoice to the customer."""
    business_name = profile.display_name if profile else "Our Company"
    subject = f"Invoice {invoice.invoice_number} from {business_name}"

    item_lines = [
        f"  {_item_label(item)}: {format_money(item.amount)}"
        for item in sorted(invoice.items, key=lambda i: i.position)
    ]
    text_parts = [f"Invoice from {business_name}", ""]
    if message:
        text_parts += [message, ""]
    text_parts += [
        f"Invoice Number: {invoice.invoice_number}",
        f"Due Date: {_fmt_date(invoice.due_date)}",
        f"Amount Due: {format_money(invoice.balance_due)}",
        "",
        "Invoice Details:",
        *item_lines,
        "",
        f"Total Amount: {format_money(invoice.total)}",
    ]

    esc = html.escape
    rows = "".join(
        f"<tr><td>{esc(_item_label(item))}</td><td>{format_money(item.amount)}</td></tr>"
        for item in sorted(invoice.items, key=lambda i: i.position)
    )
    html_body = (
        "<html><body>"
        f"<h2>Invoice from {esc(business_name)}</h2>"
        + (f"<p>{esc(message)}</p>" if message else "")
        + f"<p>Invoice Number: {esc(invoice.invoice_number)}</p>"
        f"<p>Due Date: {_fmt_date(invoice.due_date)}</p>"
        f"<p>Amount Due: {format_money(invoice.balance_due)}</p>"
        "<hr/><h3>Invoice Details:</h3>"
        '<table border="1" cellpadding="8" style="border-collapse: collapse;">'
        f"<tr><th>Description</th><th>Amount</th></tr>{rows}</table>"
        f"<hr/><p>Total Amount: {format_money(invoice.total)}</p>"
        "</body></html>"
    )

    return RenderedEmail(subject=subject, text="\n".join(text_parts), html=html_body)


def render_payment_received_email(
    invoice: Invoice,
    customer: Customer | None,
    amount: Decimal,
) -> RenderedEmail:
    """Receipt sent to the customer once a payment lands."""
    customer_name = customer.display_name if customer else "Customer"
    subject = f"Payment Received for Invoice {invoice.invoice_number}"
    thanks = (
        f"Thank you for your payment of {format_money(amount)} "
        f"for invoice {invoice.invoice_number}."
    )

    text = "\n".join([
        f"Dear {customer_name},",
        "",
        thanks,
        "",
        "Invoice Details:",
        f"Invoice Number: {invoice.invoice_number}",
        f"Amount Paid: {format_money(amount)}",
        f"Total Invoice Amount: {format_money(invoice.total)}",
        "",
        "We appreciate your business!",
    ])

    esc = html.escape
    html_body = (
        "<html><body>"
        "<h1>Payment Received</h1>"
        f"<p>Dear {esc(customer_name)},</p>"
        f"<p>{esc(thanks)}</p>"
        "<p><strong>Invoice Details:</strong><br/>"
        f"Invoice Number: {esc(invoice.invoice_number)}<br/>"
        f"Amount Paid: {format_money(amount)}<br/>"
        f"Total Invoice Amount: {format_money(invoice.total)}</p>"
        "<p>We appreciate your business!</p>"
        "</body></html>"
    )

    return RenderedEmail(subject=subject, text=text, html=html_body)
