"""
Invoice service: creation, saving, sending and payments.

Every multi-row write (invoice row, replace-all items, activity entries)
happens in one database transaction. Money fields are always recomputed by
core.ledger from the complete item set; callers never supply them.

Concurrent writers are detected with a version column. Saves fail with
VersionConflictError when the invoice moved on since it was read; payments
re-read and retry a bounded number of times.
"""

import logging
from decimal import Decimal
from typing import Any, Callable
from uuid import UUID, uuid4

from clients.email_client import EmailAttachment, EmailGatewayClient
from clients.postgres_client import PostgresClient, Transaction
from core.activity import ActivityLog, compute_changes, describe_changes
from core.config import InvoicingConfig
from core.documents import format_money, render_invoice_email, render_invoice_pdf
from core.event_bus import EventBus
from core.events import (
    InvoiceCreated, InvoicePaid, InvoiceSent, InvoiceStatusReverted, InvoiceUpdated,
    PaymentFailed,
)
from core.exceptions import PreconditionFailedError, StatusReversionRequired, VersionConflictError
from core.ledger import (
    InvoiceSummary, apply_payment, compute_totals, evaluate_save_guard, summarize_invoices,
)
from core.models import (
    Activity, ActivityType, Invoice, InvoiceCreate, InvoiceStatus, InvoiceUpdate,
    LineItem, LineItemMode,
)
from core.context import InvoiceContext
from core.services.business_profile_service import BusinessProfileService
from core.services.customer_service import CustomerService
from utils.money import ZERO, round2, to_decimal
from utils.timezone import add_days, now_utc, today_utc

logger = logging.getLogger(__name__)

# Optional text fields a save may clear by sending null
_NULLABLE_FIELDS = {"notes", "customer_po_number"}

_INVOICE_COLUMNS = """
    id, business_id, customer_id, invoice_number, customer_po_number,
    issue_date, due_date, notes, is_tax_inclusive,
    subtotal, tax, total, amount_paid, balance_due,
    status, version, created_at, updated_at
"""


def _item_signature(item: Any) -> tuple:
    """Comparable content of a stored or submitted line item."""

    def num(value):
        return None if value is None else to_decimal(value).normalize()

    return (
        LineItemMode(item.mode),
        getattr(item, "description", None),
        getattr(item, "name", None),
        getattr(item, "category", None),
        getattr(item, "job", None),
        getattr(item, "tax_code", None),
        num(getattr(item, "quantity", None)),
        num(getattr(item, "unit_amount", None)),
        num(item.amount),
    )


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        activity: ActivityLog,
        event_bus: EventBus,
        customers: CustomerService,
        profiles: BusinessProfileService,
        email: EmailGatewayClient | None = None,
        config: InvoicingConfig | None = None,
    ):
        self.postgres = postgres
        self.activity = activity
        self.event_bus = event_bus
        self.customers = customers
        self.profiles = profiles
        self.email = email
        self.config = config or InvoicingConfig()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, invoice_id: UUID, business_id: UUID | None = None) -> Invoice | None:
        """Load an invoice with its items. No business filter when business_id is None."""
        if business_id is None:
            row = self.postgres.execute_single(
                f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE id = %s",
                (invoice_id,)
            )
        else:
            row = self.postgres.execute_single(
                f"SELECT {_INVOICE_COLUMNS} FROM invoices WHERE id = %s AND business_id = %s",
                (invoice_id, business_id)
            )

        if row is None:
            return None

        items = self.postgres.execute(
            """
            SELECT * FROM invoice_items
            WHERE invoice_id = %s
            ORDER BY position
            """,
            (invoice_id,)
        )

        return Invoice.model_validate({**row, "items": items})

    def get_by_id(self, ctx: InvoiceContext, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID.

        Args:
            ctx: Business scope
            invoice_id: Invoice UUID

        Returns:
            Invoice with items if it belongs to the business, None otherwise.
        """
        return self._load(invoice_id, ctx.business_id)

    def _require(self, ctx: InvoiceContext, invoice_id: UUID) -> Invoice:
        invoice = self.get_by_id(ctx, invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        return invoice

    def list_all(
        self,
        ctx: InvoiceContext,
        status: InvoiceStatus | None = None,
        customer_id: UUID | None = None,
        date_from=None,
        date_to=None,
        limit: int | None = 100,
    ) -> list[Invoice]:
        """
        List invoices of the business, newest issue date first.

        Items are not loaded; use get_by_id for the full invoice.

        Args:
            ctx: Business scope
            status: Only this status
            customer_id: Only this customer
            date_from: Issue date on or after
            date_to: Issue date on or before
            limit: Maximum results, None for all

        Returns:
            Invoices without items
        """
        conditions = ["business_id = %s"]
        params: list[Any] = [ctx.business_id]

        if status is not None:
            conditions.append("status = %s")
            params.append(InvoiceStatus(status).value)
        if customer_id is not None:
            conditions.append("customer_id = %s")
            params.append(customer_id)
        if date_from is not None:
            conditions.append("issue_date >= %s")
            params.append(date_from)
        if date_to is not None:
            conditions.append("issue_date <= %s")
            params.append(date_to)

        limit_clause = ""
        if limit is not None:
            limit_clause = "LIMIT %s"
            params.append(limit)

        rows = self.postgres.execute(
            f"""
            SELECT {_INVOICE_COLUMNS} FROM invoices
            WHERE {' AND '.join(conditions)}
            ORDER BY issue_date DESC, created_at DESC
            {limit_clause}
            """,
            tuple(params)
        )

        return [Invoice.model_validate(row) for row in rows]

    def summarize(self, ctx: InvoiceContext, **filters) -> InvoiceSummary:
        """Billed, outstanding and overdue totals over the filtered invoices (all of them)."""
        filters["limit"] = None
        return summarize_invoices(self.list_all(ctx, **filters))

    def list_activities(self, ctx: InvoiceContext, invoice_id: UUID) -> list[Activity]:
        """
        Activity history of an invoice, newest first.

        Raises:
            ValueError: If invoice not found in this business
        """
        self._require(ctx, invoice_id)
        return self.activity.list_for_invoice(invoice_id)

    # ------------------------------------------------------------------
    # Create / save
    # ------------------------------------------------------------------

    def _generate_invoice_number(self, ctx: InvoiceContext) -> str:
        """
        Generate the next invoice number for a business.

        Format: PREFIX-YYYYMMDD-XXXX where XXXX is a daily sequence number.
        """
        today = now_utc().strftime("%Y%m%d")
        prefix = f"{self.config.invoice_number_prefix}-{today}-"

        # Find highest existing number for today
        result = self.postgres.execute_single(
            """
            SELECT invoice_number FROM invoices
            WHERE business_id = %s AND invoice_number LIKE %s
            ORDER BY invoice_number DESC
            LIMIT 1
            """,
            (ctx.business_id, f"{prefix}%")
        )

        if result is None:
            sequence = 1
        else:
            try:
                sequence = int(result["invoice_number"].split("-")[-1]) + 1
            except (ValueError, IndexError):
                sequence = 1

        return f"{prefix}{sequence:04d}"

    def _ensure_number_available(
        self, ctx: InvoiceContext, invoice_number: str, exclude_id: UUID | None = None
    ) -> None:
        row = self.postgres.execute_single(
            """
            SELECT id FROM invoices
            WHERE business_id = %s AND invoice_number = %s AND id IS DISTINCT FROM %s
            """,
            (ctx.business_id, invoice_number, exclude_id)
        )
        if row is not None:
            raise ValueError(f"Invoice number {invoice_number} already exists")

    def _ensure_customer(self, ctx: InvoiceContext, customer_id: UUID | None) -> None:
        if customer_id is None:
            raise PreconditionFailedError("A customer must be selected before saving an invoice")
        if self.customers.get_by_id(ctx, customer_id) is None:
            raise PreconditionFailedError(f"Customer {customer_id} not found")

    @staticmethod
    def _build_items(invoice_id: UUID, inputs: list, created_at) -> list[LineItem]:
        """Stored line items for a submitted item list, positioned in order."""
        items = []
        for position, item in enumerate(inputs):
            if item.mode == LineItemMode.QUANTITY.value:
                fields = {
                    "name": item.name,
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_amount": item.unit_amount,
                }
            else:
                fields = {
                    "description": item.description,
                    "category": item.category,
                    "job": item.job,
                }
            items.append(LineItem(
                id=uuid4(),
                invoice_id=invoice_id,
                position=position,
                mode=item.mode,
                tax_code=item.tax_code,
                amount=item.amount,
                created_at=created_at,
                **fields,
            ))
        return items

    @staticmethod
    def _insert_items(tx: Transaction, items: list[LineItem]) -> None:
        for item in items:
            tx.execute(
                """
                INSERT INTO invoice_items (
                    id, invoice_id, position, mode,
                    description, name, category, job, tax_code,
                    quantity, unit_amount, amount, created_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                """,
                (
                    item.id, item.invoice_id, item.position, item.mode.value,
                    item.description, item.name, item.category, item.job, item.tax_code,
                    item.quantity, item.unit_amount, item.amount, item.created_at
                )
            )

    def create(self, ctx: InvoiceContext, data: InvoiceCreate) -> Invoice:
        """
        Create a draft invoice.

        Args:
            ctx: Business scope and acting user
            data: Invoice fields and line items

        Returns:
            Created invoice in DRAFT status, version 1

        Raises:
            PreconditionFailedError: No business profile, or no valid customer
            ValueError: Invoice number already used
        """
        if self.profiles.get(ctx) is None:
            raise PreconditionFailedError(
                "Business profile must be set up before creating invoices"
            )
        self._ensure_customer(ctx, data.customer_id)

        if data.invoice_number:
            invoice_number = data.invoice_number
            self._ensure_number_available(ctx, invoice_number)
        else:
            invoice_number = self._generate_invoice_number(ctx)

        issue_date = data.issue_date or today_utc()
        due_date = data.due_date or add_days(issue_date, self.config.default_due_days)

        totals = compute_totals(data.items, data.is_tax_inclusive, data.amount_paid)

        invoice_id = uuid4()
        now = now_utc()
        invoice = Invoice(
            id=invoice_id,
            business_id=ctx.business_id,
            customer_id=data.customer_id,
            invoice_number=invoice_number,
            customer_po_number=data.customer_po_number,
            issue_date=issue_date,
            due_date=due_date,
            notes=data.notes,
            is_tax_inclusive=data.is_tax_inclusive,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            amount_paid=data.amount_paid,
            balance_due=totals.balance_due,
            status=InvoiceStatus.DRAFT,
            version=1,
            created_at=now,
            updated_at=now,
            items=self._build_items(invoice_id, data.items, now),
        )

        with self.postgres.transaction() as tx:
            tx.execute(
                f"""
                INSERT INTO invoices ({_INVOICE_COLUMNS})
                VALUES (
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                """,
                (
                    invoice.id, invoice.business_id, invoice.customer_id,
                    invoice.invoice_number, invoice.customer_po_number,
                    invoice.issue_date, invoice.due_date, invoice.notes, invoice.is_tax_inclusive,
                    invoice.subtotal, invoice.tax, invoice.total,
                    invoice.amount_paid, invoice.balance_due,
                    invoice.status.value, invoice.version, invoice.created_at, invoice.updated_at
                )
            )
            self._insert_items(tx, invoice.items)
            self.activity.record(
                invoice.id, ActivityType.CREATE,
                f"Invoice {invoice_number} created",
                performed_by=ctx.user_id, tx=tx,
            )

        logger.info(f"Invoice {invoice_number} created ({invoice.id}), total {invoice.total}")
        self.event_bus.publish(InvoiceCreated.create(invoice=invoice))

        return invoice

    def save(
        self,
        ctx: InvoiceContext,
        invoice_id: UUID,
        data: InvoiceUpdate,
        expected_version: int,
        confirm_status_reversion: bool = False,
    ) -> Invoice:
        """
        Save edits to an invoice.

        Totals are recomputed from the full item set (submitted items replace
        the stored ones; omitted items keep the stored ones). If the invoice
        is paid and its total would change, nothing is written until the
        caller confirms; confirming saves and reverts the invoice to draft.

        Args:
            ctx: Business scope and acting user
            invoice_id: Invoice UUID
            data: Changed fields
            expected_version: Version the caller read
            confirm_status_reversion: Caller accepted the paid -> draft reversion

        Returns:
            Saved invoice

        Raises:
            ValueError: Invoice not found, or number already used
            VersionConflictError: Invoice changed since expected_version
            StatusReversionRequired: Paid invoice total would change; nothing saved
            PreconditionFailedError: New customer does not exist
        """
        current = self._require(ctx, invoice_id)
        if current.version != expected_version:
            raise VersionConflictError(invoice_id, expected_version)

        fields = {
            key: value
            for key, value in data.model_dump(exclude_unset=True, exclude={"items"}).items()
            if value is not None or key in _NULLABLE_FIELDS
        }

        if "customer_id" in fields and fields["customer_id"] != current.customer_id:
            self._ensure_customer(ctx, fields["customer_id"])
        if "invoice_number" in fields and fields["invoice_number"] != current.invoice_number:
            self._ensure_number_available(ctx, fields["invoice_number"], exclude_id=invoice_id)

        item_inputs = (
            data.items if data.items is not None
            else [item.to_input() for item in current.items]
        )
        is_tax_inclusive = fields.get("is_tax_inclusive", current.is_tax_inclusive)
        amount_paid = fields.get("amount_paid", current.amount_paid)
        totals = compute_totals(item_inputs, is_tax_inclusive, amount_paid)

        decision = evaluate_save_guard(current.status, current.total, totals.total)
        if decision.requires_confirmation and not confirm_status_reversion:
            logger.info(
                f"Save of paid invoice {invoice_id} held for confirmation "
                f"({current.total} -> {totals.total})"
            )
            raise StatusReversionRequired(
                invoice_id, current.total, totals.total, decision.forced_status
            )

        reverted = decision.requires_confirmation
        status = decision.forced_status if reverted else current.status

        now = now_utc()
        updated = current.model_copy(update={
            **fields,
            "subtotal": totals.subtotal,
            "tax": totals.tax,
            "total": totals.total,
            "amount_paid": round2(amount_paid),
            "balance_due": totals.balance_due,
            "status": status,
            "version": current.version + 1,
            "updated_at": now,
            "items": self._build_items(invoice_id, item_inputs, now),
        })

        changes = compute_changes(
            current.model_dump(mode="json", exclude={"items"}),
            updated.model_dump(mode="json", exclude={"items"}),
        )
        if [_item_signature(i) for i in current.items] != [_item_signature(i) for i in item_inputs]:
            changes["items"] = {"old": len(current.items), "new": len(item_inputs)}

        with self.postgres.transaction() as tx:
            rows = tx.execute_returning(
                """
                UPDATE invoices
                SET customer_id = %s, invoice_number = %s, customer_po_number = %s,
                    issue_date = %s, due_date = %s, notes = %s, is_tax_inclusive = %s,
                    subtotal = %s, tax = %s, total = %s, amount_paid = %s, balance_due = %s,
                    status = %s, version = version + 1, updated_at = %s
                WHERE id = %s AND business_id = %s AND version = %s
                RETURNING version
                """,
                (
                    updated.customer_id, updated.invoice_number, updated.customer_po_number,
                    updated.issue_date, updated.due_date, updated.notes, updated.is_tax_inclusive,
                    updated.subtotal, updated.tax, updated.total,
                    updated.amount_paid, updated.balance_due,
                    updated.status.value, now,
                    invoice_id, ctx.business_id, expected_version
                )
            )
            if not rows:
                logger.warning(f"Stale save rejected for invoice {invoice_id} (v{expected_version})")
                raise VersionConflictError(invoice_id, expected_version)

            tx.execute("DELETE FROM invoice_items WHERE invoice_id = %s", (invoice_id,))
            self._insert_items(tx, updated.items)

            self.activity.record(
                invoice_id, ActivityType.UPDATE, describe_changes(changes),
                performed_by=ctx.user_id, tx=tx,
            )
            if reverted:
                self.activity.record(
                    invoice_id, ActivityType.STATUS_CHANGE,
                    f"Status changed from {current.status.value} to {status.value}: total changed "
                    f"from {format_money(current.total)} to {format_money(updated.total)}",
                    performed_by=ctx.user_id, tx=tx,
                )

        logger.info(f"Invoice {invoice_id} saved (v{updated.version})")
        self.event_bus.publish(InvoiceUpdated.create(invoice=updated))
        if reverted:
            self.event_bus.publish(
                InvoiceStatusReverted.create(invoice=updated, previous_total=current.total)
            )

        return updated

    def set_status(
        self,
        ctx: InvoiceContext,
        invoice_id: UUID,
        status: InvoiceStatus,
        expected_version: int,
    ) -> Invoice:
        """
        Set a status decided outside the ledger (overdue, cancelled, ...).

        Paid is reached only by recording a payment.

        Raises:
            ValueError: Invoice not found, or status is paid
            VersionConflictError: Invoice changed since expected_version
        """
        status = InvoiceStatus(status)
        if status == InvoiceStatus.PAID:
            raise ValueError("Invoices become paid by recording a payment")

        current = self._require(ctx, invoice_id)
        if current.version != expected_version:
            raise VersionConflictError(invoice_id, expected_version)
        if current.status == status:
            return current

        now = now_utc()
        with self.postgres.transaction() as tx:
            rows = tx.execute_returning(
                """
                UPDATE invoices
                SET status = %s, version = version + 1, updated_at = %s
                WHERE id = %s AND business_id = %s AND version = %s
                RETURNING version
                """,
                (status.value, now, invoice_id, ctx.business_id, expected_version)
            )
            if not rows:
                raise VersionConflictError(invoice_id, expected_version)

            self.activity.record(
                invoice_id, ActivityType.STATUS_CHANGE,
                f"Status changed from {current.status.value} to {status.value}",
                performed_by=ctx.user_id, tx=tx,
            )

        updated = current.model_copy(update={
            "status": status, "version": rows[0]["version"], "updated_at": now,
        })
        logger.info(f"Invoice {invoice_id} status {current.status.value} -> {status.value}")
        self.event_bus.publish(InvoiceUpdated.create(invoice=updated))

        return updated

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def render_pdf(self, ctx: InvoiceContext, invoice_id: UUID) -> bytes:
        """
        Render the invoice PDF from stored figures.

        Raises:
            ValueError: Invoice not found
        """
        invoice = self._require(ctx, invoice_id)
        customer = self.customers.get_by_id(ctx, invoice.customer_id)
        return render_invoice_pdf(invoice, customer, self.profiles.get(ctx))

    def send(
        self,
        ctx: InvoiceContext,
        invoice_id: UUID,
        recipient_email: str,
        message: str | None = None,
    ) -> Invoice:
        """
        Email the invoice with its PDF attached.

        A draft invoice becomes sent. Other statuses are left alone, so
        re-sending a paid invoice does not unpay it.

        Raises:
            ValueError: Invoice not found or cancelled
            RuntimeError: No email gateway configured
            EmailGatewayError: Delivery failed; nothing is recorded
        """
        if self.email is None:
            raise RuntimeError("Email gateway is not configured")

        invoice = self._require(ctx, invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED:
            raise ValueError(f"Invoice {invoice_id} is cancelled")

        profile = self.profiles.get(ctx)
        customer = self.customers.get_by_id(ctx, invoice.customer_id)
        rendered = render_invoice_email(invoice, profile, message)
        pdf = render_invoice_pdf(invoice, customer, profile)

        self.email.send_email(
            to=recipient_email,
            subject=rendered.subject,
            body=rendered.text,
            html=rendered.html,
            attachments=[EmailAttachment(f"invoice-{invoice.invoice_number}.pdf", pdf)],
            sender=self.config.email_sender,
        )

        now = now_utc()
        updated = invoice
        with self.postgres.transaction() as tx:
            self.activity.record(
                invoice_id, ActivityType.EMAIL_SENT,
                f"Invoice emailed to {recipient_email}",
                performed_by=ctx.user_id, tx=tx,
            )

            if invoice.status == InvoiceStatus.DRAFT:
                rows = tx.execute_returning(
                    """
                    UPDATE invoices
                    SET status = %s, version = version + 1, updated_at = %s
                    WHERE id = %s AND business_id = %s AND status = %s
                    RETURNING version
                    """,
                    (
                        InvoiceStatus.SENT.value, now, invoice_id, ctx.business_id,
                        InvoiceStatus.DRAFT.value
                    )
                )
                if rows:
                    self.activity.record(
                        invoice_id, ActivityType.STATUS_CHANGE,
                        "Status changed from draft to sent",
                        performed_by=ctx.user_id, tx=tx,
                    )
                    updated = invoice.model_copy(update={
                        "status": InvoiceStatus.SENT,
                        "version": rows[0]["version"],
                        "updated_at": now,
                    })
                else:
                    logger.warning(f"Invoice {invoice_id} left draft while being sent")

        logger.info(f"Invoice {invoice.invoice_number} sent to {recipient_email}")
        self.event_bus.publish(InvoiceSent.create(invoice=updated, recipient_email=recipient_email))

        return updated

    def record_share(self, ctx: InvoiceContext, invoice_id: UUID, url: str) -> Activity:
        """
        Record that a link to the invoice was shared.

        Raises:
            ValueError: Invoice not found
        """
        self._require(ctx, invoice_id)
        return self.activity.record(
            invoice_id, ActivityType.SHARE, f"Invoice shared: {url}",
            performed_by=ctx.user_id,
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _apply_payment(
        self,
        invoice_id: UUID,
        load: Callable[[], Invoice | None],
        amount: Any,
        settle: bool,
        performed_by: UUID | None,
        reference: str | None = None,
    ) -> Invoice:
        """Apply a payment with compare-and-set, re-reading on version conflicts."""
        amount = to_decimal(amount)
        if amount <= ZERO:
            raise ValueError("Payment amount must be positive")

        description = f"Payment received: {format_money(amount)}"
        if reference:
            description += f" ({reference})"

        for attempt in range(1, self.config.payment_retry_attempts + 1):
            current = load()
            if current is None:
                raise ValueError(f"Invoice {invoice_id} not found")

            updated = apply_payment(current, amount, settle=settle)
            now = now_utc()

            try:
                with self.postgres.transaction() as tx:
                    rows = tx.execute_returning(
                        """
                        UPDATE invoices
                        SET amount_paid = %s, balance_due = %s, status = %s,
                            version = version + 1, updated_at = %s
                        WHERE id = %s AND version = %s
                        RETURNING version
                        """,
                        (
                            updated.amount_paid, updated.balance_due, updated.status.value, now,
                            invoice_id, current.version
                        )
                    )
                    if not rows:
                        raise VersionConflictError(invoice_id, current.version)

                    self.activity.record(
                        invoice_id, ActivityType.PAYMENT_RECEIVED, description,
                        performed_by=performed_by, tx=tx,
                    )
                    if updated.status != current.status:
                        self.activity.record(
                            invoice_id, ActivityType.STATUS_CHANGE,
                            f"Status changed from {current.status.value} to {updated.status.value}",
                            performed_by=performed_by, tx=tx,
                        )
            except VersionConflictError:
                logger.warning(
                    f"Payment on invoice {invoice_id} raced another write "
                    f"(attempt {attempt}/{self.config.payment_retry_attempts})"
                )
                continue

            updated = updated.model_copy(update={"version": rows[0]["version"], "updated_at": now})
            logger.info(
                f"Payment {amount} applied to invoice {invoice_id}; "
                f"balance {updated.balance_due}, status {updated.status.value}"
            )
            if updated.status == InvoiceStatus.PAID:
                self.event_bus.publish(InvoicePaid.create(invoice=updated, payment_amount=amount))
            return updated

        raise VersionConflictError(invoice_id)

    def record_payment(self, ctx: InvoiceContext, invoice_id: UUID, amount: Decimal) -> Invoice:
        """
        Record a manually entered payment.

        The invoice becomes paid only when nothing is left owing.

        Raises:
            ValueError: Invoice not found or amount not positive
            VersionConflictError: Retries exhausted
        """
        return self._apply_payment(
            invoice_id,
            lambda: self.get_by_id(ctx, invoice_id),
            amount,
            settle=False,
            performed_by=ctx.user_id,
        )

    def record_processor_payment(
        self, invoice_id: UUID, amount: Decimal, reference: str | None = None
    ) -> Invoice:
        """
        Record a payment confirmed by the payment processor.

        Runs without a business context: the processor identifies the
        invoice by id only. The invoice is marked paid even when the amount
        is partial.

        Raises:
            ValueError: Invoice not found or amount not positive
            VersionConflictError: Retries exhausted
        """
        return self._apply_payment(
            invoice_id,
            lambda: self._load(invoice_id),
            amount,
            settle=True,
            performed_by=None,
            reference=reference,
        )

    def record_payment_failure(self, invoice_id: UUID, reason: str) -> Activity:
        """
        Record a failed payment attempt. Status and amounts are unchanged.

        Raises:
            ValueError: Invoice not found
        """
        if self._load(invoice_id) is None:
            raise ValueError(f"Invoice {invoice_id} not found")

        entry = self.activity.record(
            invoice_id, ActivityType.PAYMENT_FAILED, f"Payment failed: {reason}"
        )
        logger.warning(f"Payment failed for invoice {invoice_id}: {reason}")
        self.event_bus.publish(PaymentFailed.create(invoice_id=invoice_id, reason=reason))

        return entry
