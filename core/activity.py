"""
Invoice activity trail.

Every create, save, share, send, payment and status change on an invoice
appends one entry here. The trail is:
- Append-only (entries are never modified or deleted)
- Attributed (who acted, when known; webhooks act anonymously)
- Human-readable (description is shown as-is in the invoice history)

Entries written as part of a save go through the save's transaction so the
trail never records a change that was rolled back.
"""

from typing import Any
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core.models import Activity, ActivityType
from utils.timezone import now_utc


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at", "version"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at", "version"}
    changes = {}

    all_keys = set(old.keys()) | set(new.keys())
    for key in all_keys:
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


def describe_changes(changes: dict[str, dict[str, Any]]) -> str:
    """One-line summary of an update for the activity trail."""
    if not changes:
        return "Invoice saved with no changes"
    fields = ", ".join(sorted(changes))
    return f"Invoice updated ({fields})"


class ActivityLog:
    """
    Append-only activity trail for invoices.

    Usage:
        activity = ActivityLog(postgres)

        # Standalone entry (autocommits)
        activity.record(invoice.id, ActivityType.EMAIL_SENT, "Invoice emailed to a@b.com")

        # Inside a save, so it commits or rolls back with the invoice
        with postgres.transaction() as tx:
            ...
            activity.record(invoice.id, ActivityType.UPDATE, "Invoice updated", tx=tx)

        # History, newest first
        history = activity.list_for_invoice(invoice.id)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def record(
        self,
        invoice_id: UUID,
        activity_type: ActivityType | str,
        description: str,
        performed_by: UUID | None = None,
        tx: Transaction | None = None,
    ) -> Activity:
        """
        Append an activity entry.

        Args:
            invoice_id: Invoice the entry belongs to
            activity_type: Known ActivityType or any free-form tag
            description: Human-readable text for the history view
            performed_by: Acting user, if any
            tx: Enclosing transaction; autocommits on its own when omitted

        Returns:
            The recorded entry
        """
        activity_type = (
            activity_type.value if isinstance(activity_type, ActivityType) else activity_type
        )
        entry = Activity(
            id=uuid4(),
            invoice_id=invoice_id,
            activity_type=activity_type,
            description=description,
            performed_by=performed_by,
            created_at=now_utc(),
        )

        query = """
            INSERT INTO invoice_activities (
                id, invoice_id, activity_type, description, performed_by, created_at
            ) VALUES (%s, %s, %s, %s, %s, %s)
        """
        params = (
            entry.id, entry.invoice_id, entry.activity_type,
            entry.description, entry.performed_by, entry.created_at,
        )

        executor = tx if tx is not None else self.postgres
        executor.execute(query, params)

        return entry

    def list_for_invoice(self, invoice_id: UUID) -> list[Activity]:
        """
        Get the activity history for an invoice.

        Args:
            invoice_id: Invoice UUID

        Returns:
            Entries, newest first.
        """
        rows = self.postgres.execute(
            """
            SELECT id, invoice_id, activity_type, description, performed_by, created_at
            FROM invoice_activities
            WHERE invoice_id = %s
            ORDER BY created_at DESC
            """,
            (invoice_id,)
        )
        return [Activity.model_validate(row) for row in rows]
