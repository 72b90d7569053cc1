"""
Customer service for CRUD operations.

Handles customer (contact) lifecycle: create, read, update, soft delete.
Every query is scoped to the business in the caller's InvoiceContext.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.context import InvoiceContext
from core.models import Customer, CustomerCreate, CustomerUpdate
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Valid columns that can be updated
_UPDATABLE_COLUMNS = {
    "company_name", "first_name", "surname",
    "billing_email", "billing_phone", "billing_address",
    "billing_suburb", "billing_state", "billing_postcode", "billing_country",
    "abn", "notes", "is_inactive",
}


class CustomerService:
    """Service for customer operations."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def create(self, ctx: InvoiceContext, data: CustomerCreate) -> Customer:
        """
        Create a new customer.

        Args:
            ctx: Business the customer belongs to
            data: Customer creation data

        Returns:
            Created customer
        """
        customer_id = uuid4()
        now = now_utc()

        row = self.postgres.execute_returning(
            """
            INSERT INTO customers (
                id, business_id, company_name, first_name, surname,
                billing_email, billing_phone, billing_address,
                billing_suburb, billing_state, billing_postcode, billing_country,
                abn, notes, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s, %s,
                %s, %s, %s,
                %s, %s, %s, %s,
                %s, %s, %s, %s
            )
            RETURNING *
            """,
            (
                customer_id, ctx.business_id, data.company_name, data.first_name, data.surname,
                data.billing_email, data.billing_phone, data.billing_address,
                data.billing_suburb, data.billing_state, data.billing_postcode, data.billing_country,
                data.abn, data.notes, now, now
            )
        )[0]

        customer = Customer.model_validate(row)
        logger.info(f"Customer {customer.id} created for business {ctx.business_id}")
        return customer

    def get_by_id(self, ctx: InvoiceContext, customer_id: UUID) -> Customer | None:
        """
        Get customer by ID.

        Returns:
            Customer if found in this business and not deleted, None otherwise.
        """
        row = self.postgres.execute_single(
            """
            SELECT * FROM customers
            WHERE id = %s AND business_id = %s AND deleted_at IS NULL
            """,
            (customer_id, ctx.business_id)
        )

        if row is None:
            return None

        return Customer.model_validate(row)

    def update(self, ctx: InvoiceContext, customer_id: UUID, data: CustomerUpdate) -> Customer:
        """
        Update customer fields.

        Args:
            ctx: Business scope
            customer_id: Customer UUID
            data: Fields to update (only non-None fields are changed)

        Returns:
            Updated customer

        Raises:
            ValueError: If customer not found
        """
        current = self.get_by_id(ctx, customer_id)
        if current is None:
            raise ValueError(f"Customer {customer_id} not found")

        updates = {
            k: v for k, v in data.model_dump(exclude_none=True).items()
            if k in _UPDATABLE_COLUMNS
        }
        if not updates:
            return current

        set_parts = [f"{field} = %s" for field in updates]
        params = list(updates.values())

        set_parts.append("updated_at = %s")
        params.extend([now_utc(), customer_id, ctx.business_id])

        row = self.postgres.execute_returning(
            f"""
            UPDATE customers
            SET {', '.join(set_parts)}
            WHERE id = %s AND business_id = %s
            RETURNING *
            """,
            tuple(params)
        )[0]

        return Customer.model_validate(row)

    def delete(self, ctx: InvoiceContext, customer_id: UUID) -> bool:
        """
        Soft delete a customer. Existing invoices keep referencing it.

        Returns:
            True if deleted, False if not found
        """
        current = self.get_by_id(ctx, customer_id)
        if current is None:
            return False

        now = now_utc()
        self.postgres.execute(
            """
            UPDATE customers
            SET deleted_at = %s, updated_at = %s
            WHERE id = %s AND business_id = %s
            """,
            (now, now, customer_id, ctx.business_id)
        )

        logger.info(f"Customer {customer_id} deleted")
        return True

    def list_all(
        self,
        ctx: InvoiceContext,
        include_inactive: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> list[Customer]:
        """
        List customers with pagination.

        Returns:
            Customers ordered by created_at DESC
        """
        inactive_clause = "" if include_inactive else "AND is_inactive = FALSE"

        rows = self.postgres.execute(
            f"""
            SELECT * FROM customers
            WHERE business_id = %s AND deleted_at IS NULL {inactive_clause}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            (ctx.business_id, limit, offset)
        )

        return [Customer.model_validate(row) for row in rows]

    def search(self, ctx: InvoiceContext, query: str, limit: int = 20) -> list[Customer]:
        """
        Search customers by name, email, or phone.

        Uses ILIKE for case-insensitive partial matching.
        """
        pattern = f"%{query}%"

        rows = self.postgres.execute(
            """
            SELECT * FROM customers
            WHERE business_id = %s AND deleted_at IS NULL
              AND (company_name ILIKE %s
               OR first_name ILIKE %s
               OR surname ILIKE %s
               OR billing_email ILIKE %s
               OR billing_phone ILIKE %s)
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (ctx.business_id, pattern, pattern, pattern, pattern, pattern, limit)
        )

        return [Customer.model_validate(row) for row in rows]
