"""
Business profile service.

One profile per business; its id is the business_id. An invoice cannot be
created until the profile exists.
"""

import logging

from clients.postgres_client import PostgresClient
from core.context import InvoiceContext
from core.models import BusinessProfile, BusinessProfileUpsert
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class BusinessProfileService:
    """Service for the issuing business's profile."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get(self, ctx: InvoiceContext) -> BusinessProfile | None:
        """Profile of the context's business, or None if not set up yet."""
        row = self.postgres.execute_single(
            "SELECT * FROM business_profiles WHERE id = %s",
            (ctx.business_id,)
        )

        if row is None:
            return None

        return BusinessProfile.model_validate(row)

    def upsert(self, ctx: InvoiceContext, data: BusinessProfileUpsert) -> BusinessProfile:
        """
        Create the profile or replace all of its fields.

        Returns:
            Stored profile
        """
        now = now_utc()

        row = self.postgres.execute_returning(
            """
            INSERT INTO business_profiles (
                id, user_id, business_name, abn_acn,
                address_line1, address_line2, city, state, postcode, country,
                pdf_notes_template, created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s,
                %s, %s, %s, %s, %s, %s,
                %s, %s, %s
            )
            ON CONFLICT (id) DO UPDATE SET
                business_name = EXCLUDED.business_name,
                abn_acn = EXCLUDED.abn_acn,
                address_line1 = EXCLUDED.address_line1,
                address_line2 = EXCLUDED.address_line2,
                city = EXCLUDED.city,
                state = EXCLUDED.state,
                postcode = EXCLUDED.postcode,
                country = EXCLUDED.country,
                pdf_notes_template = EXCLUDED.pdf_notes_template,
                updated_at = EXCLUDED.updated_at
            RETURNING *
            """,
            (
                ctx.business_id, ctx.user_id, data.business_name, data.abn_acn,
                data.address_line1, data.address_line2, data.city, data.state,
                data.postcode, data.country,
                data.pdf_notes_template, now, now
            )
        )[0]

        logger.info(f"Business profile saved for {ctx.business_id}")
        return BusinessProfile.model_validate(row)
