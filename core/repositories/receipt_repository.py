"""PostgreSQL persistence for receipts."""

import logging
from uuid import UUID, uuid4

from psycopg2 import errors as pg_errors

from clients.postgres_client import PostgresClient
from core.exceptions import ReceiptAlreadyExistsError
from core.models import Receipt, ReceiptCreate
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class ReceiptRepository:
    """
    Receipts on the receipts table.

    order_id is UNIQUE; the constraint is what makes a second receipt for the
    same order impossible, whatever the callers do.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def create(self, data: ReceiptCreate) -> Receipt:
        """
        Insert a receipt.

        Raises:
            ReceiptAlreadyExistsError: The order already has a receipt
        """
        try:
            row = self.postgres.execute_returning(
                """
                INSERT INTO receipts (
                    id, order_id, lines,
                    labor_amount, platform_fee_amount, platform_fee_rate,
                    tax_amount, tax_rate, subtotal_amount, total_amount,
                    currency, approved_hours, finalized_at, created_at
                ) VALUES (
                    %s, %s, %s,
                    %s, %s, %s,
                    %s, %s, %s, %s,
                    %s, %s, %s, %s
                )
                RETURNING *
                """,
                (
                    uuid4(), data.order_id, [line.model_dump(mode="json") for line in data.lines],
                    data.labor_amount, data.platform_fee_amount, data.platform_fee_rate,
                    data.tax_amount, data.tax_rate, data.subtotal_amount, data.total_amount,
                    data.currency, data.approved_hours, data.finalized_at, now_utc()
                )
            )[0]
        except pg_errors.UniqueViolation as e:
            logger.info("Receipt already exists for order %s", data.order_id)
            raise ReceiptAlreadyExistsError(data.order_id) from e

        return Receipt.model_validate(row)

    def find_by_order(self, order_id: UUID) -> Receipt | None:
        row = self.postgres.execute_single(
            "SELECT * FROM receipts WHERE order_id = %s",
            (order_id,)
        )
        return Receipt.model_validate(row) if row else None
