"""PostgreSQL persistence for order line items."""

from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.models import LineItem, LineItemCreate
from utils.timezone import now_utc


class LineItemRepository:
    """
    Line items on the order_line_items table.

    Items are never patched: replace_all deletes an order's items and inserts
    the new set in one transaction.
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def list_by_order(self, order_id: UUID) -> list[LineItem]:
        rows = self.postgres.execute(
            """
            SELECT * FROM order_line_items
            WHERE order_id = %s
            ORDER BY created_at, position
            """,
            (order_id,)
        )
        return [LineItem.model_validate(row) for row in rows]

    def replace_all(self, order_id: UUID, items: list[LineItemCreate]) -> list[LineItem]:
        """
        Replace an order's line items atomically.

        Args:
            order_id: Order UUID
            items: New line items, in display order

        Returns:
            Persisted line items in the same order
        """
        now = now_utc()
        created = []

        with self.postgres.transaction() as cur:
            cur.execute("DELETE FROM order_line_items WHERE order_id = %s", (order_id,))

            for position, item in enumerate(items):
                rows = cur.execute(
                    """
                    INSERT INTO order_line_items (
                        id, order_id, position, type, description,
                        quantity, unit_amount, amount, currency,
                        tax_behavior, tax_rate, created_at
                    ) VALUES (
                        %s, %s, %s, %s, %s,
                        %s, %s, %s, %s,
                        %s, %s, %s
                    )
                    RETURNING *
                    """,
                    (
                        uuid4(), order_id, position, item.type, item.description,
                        item.quantity, item.unit_amount, item.amount, item.currency,
                        item.tax_behavior, item.tax_rate, now
                    )
                )
                created.append(LineItem.model_validate(rows[0]))

        return created
