"""
PostgreSQL persistence for orders.

Each write is a single UPDATE ... RETURNING statement, so a mutation and the
refreshed row it returns are atomic. Status changes also stamp the matching
lifecycle timestamp.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.exceptions import OrderNotFoundError
from core.models import DisputeStatus, Order, OrderStatus
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {
    "title", "description", "address_text", "address_lat", "address_lng",
    "scheduled_start_at", "scheduled_end_at",
    "arrived_at", "submitted_at", "work_proof_photo_urls",
    "estimated_hours", "final_hours_submitted", "approved_hours", "approval_method",
    "quoted_amount", "quoted_at", "quote_message", "quote_accepted_at",
    "subtotal_amount", "platform_fee_amount", "tax_amount", "total_amount",
    "tax_scheme", "tax_rate", "tax_region", "tax_included", "totals_calculated_at",
}

_STATUS_TIMESTAMPS = {
    OrderStatus.ACCEPTED: "accepted_at",
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.IN_PROGRESS: "started_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.PAID: "paid_at",
    OrderStatus.CANCELED: "canceled_at",
}

_INSERT_COLUMNS = (
    "id", "display_code", "client_id", "provider_profile_id",
    "category_id", "subcategory_id", "category_snapshot",
    "title", "description", "address_text", "address_lat", "address_lng",
    "scheduled_start_at", "scheduled_end_at", "status",
    "pricing_mode", "hourly_rate_snapshot", "currency", "estimated_hours",
    "is_first_order", "created_at", "updated_at",
)


def status_fields(
    status: OrderStatus,
    metadata: dict[str, Any] | None = None,
    now: datetime | None = None,
    previous_status: OrderStatus | None = None
) -> dict[str, Any]:
    """
    Columns written alongside a status change.

    Args:
        status: New status
        metadata: cancel_reason for CANCELED; dispute_reason and
            dispute_opened_by for DISPUTED. Other keys are ignored.
        now: Timestamp to stamp (defaults to now)
        previous_status: Status being left; leaving DISPUTED resolves the dispute

    Returns:
        Column -> value mapping, including status itself
    """
    metadata = metadata or {}
    now = now or now_utc()
    fields: dict[str, Any] = {"status": status}

    timestamp_column = _STATUS_TIMESTAMPS.get(status)
    if timestamp_column:
        fields[timestamp_column] = now

    if status == OrderStatus.CANCELED and metadata.get("cancel_reason"):
        fields["cancel_reason"] = metadata["cancel_reason"]

    if status == OrderStatus.DISPUTED:
        fields["dispute_status"] = DisputeStatus.OPENED
        fields["dispute_reason"] = metadata.get("dispute_reason")
        fields["dispute_opened_by"] = metadata.get("dispute_opened_by")
    elif previous_status == OrderStatus.DISPUTED:
        fields["dispute_status"] = DisputeStatus.RESOLVED

    return fields


class OrderRepository:
    """Order persistence on the orders table."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def create(self, fields: dict[str, Any]) -> Order:
        """
        Insert a new order.

        Args:
            fields: Column values; keys outside the insertable set are ignored

        Returns:
            Created order
        """
        columns = [c for c in _INSERT_COLUMNS if c in fields]
        placeholders = ", ".join(["%s"] * len(columns))

        row = self.postgres.execute_returning(
            f"""
            INSERT INTO orders ({', '.join(columns)})
            VALUES ({placeholders})
            RETURNING *
            """,
            tuple(fields[c] for c in columns)
        )[0]

        return Order.model_validate(row)

    def get(self, order_id: UUID) -> Order | None:
        row = self.postgres.execute_single(
            "SELECT * FROM orders WHERE id = %s",
            (order_id,)
        )
        return Order.model_validate(row) if row else None

    def find_by_display_code(self, display_code: str) -> Order | None:
        row = self.postgres.execute_single(
            "SELECT * FROM orders WHERE display_code = %s",
            (display_code.upper(),)
        )
        return Order.model_validate(row) if row else None

    def update(self, order_id: UUID, fields: dict[str, Any]) -> Order:
        """
        Apply a partial update.

        Unknown fields are logged and dropped. An update with nothing valid
        returns the current order unchanged.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        for field in fields:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning("Attempted to update unknown field '%s' on order %s", field, order_id)

        valid_updates = {k: v for k, v in fields.items() if k in _UPDATABLE_COLUMNS}
        if not valid_updates:
            current = self.get(order_id)
            if current is None:
                raise OrderNotFoundError(order_id)
            return current

        return self._write(order_id, valid_updates)

    def update_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        metadata: dict[str, Any] | None = None,
        previous_status: OrderStatus | None = None
    ) -> Order:
        """
        Set status and its lifecycle timestamp.

        Does not check the state machine; callers do.

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        return self._write(order_id, status_fields(status, metadata, previous_status=previous_status))

    def _write(self, order_id: UUID, fields: dict[str, Any]) -> Order:
        set_parts = []
        params = []
        for field, value in fields.items():
            set_parts.append(f"{field} = %s")
            params.append(value)

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.append(order_id)

        rows = self.postgres.execute_returning(
            f"""
            UPDATE orders
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            tuple(params)
        )
        if not rows:
            raise OrderNotFoundError(order_id)

        return Order.model_validate(rows[0])

    def list_for_client(self, client_id: UUID, limit: int = 50) -> list[Order]:
        """Client's orders, newest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM orders
            WHERE client_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (client_id, limit)
        )
        return [Order.model_validate(row) for row in rows]

    def list_for_provider(self, provider_profile_id: UUID, limit: int = 50) -> list[Order]:
        """Orders assigned to a provider profile, newest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM orders
            WHERE provider_profile_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (provider_profile_id, limit)
        )
        return [Order.model_validate(row) for row in rows]

    def client_has_orders(self, client_id: UUID) -> bool:
        return bool(self.postgres.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM orders WHERE client_id = %s)",
            (client_id,)
        ))

    def latest_display_code(self) -> str | None:
        """
        Highest display code in use.

        Codes of equal length sort like their sequence numbers because the
        alphabet is in ASCII order.
        """
        return self.postgres.execute_scalar(
            """
            SELECT display_code FROM orders
            ORDER BY length(display_code) DESC, display_code DESC
            LIMIT 1
            """
        )

    def display_code_exists(self, display_code: str) -> bool:
        return bool(self.postgres.execute_scalar(
            "SELECT EXISTS (SELECT 1 FROM orders WHERE display_code = %s)",
            (display_code,)
        ))
