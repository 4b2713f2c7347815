"""PostgreSQL implementations of the order persistence stores."""

from core.repositories.order_repository import OrderRepository, status_fields
from core.repositories.line_item_repository import LineItemRepository
from core.repositories.receipt_repository import ReceiptRepository

__all__ = ["OrderRepository", "LineItemRepository", "ReceiptRepository", "status_fields"]
