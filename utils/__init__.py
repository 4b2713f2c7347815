"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, is_in_future
