"""
Best-effort steps: fire, observe, never propagate.

Used for downstream work that runs after the primary operation has already
committed (payment capture, earning creation). A failure is logged with its
context and reported back as an Outcome; it is never raised.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from core.exceptions import DependencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result of a best-effort step."""

    succeeded: bool
    value: Any = None
    error: DependencyError | None = None


def attempt(step: str, call: Callable[[], Any], **context: Any) -> Outcome:
    """
    Run call(), swallowing and logging any failure.

    Args:
        step: Short name of the step for logs ("payment_capture")
        call: Zero-argument callable doing the work
        **context: Identifiers logged alongside a failure (order_id, payment_id)

    Returns:
        Outcome with the call's return value, or with a DependencyError
    """
    try:
        return Outcome(succeeded=True, value=call())
    except Exception as exc:
        details = ", ".join(f"{k}={v}" for k, v in sorted(context.items()))
        logger.exception("Best-effort step %s failed (%s)", step, details)
        return Outcome(succeeded=False, error=DependencyError(step, exc))
