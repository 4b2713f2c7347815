"""
Order audit log.

Append-only record of who changed which order and how. Rows are written by
the services right after the change they describe; the engine's own
follow-up work (finalization) is attributed to the system actor, whose id
is null.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel

from clients.postgres_client import PostgresClient
from core.models import Actor, Role
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "id, actor_id, actor_role, entity_type, entity_id, action, changes, created_at"


class AuditAction(Enum):
    """Kind of order change recorded."""

    CREATE = "create"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    FINALIZE = "finalize"
    FORCE_STATUS = "force_status"


class AuditEntry(BaseModel):
    """One audit_log row."""

    id: UUID
    actor_id: UUID | None = None
    actor_role: Role | None = None
    entity_type: str
    entity_id: UUID
    action: AuditAction
    changes: dict[str, Any]
    created_at: datetime

    model_config = {"from_attributes": True}


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two JSON-mode dumps.

    Returns:
        {field: {"old": ..., "new": ...}} for every field whose value differs,
        ignoring exclude_fields (updated_at by default)
    """
    skip = exclude_fields or {"updated_at"}
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(set(old) | set(new))
        if key not in skip and old.get(key) != new.get(key)
    }


class AuditLogger:
    """
    Writer and reader for the audit_log table.

    changes must be JSON-compatible; build them from model_dump(mode="json").
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        actor: Actor | None = None
    ) -> None:
        """
        Append one entry.

        Args:
            entity_type: "order"
            entity_id: Order id
            action: What happened
            changes: {"created": {...}} for CREATE, field diffs otherwise
            actor: Acting party; None or the system actor for engine work
        """
        self.postgres.execute(
            f"INSERT INTO audit_log ({_ENTRY_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
            (
                uuid4(),
                actor.id if actor else None,
                actor.role if actor else None,
                entity_type,
                entity_id,
                action,
                changes,
                now_utc(),
            )
        )
        logger.info(
            "Audit: %s on %s %s by %s",
            action.value, entity_type, entity_id, actor.role.value if actor else "system",
        )

    def get_entity_history(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        """Entries for one entity, newest first."""
        rows = self.postgres.execute(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM audit_log
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id)
        )
        return [AuditEntry.model_validate(row) for row in rows]
