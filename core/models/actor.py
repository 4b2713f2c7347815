"""Acting party for lifecycle operations."""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class Role(str, Enum):
    """Role an actor holds for the current request."""

    CLIENT = "client"
    PROVIDER = "provider"
    ADMIN = "admin"
    SYSTEM = "system"


class Actor(BaseModel):
    """The party performing an action."""

    id: UUID | None = None
    role: Role

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# Used for follow-up work triggered by the engine itself (earning creation)
SYSTEM_ACTOR = Actor(role=Role.SYSTEM)
