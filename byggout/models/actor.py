"""Actor model - the signed-in party performing marketplace operations."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class Capability(str, Enum):
    """Closed set of capabilities resolved once per session transition."""
    ADMIN = "admin"


class Actor(BaseModel):
    """Authenticated actor. Anonymous sessions are represented by ``None``."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Auth user id")
    email: Optional[str] = Field(None, description="Email address")
    capabilities: frozenset[Capability] = Field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return Capability.ADMIN in self.capabilities
