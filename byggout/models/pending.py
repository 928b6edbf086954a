"""Pending remote operation records used to reconcile optimistic local state."""

from enum import Enum
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field


class OperationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    ADMIN_UPDATE = "admin_update"
    DELETE = "delete"


class OperationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class PendingOperation(BaseModel):
    """One remote write issued after a local optimistic mutation."""
    op_id: str
    kind: OperationKind
    listing_id: str
    status: OperationStatus = OperationStatus.PENDING
    error: Optional[str] = None
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
