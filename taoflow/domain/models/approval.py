"""Approval request, proposed action and audit models."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Impact(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProposedAction(BaseModel):
    """Action a caller wants approved. Immutable."""

    model_config = ConfigDict(frozen=True)

    type: str
    description: str
    impact: Impact = Impact.MEDIUM
    reversible: bool = True
    details: dict[str, Any] = Field(default_factory=dict)


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"


class ApprovalRequest(BaseModel):
    """A pending or settled human approval request.

    Status leaves PENDING exactly once; the gate owns every mutation.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action: ProposedAction
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: ApprovalStatus = ApprovalStatus.PENDING
    response: str | None = None
    resolved_at: datetime | None = None


class PresentationDecision(str, Enum):
    """What a presenter reports back after showing an approval prompt.

    VIEW_DETAILS does not settle the request; the prompt is shown again.
    """

    APPROVE = "approve"
    DENY = "deny"
    VIEW_DETAILS = "view_details"
    DISMISSED = "dismissed"


class AuditOutcome(str, Enum):
    AUTO_APPROVED = "auto_approved"
    AUTO_DENIED = "auto_denied"
    APPROVED = "approved"
    DENIED = "denied"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class AuditEntry(BaseModel):
    """One approval decision, reported exactly once."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None  # None for rule-based decisions
    action: ProposedAction
    outcome: AuditOutcome
    comment: str | None = None

    @property
    def approved(self) -> bool:
        return self.outcome in (AuditOutcome.AUTO_APPROVED, AuditOutcome.APPROVED)


class ApprovalStats(BaseModel):
    total: int = 0
    approved: int = 0
    denied: int = 0
    pending: int = 0
    expired: int = 0
