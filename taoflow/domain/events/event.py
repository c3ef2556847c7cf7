"""Workflow event payload model."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from taoflow.domain.events.event_types import WorkflowEventType
from taoflow.domain.models.execution_state import ExecutionStatus


class WorkflowEvent(BaseModel):
    """Immutable event payload for workflow notifications."""

    model_config = {"frozen": True}

    event_type: WorkflowEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    execution_id: str | None = None
    request_id: str | None = None
    status: ExecutionStatus | None = None
    iteration: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
