from enum import Enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ExecutionStatus(str, Enum):
    """Execution status - WHERE one execute_workflow call is.

    COMPLETED and FAILED are terminal.
    """

    PENDING = "pending"      # Registered, loop not entered yet
    THINKING = "thinking"    # Strategy is planning
    ACTING = "acting"        # Strategy is executing steps
    OBSERVING = "observing"  # Strategy is evaluating results
    COMPLETED = "completed"  # Loop returned a result
    FAILED = "failed"        # Denied, cancelled or a phase raised

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class PhaseName(str, Enum):
    THINK = "think"
    ACT = "act"
    OBSERVE = "observe"


class PhaseStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PhaseProgress(BaseModel):
    """Marker for the phase an execution is currently in."""

    name: PhaseName
    status: PhaseStatus = PhaseStatus.IN_PROGRESS
    result: Any = None


class ExecutionState(BaseModel):
    """Live state of one in-flight execution."""

    # Identity
    id: str
    strategy_name: str

    # State
    status: ExecutionStatus = ExecutionStatus.PENDING
    current_phase: PhaseProgress | None = None
    iterations: int = 0

    # Error tracking
    error: str | None = None

    # Timestamps
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: datetime | None = None
