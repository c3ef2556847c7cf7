"""Think-Act-Observe payload models.

One cycle produces an Analysis (think), a list of ActionResult (act) and
Observations (observe). ExecutionResult is what the engine hands back.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class WorkflowStep(BaseModel):
    """A single planned step inside an Analysis."""

    id: str
    description: str
    tool_id: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)
    requires_approval: bool = False


class Analysis(BaseModel):
    """Output of the think phase."""

    plan: str
    steps: list[WorkflowStep] = Field(default_factory=list)
    requires_approval: bool = False
    confidence: float = 0.0

    @field_validator("confidence")
    @classmethod
    def _confidence_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("confidence must be between 0 and 1")
        return v


class ActionResult(BaseModel):
    """Per-step outcome of the act phase."""

    step_id: str
    success: bool
    result: Any = None
    error: str | None = None
    duration_ms: float = 0.0


class Observations(BaseModel):
    """Output of the observe phase."""

    success: bool
    requires_iteration: bool = False
    feedback: str = ""
    improvements: list[str] | None = None


class ExecutionResult(BaseModel):
    """Terminal outcome of one execute_workflow call."""

    success: bool
    analysis: Analysis
    actions: list[ActionResult] = Field(default_factory=list)
    observations: Observations
    iterations: int
