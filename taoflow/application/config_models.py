"""Engine configuration model.

Config structure (.taoflow/config.yml):
    approval_timeout_ms: 30000
    iteration_cap: 5
    max_concurrent_workflows: 5
    auto_approve_all: false
    auto_approve_read_only: true
    state_retention_seconds: 60
    approval_retention_seconds: 60
    details_reshow_delay_seconds: 0.5
    debug_mode: false

iteration_cap and max_concurrent_workflows are independent values. The
engine never enforces max_concurrent_workflows; it only warns when more
executions than that are live.
"""

from pydantic import BaseModel, ConfigDict, Field

from taoflow.domain.constants import (
    DEFAULT_APPROVAL_RETENTION_SECONDS,
    DEFAULT_APPROVAL_TIMEOUT_MS,
    DEFAULT_DETAILS_RESHOW_DELAY_SECONDS,
    DEFAULT_ITERATION_CAP,
    DEFAULT_MAX_CONCURRENT_WORKFLOWS,
    DEFAULT_STATE_RETENTION_SECONDS,
)


class EngineConfig(BaseModel):
    """Configuration consumed by the WorkflowEngine and ApprovalGate."""

    model_config = ConfigDict(extra="forbid")

    approval_timeout_ms: int = Field(default=DEFAULT_APPROVAL_TIMEOUT_MS, gt=0)
    iteration_cap: int = Field(default=DEFAULT_ITERATION_CAP, ge=1)
    max_concurrent_workflows: int = Field(default=DEFAULT_MAX_CONCURRENT_WORKFLOWS, ge=1)

    # Bypasses the gate from the engine side for plans requiring approval.
    auto_approve_all: bool = False
    # Drives the auto_approve flag of the default read-only rule.
    auto_approve_read_only: bool = True

    state_retention_seconds: float = Field(default=DEFAULT_STATE_RETENTION_SECONDS, ge=0)
    approval_retention_seconds: float = Field(default=DEFAULT_APPROVAL_RETENTION_SECONDS, ge=0)
    details_reshow_delay_seconds: float = Field(
        default=DEFAULT_DETAILS_RESHOW_DELAY_SECONDS, ge=0
    )

    debug_mode: bool = False

    @property
    def approval_timeout_seconds(self) -> float:
        return self.approval_timeout_ms / 1000
