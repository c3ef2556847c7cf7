from typing import Literal
from pydantic import BaseModel, Field


class BaseOutput(BaseModel):
    schema_version: int = 1
    command: Literal["run", "rules", "strategies"]
    exit_code: int
    error: str | None = None


class AuditSummary(BaseModel):
    """One approval decision for --audit output."""
    outcome: str
    action_type: str
    request_id: str | None = None
    comment: str | None = None


class RunOutput(BaseOutput):
    command: Literal["run"] = "run"
    strategy: str
    success: bool = False
    cancelled: bool = False
    iterations: int | None = None
    plan: str | None = None
    feedback: str | None = None
    improvements: list[str] = Field(default_factory=list)
    actions_total: int = 0
    actions_failed: int = 0
    audit: list[AuditSummary] | None = None


class RuleSummary(BaseModel):
    """Summary of a single governance rule for rules output."""
    id: str
    priority: int
    matches: str
    requires_approval: bool
    auto_approve: bool
    auto_deny: bool


class RulesOutput(BaseOutput):
    command: Literal["rules"] = "rules"
    rules: list[RuleSummary] = Field(default_factory=list)


class StrategiesOutput(BaseOutput):
    command: Literal["strategies"] = "strategies"
    strategies: list[str] = Field(default_factory=list)
