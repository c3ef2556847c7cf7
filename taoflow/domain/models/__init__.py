"""Domain models for the taoflow engine."""

from .strategy_request import StrategyRequest
from .tao import (
    ActionResult,
    Analysis,
    ExecutionResult,
    Observations,
    WorkflowStep,
)
from .execution_state import (
    ExecutionState,
    ExecutionStatus,
    PhaseName,
    PhaseProgress,
    PhaseStatus,
)
from .approval import (
    ApprovalRequest,
    ApprovalStats,
    ApprovalStatus,
    AuditEntry,
    AuditOutcome,
    Impact,
    PresentationDecision,
    ProposedAction,
)
from .governance_rule import ActionPredicate, GovernanceRule


__all__ = [
    "StrategyRequest",
    "ActionResult",
    "Analysis",
    "ExecutionResult",
    "Observations",
    "WorkflowStep",
    "ExecutionState",
    "ExecutionStatus",
    "PhaseName",
    "PhaseProgress",
    "PhaseStatus",
    "ApprovalRequest",
    "ApprovalStats",
    "ApprovalStatus",
    "AuditEntry",
    "AuditOutcome",
    "Impact",
    "PresentationDecision",
    "ProposedAction",
    "ActionPredicate",
    "GovernanceRule",
]
