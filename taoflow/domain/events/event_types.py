"""Workflow event types for observer pattern notifications."""

from enum import Enum


class WorkflowEventType(str, Enum):
    """Typed events emitted by the engine and the approval gate."""

    # Execution lifecycle
    WORKFLOW_STARTED = "workflow_started"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"

    # Iteration
    ITERATION_STARTED = "iteration_started"

    # Approval gates
    APPROVAL_REQUIRED = "approval_required"
    APPROVAL_GRANTED = "approval_granted"
    APPROVAL_DENIED = "approval_denied"
    APPROVAL_EXPIRED = "approval_expired"
