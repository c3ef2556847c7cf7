"""Domain-level exceptions for the taoflow engine."""


class ExecutionCancelled(Exception):
    """Raised when a workflow execution observes a cancellation request."""

    def __init__(self, execution_id: str, reason: str = "Cancelled by user") -> None:
        self.execution_id = execution_id
        self.reason = reason
        super().__init__(f"Workflow execution '{execution_id}' cancelled: {reason}")


class InvalidStatusTransition(Exception):
    """Raised when an execution status change is not allowed."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Execution status cannot move from '{current}' to '{target}'")
