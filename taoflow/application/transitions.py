"""Declarative status transitions for workflow executions.

Key concepts:
- One cycle is THINKING -> ACTING -> OBSERVING, then back to THINKING
- COMPLETED and FAILED are terminal and never left
- Any non-terminal status may fail
"""

from taoflow.domain.errors import InvalidStatusTransition
from taoflow.domain.models.execution_state import ExecutionStatus


class StatusTransitions:
    """Table-driven state machine for ExecutionStatus.

    Usage:
        StatusTransitions.ensure_allowed(state.status, target)
        state.status = target
    """

    _TRANSITIONS: dict[ExecutionStatus, frozenset[ExecutionStatus]] = {
        ExecutionStatus.PENDING: frozenset({
            ExecutionStatus.THINKING,
            ExecutionStatus.FAILED,
        }),
        ExecutionStatus.THINKING: frozenset({
            ExecutionStatus.ACTING,
            ExecutionStatus.FAILED,
        }),
        ExecutionStatus.ACTING: frozenset({
            ExecutionStatus.OBSERVING,
            ExecutionStatus.FAILED,
        }),
        ExecutionStatus.OBSERVING: frozenset({
            ExecutionStatus.THINKING,   # next iteration
            ExecutionStatus.COMPLETED,  # no iteration required, or cap reached
            ExecutionStatus.FAILED,
        }),
        # Terminal
        ExecutionStatus.COMPLETED: frozenset(),
        ExecutionStatus.FAILED: frozenset(),
    }

    @classmethod
    def is_allowed(cls, current: ExecutionStatus, target: ExecutionStatus) -> bool:
        return target in cls._TRANSITIONS.get(current, frozenset())

    @classmethod
    def ensure_allowed(cls, current: ExecutionStatus, target: ExecutionStatus) -> None:
        """Raise InvalidStatusTransition unless current -> target is allowed."""
        if not cls.is_allowed(current, target):
            raise InvalidStatusTransition(current.value, target.value)

    @classmethod
    def allowed_from(cls, current: ExecutionStatus) -> frozenset[ExecutionStatus]:
        return cls._TRANSITIONS.get(current, frozenset())
