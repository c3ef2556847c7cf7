"""Workflow engine driving strategies through Think-Act-Observe cycles.

The engine owns every ExecutionState it creates. Status changes go through
StatusTransitions; COMPLETED and FAILED are terminal.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from taoflow.application.approval.approval_gate import ApprovalGate
from taoflow.application.config_models import EngineConfig
from taoflow.application.transitions import StatusTransitions
from taoflow.domain.cancellation import CancellationToken
from taoflow.domain.constants import (
    CANCELLED_MESSAGE,
    DENIED_MESSAGE,
    WORKFLOW_EXECUTION_ACTION,
)
from taoflow.domain.errors import ExecutionCancelled
from taoflow.domain.events.emitter import WorkflowEventEmitter
from taoflow.domain.events.event import WorkflowEvent
from taoflow.domain.events.event_types import WorkflowEventType
from taoflow.domain.models.approval import Impact, ProposedAction
from taoflow.domain.models.execution_state import (
    ExecutionState,
    ExecutionStatus,
    PhaseName,
    PhaseProgress,
    PhaseStatus,
)
from taoflow.domain.models.strategy_request import StrategyRequest
from taoflow.domain.models.tao import (
    ActionResult,
    Analysis,
    ExecutionResult,
    Observations,
)
from taoflow.domain.progress import ProgressSink
from taoflow.domain.strategies.strategy import Strategy

logger = logging.getLogger(__name__)

StrategyFactory = Callable[[StrategyRequest], Strategy]


@dataclass
class WorkflowEngine:
    """Runs strategies to completion, consulting the approval gate.

    Each execute_workflow() call gets its own ExecutionState. Finished
    states stay queryable for config.state_retention_seconds.
    """

    approval_gate: ApprovalGate
    config: EngineConfig = field(default_factory=EngineConfig)
    event_emitter: "WorkflowEventEmitter | None" = None

    _factories: dict[str, StrategyFactory] = field(default_factory=dict, init=False, repr=False)
    _active: dict[str, ExecutionState] = field(default_factory=dict, init=False, repr=False)
    _cancellations: dict[str, CancellationToken] = field(
        default_factory=dict, init=False, repr=False
    )
    _evictions: dict[str, asyncio.TimerHandle] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.event_emitter is None:
            self.event_emitter = self.approval_gate.event_emitter

    # ========================================================================
    # Strategy registry
    # ========================================================================

    def register_strategy(self, name: str, factory: StrategyFactory) -> None:
        """Register a strategy factory. Re-registering a name replaces it."""
        if name in self._factories:
            logger.warning(f"Strategy '{name}' already registered; replacing factory")
        self._factories[name] = factory
        logger.info(f"Strategy registered: {name}")

    def create_strategy(self, name: str, request: StrategyRequest) -> Strategy | None:
        """Create a strategy instance, or None if name is not registered."""
        factory = self._factories.get(name)
        if factory is None:
            available = ", ".join(self._factories) or "none"
            logger.error(f"Strategy factory not found: '{name}'. Available strategies: {available}")
            return None
        return factory(request)

    def list_strategies(self) -> list[str]:
        return list(self._factories)

    # ========================================================================
    # Execution
    # ========================================================================

    async def execute_workflow(
        self,
        strategy: Strategy,
        progress: ProgressSink | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ExecutionResult:
        """Run strategy through TAO cycles until it stops iterating.

        Returns:
            ExecutionResult. Denial and iteration cap exhaustion come back as
            results with success=False.

        Raises:
            ExecutionCancelled: If cancellation was seen at an iteration boundary
            Exception: Anything raised by think/act/observe/refine, unchanged
        """
        state = ExecutionState(id=str(uuid.uuid4()), strategy_name=strategy.name)
        self._active[state.id] = state
        self._cancellations[state.id] = CancellationToken()

        live = sum(1 for s in self._active.values() if not s.status.is_terminal)
        if live > self.config.max_concurrent_workflows:
            logger.warning(
                f"{live} live executions exceed max_concurrent_workflows "
                f"({self.config.max_concurrent_workflows})"
            )

        self._emit(WorkflowEventType.WORKFLOW_STARTED, state)

        try:
            result = await self._run_cycles(strategy, state, progress, cancellation_token)
        except ExecutionCancelled:
            self._emit(WorkflowEventType.WORKFLOW_FAILED, state)
            raise
        except asyncio.CancelledError:
            self._fail(state, CANCELLED_MESSAGE)
            self._emit(WorkflowEventType.WORKFLOW_FAILED, state)
            raise
        except Exception as e:
            self._fail(state, str(e) or type(e).__name__)
            self._emit(WorkflowEventType.WORKFLOW_FAILED, state)
            raise
        else:
            if state.status == ExecutionStatus.COMPLETED:
                self._emit(WorkflowEventType.WORKFLOW_COMPLETED, state)
            else:
                self._emit(WorkflowEventType.WORKFLOW_FAILED, state)
            return result
        finally:
            state.ended_at = datetime.now(timezone.utc)
            self._cancellations.pop(state.id, None)
            self._schedule_eviction(state.id)

    async def _run_cycles(
        self,
        strategy: Strategy,
        state: ExecutionState,
        progress: ProgressSink | None,
        cancellation_token: CancellationToken | None,
    ) -> ExecutionResult:
        current = strategy
        cap = self.config.iteration_cap
        analysis: Analysis | None = None
        actions: list[ActionResult] = []

        for _ in range(cap):
            self._check_cancelled(state, cancellation_token)

            state.iterations += 1
            self._emit(WorkflowEventType.ITERATION_STARTED, state)

            # THINK
            self._enter_phase(state, ExecutionStatus.THINKING, PhaseName.THINK)
            self._notify(progress, "Thinking...")
            logger.debug(f"Think phase started for {current.name}")
            analysis = await current.think()
            self._complete_phase(state, analysis)

            if analysis.requires_approval and not self.config.auto_approve_all:
                approved = await self._request_approval(analysis, progress)
                if not approved:
                    logger.info(f"Execution {state.id} denied at iteration {state.iterations}")
                    self._fail(state, DENIED_MESSAGE)
                    return ExecutionResult(
                        success=False,
                        analysis=analysis,
                        actions=[],
                        observations=Observations(
                            success=False,
                            requires_iteration=False,
                            feedback=DENIED_MESSAGE,
                        ),
                        iterations=state.iterations,
                    )

            # ACT
            self._enter_phase(state, ExecutionStatus.ACTING, PhaseName.ACT)
            self._notify(progress, "Acting...")
            logger.debug(f"Act phase started for {current.name}")
            actions = await current.act(analysis)
            self._complete_phase(state, actions)

            # OBSERVE
            self._enter_phase(state, ExecutionStatus.OBSERVING, PhaseName.OBSERVE)
            self._notify(progress, "Observing...")
            logger.debug(f"Observe phase started for {current.name}")
            observations = await current.observe(actions)
            self._complete_phase(state, observations)

            if not observations.requires_iteration:
                self._transition(state, ExecutionStatus.COMPLETED)
                return ExecutionResult(
                    success=observations.success,
                    analysis=analysis,
                    actions=actions,
                    observations=observations,
                    iterations=state.iterations,
                )

            logger.info(f"Refining {current.name}, iteration {state.iterations}")
            self._notify(progress, f"Refining approach (iteration {state.iterations})...")
            current = current.refine(observations)

        logger.warning(f"Max iterations ({cap}) reached for {state.strategy_name}")
        self._transition(state, ExecutionStatus.COMPLETED)
        return ExecutionResult(
            success=False,
            analysis=analysis or Analysis(plan=""),
            actions=actions,
            observations=Observations(
                success=False,
                requires_iteration=False,
                feedback=f"Max iterations ({cap}) reached",
            ),
            iterations=state.iterations,
        )

    async def _request_approval(
        self,
        analysis: Analysis,
        progress: ProgressSink | None,
    ) -> bool:
        self._notify(progress, "This action requires approval")
        action = ProposedAction(
            type=WORKFLOW_EXECUTION_ACTION,
            description=analysis.plan,
            impact=Impact.MEDIUM,
            reversible=False,
            details={"steps": [step.model_dump() for step in analysis.steps]},
        )
        return await self.approval_gate.request_approval(action)

    # ========================================================================
    # Queries and control
    # ========================================================================

    def list_active(self) -> list[ExecutionState]:
        """Snapshots of live and recently finished executions."""
        return [state.model_copy(deep=True) for state in self._active.values()]

    def get_state(self, execution_id: str) -> ExecutionState | None:
        state = self._active.get(execution_id)
        return state.model_copy(deep=True) if state is not None else None

    def cancel(self, execution_id: str) -> bool:
        """Flag a running execution as cancelled.

        The loop notices at its next iteration boundary.

        Returns:
            False if the id is unknown or the execution already finished
        """
        state = self._active.get(execution_id)
        if state is None or state.status.is_terminal:
            return False

        token = self._cancellations.get(execution_id)
        if token is not None:
            token.cancel(CANCELLED_MESSAGE)
        self._fail(state, CANCELLED_MESSAGE)
        state.ended_at = datetime.now(timezone.utc)
        logger.info(f"Cancellation requested for execution {execution_id}")
        return True

    def dispose(self) -> None:
        """Stop in-flight executions and clear the live table.

        Disposes the approval gate too, so an execution waiting on a
        decision resolves as denied right away.
        """
        for token in self._cancellations.values():
            token.cancel("Engine disposed")
        for handle in self._evictions.values():
            handle.cancel()
        for state in self._active.values():
            self._fail(state, "Engine disposed")

        self.approval_gate.dispose()
        self._evictions.clear()
        self._active.clear()
        logger.info("WorkflowEngine disposed")

    # ========================================================================
    # Internal
    # ========================================================================

    def _check_cancelled(
        self,
        state: ExecutionState,
        cancellation_token: CancellationToken | None,
    ) -> None:
        internal = self._cancellations.get(state.id)
        requested = (
            cancellation_token is not None and cancellation_token.is_cancellation_requested
        ) or (internal is not None and internal.is_cancellation_requested)
        if not requested:
            return

        self._fail(state, CANCELLED_MESSAGE)
        logger.info(f"Execution {state.id} cancelled before iteration {state.iterations + 1}")
        raise ExecutionCancelled(state.id)

    def _enter_phase(
        self,
        state: ExecutionState,
        status: ExecutionStatus,
        phase: PhaseName,
    ) -> None:
        self._transition(state, status)
        state.current_phase = PhaseProgress(name=phase)

    def _complete_phase(self, state: ExecutionState, result: Any) -> None:
        if state.current_phase is not None:
            state.current_phase.status = PhaseStatus.COMPLETED
            state.current_phase.result = result

    def _transition(self, state: ExecutionState, target: ExecutionStatus) -> None:
        # cancel() may have failed the state mid-iteration; phases run on.
        if state.status.is_terminal:
            logger.debug(f"Execution {state.id} is {state.status.value}; not moving to {target.value}")
            return
        StatusTransitions.ensure_allowed(state.status, target)
        state.status = target

    def _fail(self, state: ExecutionState, error: str) -> None:
        if state.status.is_terminal:
            return
        state.status = ExecutionStatus.FAILED
        state.error = error

    def _notify(self, progress: ProgressSink | None, message: str) -> None:
        if progress is None:
            return
        try:
            progress.progress(message)
        except Exception as e:
            logger.warning(f"Progress sink failed on '{message}': {e}")

    def _schedule_eviction(self, execution_id: str) -> None:
        loop = asyncio.get_running_loop()
        previous = self._evictions.pop(execution_id, None)
        if previous is not None:
            previous.cancel()
        self._evictions[execution_id] = loop.call_later(
            self.config.state_retention_seconds, self._evict, execution_id
        )

    def _evict(self, execution_id: str) -> None:
        self._evictions.pop(execution_id, None)
        self._active.pop(execution_id, None)

    def _emit(self, event_type: WorkflowEventType, state: ExecutionState) -> None:
        assert self.event_emitter is not None
        self.event_emitter.emit(
            WorkflowEvent(
                event_type=event_type,
                execution_id=state.id,
                status=state.status,
                iteration=state.iterations or None,
                metadata={"strategy": state.strategy_name},
            )
        )
