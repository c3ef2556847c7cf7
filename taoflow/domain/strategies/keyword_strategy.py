"""Keyword-driven sample strategy.

Plans steps from keywords in the request prompt and simulates running
them. Useful as a reference implementation and for the CLI demo.
"""

import asyncio
import logging
import random
import time

from taoflow.domain.models.strategy_request import StrategyRequest
from taoflow.domain.models.tao import ActionResult, Analysis, Observations, WorkflowStep
from taoflow.domain.strategies.strategy import BaseStrategy

logger = logging.getLogger(__name__)


class SimulatedStepFailure(Exception):
    """Raised by the simulated step runner."""


class KeywordStrategy(BaseStrategy):
    """Builds a plan from request keywords (read/list, write/create, api/fetch)."""

    name = "keyword"

    def __init__(
        self,
        request: StrategyRequest,
        *,
        max_refinements: int = 3,
        iteration: int = 0,
        failure_rate: float = 0.1,
        step_delay: float = 0.1,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(request, max_refinements=max_refinements, iteration=iteration)
        self.failure_rate = failure_rate
        self.step_delay = step_delay
        self.rng = rng or random.Random()

    async def think(self) -> Analysis:
        logger.info("Think: analyzing request")
        prompt = self.request.prompt.lower()
        steps: list[WorkflowStep] = []

        if "read" in prompt or "list" in prompt:
            steps.append(
                WorkflowStep(
                    id="step_1",
                    description="List files in workspace",
                    tool_id="file_operations",
                    parameters={"operation": "list", "path": "."},
                )
            )

        if "write" in prompt or "create" in prompt:
            steps.append(
                WorkflowStep(
                    id="step_2",
                    description="Create a new file",
                    tool_id="file_operations",
                    parameters={
                        "operation": "write",
                        "path": "output.txt",
                        "content": "Generated content",
                    },
                    requires_approval=True,
                )
            )

        if "api" in prompt or "fetch" in prompt:
            steps.append(
                WorkflowStep(
                    id="step_3",
                    description="Fetch data from API",
                    tool_id="api_request",
                    parameters={"url": "https://api.example.com/data", "method": "GET"},
                )
            )

        if not steps:
            steps.append(WorkflowStep(id="step_default", description="Process general request"))

        analysis = Analysis(
            plan=f"Execute {len(steps)} step(s) to complete the request",
            steps=steps,
            requires_approval=any(step.requires_approval for step in steps),
            confidence=0.8,
        )
        logger.debug(f"Analysis complete: {len(steps)} steps planned")
        return analysis

    async def act(self, analysis: Analysis) -> list[ActionResult]:
        logger.info("Act: executing planned steps")
        results: list[ActionResult] = []

        for step in analysis.steps:
            started = time.monotonic()
            try:
                await self._simulate_step(step)
            except SimulatedStepFailure as e:
                results.append(
                    ActionResult(
                        step_id=step.id,
                        success=False,
                        error=str(e),
                        duration_ms=(time.monotonic() - started) * 1000,
                    )
                )
                logger.error(f"Step {step.id} failed: {e}")
                continue

            results.append(
                ActionResult(
                    step_id=step.id,
                    success=True,
                    result={"message": f"Step {step.id} completed successfully"},
                    duration_ms=(time.monotonic() - started) * 1000,
                )
            )
            logger.debug(f"Step {step.id} completed successfully")

        return results

    async def observe(self, actions: list[ActionResult]) -> Observations:
        logger.info("Observe: analyzing results")
        improvements: list[str] = []
        requires_iteration = False

        if self.all_actions_succeeded(actions):
            feedback = (
                f"All {len(actions)} actions completed successfully "
                f"in {self.total_duration_ms(actions):.0f}ms"
            )
        else:
            feedback = f"{len(self.failed_actions(actions))} of {len(actions)} actions failed"
            requires_iteration = self.can_refine
            if requires_iteration:
                improvements.append("Retry failed actions with different parameters")
                improvements.append("Add error handling for edge cases")

        logger.debug(f"Observation complete: {feedback}")
        return Observations(
            success=self.all_actions_succeeded(actions),
            requires_iteration=requires_iteration,
            feedback=feedback,
            improvements=improvements or None,
        )

    async def _simulate_step(self, step: WorkflowStep) -> None:
        await asyncio.sleep(self.step_delay)
        if self.rng.random() < self.failure_rate:
            raise SimulatedStepFailure("Simulated random failure")
