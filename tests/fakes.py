"""Scripted test doubles for strategies, presenters and progress sinks."""

import asyncio

from taoflow.domain.models.approval import PresentationDecision, ProposedAction
from taoflow.domain.models.tao import (
    ActionResult,
    Analysis,
    Observations,
    WorkflowStep,
)
from taoflow.domain.strategies.strategy import Strategy


DONE = Observations(success=True, requires_iteration=False, feedback="done")
AGAIN = Observations(success=False, requires_iteration=True, feedback="again")


class ScriptedStrategy(Strategy):
    """Strategy whose phase outputs are fixed up front.

    observe() returns observations[iteration], repeating the last entry.
    All refined copies share the same calls list.
    """

    name = "scripted"

    def __init__(
        self,
        *,
        requires_approval: bool = False,
        observations: list[Observations] | None = None,
        think_error: Exception | None = None,
        think_gate: asyncio.Event | None = None,
        calls: list[str] | None = None,
        iteration: int = 0,
    ) -> None:
        self.requires_approval = requires_approval
        self.observations = observations or [DONE]
        self.think_error = think_error
        self.think_gate = think_gate
        self.calls = calls if calls is not None else []
        self.iteration = iteration

    async def think(self) -> Analysis:
        self.calls.append("think")
        if self.think_gate is not None:
            await self.think_gate.wait()
        if self.think_error is not None:
            raise self.think_error
        return Analysis(
            plan="Scripted plan",
            steps=[WorkflowStep(id="s1", description="do the thing")],
            requires_approval=self.requires_approval,
            confidence=0.9,
        )

    async def act(self, analysis: Analysis) -> list[ActionResult]:
        self.calls.append("act")
        return [ActionResult(step_id=step.id, success=True, duration_ms=1.0) for step in analysis.steps]

    async def observe(self, actions: list[ActionResult]) -> Observations:
        self.calls.append("observe")
        return self.observations[min(self.iteration, len(self.observations) - 1)]

    def refine(self, observations: Observations) -> "ScriptedStrategy":
        self.calls.append("refine")
        return ScriptedStrategy(
            requires_approval=self.requires_approval,
            observations=self.observations,
            think_error=self.think_error,
            think_gate=self.think_gate,
            calls=self.calls,
            iteration=self.iteration + 1,
        )


class ScriptedPresenter:
    """Presenter replaying decisions; hangs forever once they run out."""

    def __init__(self, decisions: list[PresentationDecision] | None = None) -> None:
        self.decisions = list(decisions or [])
        self.presented: list[ProposedAction] = []
        self.details_shown: list[ProposedAction] = []

    async def present(self, action: ProposedAction) -> PresentationDecision:
        self.presented.append(action)
        if not self.decisions:
            await asyncio.Event().wait()
        return self.decisions.pop(0)

    async def show_details(self, action: ProposedAction) -> None:
        self.details_shown.append(action)


class RecordingProgress:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def progress(self, message: str) -> None:
        self.messages.append(message)
