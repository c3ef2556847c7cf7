"""Abstract base class for TAO strategies.

A strategy is driven by the WorkflowEngine through repeated
Think -> Act -> Observe cycles. refine() hands back the strategy to use
for the next cycle.
"""

import copy
import logging
from abc import ABC, abstractmethod

from taoflow.domain.models.strategy_request import StrategyRequest
from taoflow.domain.models.tao import ActionResult, Analysis, Observations

logger = logging.getLogger(__name__)


class Strategy(ABC):
    """Contract the engine depends on (Strategy pattern)."""

    name: str = "strategy"

    @abstractmethod
    async def think(self) -> Analysis:
        """Analyze the request and produce a plan."""
        ...

    @abstractmethod
    async def act(self, analysis: Analysis) -> list[ActionResult]:
        """Execute the planned steps."""
        ...

    @abstractmethod
    async def observe(self, actions: list[ActionResult]) -> Observations:
        """Evaluate results and decide whether another cycle is needed."""
        ...

    @abstractmethod
    def refine(self, observations: Observations) -> "Strategy":
        """Return the strategy to run the next cycle with."""
        ...


class BaseStrategy(Strategy):
    """Strategy with an immutable default refine().

    refine() never mutates the current instance: it returns a shallow copy
    whose iteration counter is one higher. Subclasses decide in observe()
    whether to ask for another cycle, typically while can_refine is true.
    """

    def __init__(
        self,
        request: StrategyRequest,
        *,
        max_refinements: int = 3,
        iteration: int = 0,
    ) -> None:
        self.request = request
        self.max_refinements = max_refinements
        self.iteration = iteration

    @property
    def can_refine(self) -> bool:
        return self.iteration < self.max_refinements

    def refine(self, observations: Observations) -> "BaseStrategy":
        refined = copy.copy(self)
        refined.iteration = self.iteration + 1
        logger.info(f"Refining {self.name}, iteration {refined.iteration}")
        if not refined.can_refine:
            logger.warning(f"{self.name}: max refinements ({self.max_refinements}) reached")
        return refined

    @staticmethod
    def all_actions_succeeded(actions: list[ActionResult]) -> bool:
        return all(action.success for action in actions)

    @staticmethod
    def failed_actions(actions: list[ActionResult]) -> list[ActionResult]:
        return [action for action in actions if not action.success]

    @staticmethod
    def total_duration_ms(actions: list[ActionResult]) -> float:
        return sum(action.duration_ms for action in actions)
