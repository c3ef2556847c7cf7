"""Governance rules evaluated by the approval gate."""

import re
from typing import Callable

from pydantic import BaseModel, ConfigDict, model_validator

from taoflow.domain.models.approval import ProposedAction


ActionPredicate = Callable[[ProposedAction], bool]


class GovernanceRule(BaseModel):
    """Predicate over a ProposedAction plus the decision it implies.

    Rules are evaluated in descending priority. A matching rule with
    auto_approve settles the request as approved without prompting; a
    matching rule with auto_deny settles it as denied.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    predicate: ActionPredicate
    requires_approval: bool = True
    auto_approve: bool = False
    auto_deny: bool = False
    priority: int = 0
    description: str = ""

    @model_validator(mode="after")
    def _auto_flags_exclusive(self) -> "GovernanceRule":
        if self.auto_approve and self.auto_deny:
            raise ValueError("A rule cannot both auto-approve and auto-deny")
        return self

    def matches(self, action: ProposedAction) -> bool:
        return bool(self.predicate(action))

    @classmethod
    def from_pattern(
        cls,
        id: str,
        pattern: str,
        *,
        requires_approval: bool = True,
        auto_approve: bool = False,
        auto_deny: bool = False,
        priority: int = 0,
    ) -> "GovernanceRule":
        """Build a rule matching the action type or description.

        The pattern is a case-insensitive regular expression searched in
        both fields.
        """
        compiled = re.compile(pattern, re.IGNORECASE)

        def _predicate(action: ProposedAction) -> bool:
            return bool(compiled.search(action.type) or compiled.search(action.description))

        return cls(
            id=id,
            predicate=_predicate,
            requires_approval=requires_approval,
            auto_approve=auto_approve,
            auto_deny=auto_deny,
            priority=priority,
            description=f"/{pattern}/i",
        )
