"""Presenter protocol for interactive approval prompts."""

from typing import Protocol

from taoflow.domain.models.approval import PresentationDecision, ProposedAction


class Presenter(Protocol):
    """Shows an approval prompt to a human and reports the decision.

    The gate calls present() without awaiting it from request_approval();
    the request settles through ApprovalGate.resolve(). VIEW_DETAILS makes
    the gate call show_details() and then present() again.
    """

    async def present(self, action: ProposedAction) -> PresentationDecision:
        ...

    async def show_details(self, action: ProposedAction) -> None:
        ...
