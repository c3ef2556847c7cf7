"""Console presenter for approval prompts.

click.prompt blocks, so it runs in a daemon thread and hands its answer
back to the event loop. A prompt still waiting when the request times out
is abandoned; the daemon thread does not keep the process alive.
"""

import asyncio
import json
import logging
import threading

import click

from taoflow.domain.models.approval import Impact, PresentationDecision, ProposedAction

logger = logging.getLogger(__name__)

_IMPACT_LABELS = {
    Impact.HIGH: "[!] HIGH",
    Impact.MEDIUM: "[~] MEDIUM",
    Impact.LOW: "[i] LOW",
}

_ANSWERS = {
    "a": PresentationDecision.APPROVE,
    "approve": PresentationDecision.APPROVE,
    "d": PresentationDecision.DENY,
    "deny": PresentationDecision.DENY,
    "v": PresentationDecision.VIEW_DETAILS,
    "details": PresentationDecision.VIEW_DETAILS,
}


def format_action(action: ProposedAction) -> str:
    reversible = "Reversible" if action.reversible else "Not reversible"
    return (
        "Agent requests permission:\n\n"
        f"{action.description}\n\n"
        f"Impact: {_IMPACT_LABELS[action.impact]} | {reversible}"
    )


def parse_answer(answer: str | None) -> PresentationDecision:
    """Map a typed answer to a decision; anything unrecognized is a dismissal."""
    if answer is None:
        return PresentationDecision.DISMISSED
    return _ANSWERS.get(answer.strip().lower(), PresentationDecision.DISMISSED)


class ConsolePresenter:
    """Presents approval prompts on stderr and reads the answer from stdin."""

    prompt_text = "Approve, deny or view details? [a/d/v]"

    async def present(self, action: ProposedAction) -> PresentationDecision:
        click.echo(format_action(action), err=True)
        answer = await self._prompt_in_thread(self.prompt_text)
        return parse_answer(answer)

    async def show_details(self, action: ProposedAction) -> None:
        click.echo(json.dumps(action.details, indent=2, default=str), err=True)

    async def _prompt_in_thread(self, text: str) -> str | None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str | None] = loop.create_future()

        def _deliver(value: str | None) -> None:
            if not future.done():
                future.set_result(value)

        def _worker() -> None:
            try:
                value: str | None = click.prompt(text, default="", show_default=False, err=True)
            except click.Abort:
                value = None
            try:
                loop.call_soon_threadsafe(_deliver, value)
            except RuntimeError:
                logger.debug("Event loop closed before the approval answer arrived")

        threading.Thread(target=_worker, name="taoflow-approval-prompt", daemon=True).start()
        return await future
