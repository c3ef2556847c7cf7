"""Stderr event observer for CLI integration."""

import click

from taoflow.domain.events.event import WorkflowEvent


class StderrEventObserver:
    """Emits events as structured lines to stderr."""

    def on_event(self, event: WorkflowEvent) -> None:
        """Emit event as structured line to stderr."""
        parts = [f"[EVENT] {event.event_type.value}"]
        if event.execution_id:
            parts.append(f"execution={event.execution_id}")
        if event.request_id:
            parts.append(f"request={event.request_id}")
        if event.status:
            parts.append(f"status={event.status.name}")
        if event.iteration is not None:
            parts.append(f"iteration={event.iteration}")
        click.echo(" ".join(parts), err=True)
