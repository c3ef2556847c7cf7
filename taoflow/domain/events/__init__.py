"""Workflow event system for observer pattern notifications."""

from taoflow.domain.events.event_types import WorkflowEventType
from taoflow.domain.events.event import WorkflowEvent
from taoflow.domain.events.observer import WorkflowObserver
from taoflow.domain.events.emitter import WorkflowEventEmitter
from taoflow.domain.events.stderr_observer import StderrEventObserver

__all__ = [
    "WorkflowEventType",
    "WorkflowEvent",
    "WorkflowObserver",
    "WorkflowEventEmitter",
    "StderrEventObserver",
]
