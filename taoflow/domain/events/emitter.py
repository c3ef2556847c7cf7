"""Event emitter shared by the workflow engine and the approval gate."""

import logging
from dataclasses import dataclass

from taoflow.domain.events.event import WorkflowEvent
from taoflow.domain.events.event_types import WorkflowEventType
from taoflow.domain.events.observer import WorkflowObserver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Subscription:
    observer: WorkflowObserver
    event_types: frozenset[WorkflowEventType] | None  # None: every event

    def wants(self, event_type: WorkflowEventType) -> bool:
        return self.event_types is None or event_type in self.event_types


class WorkflowEventEmitter:
    """Dispatches events to observers in subscription order.

    An observer that raises is logged and skipped; the remaining
    observers still receive the event.
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        observer: WorkflowObserver,
        event_types: list[WorkflowEventType] | None = None,
    ) -> None:
        """Subscribe to specific event types, or all events if None."""
        types = frozenset(event_types) if event_types is not None else None
        self._subscriptions.append(_Subscription(observer, types))

    def unsubscribe(self, observer: WorkflowObserver) -> None:
        self._subscriptions = [s for s in self._subscriptions if s.observer is not observer]

    def clear(self) -> None:
        """Drop every subscription."""
        self._subscriptions.clear()

    def emit(self, event: WorkflowEvent) -> None:
        subject = event.execution_id or event.request_id or "-"
        logger.debug(f"Event {event.event_type.value} for {subject}")
        for subscription in list(self._subscriptions):
            if subscription.wants(event.event_type):
                self._deliver(subscription.observer, event)

    def _deliver(self, observer: WorkflowObserver, event: WorkflowEvent) -> None:
        try:
            observer.on_event(event)
        except Exception as e:
            logger.warning(f"Observer {observer!r} failed on {event.event_type.value}: {e}")
