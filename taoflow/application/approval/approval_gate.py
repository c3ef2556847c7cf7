"""ApprovalGate - governance rule evaluation and approval request lifecycle.

Rules are evaluated first: a matching auto-approve rule settles the
request immediately, then a matching auto-deny rule does. Everything else
becomes a pending ApprovalRequest that is settled by the first of:

- resolve()   explicit decision (from the presenter or any other caller)
- timer       approval timeout, status EXPIRED
- cancel()    explicit cancellation, status DENIED
- dispose()   shutdown, status DENIED

Single resolution: each path pops the request's handler from the handler
table; whoever gets it settles the future, everyone else no-ops.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from taoflow.application.approval.audit_log import AuditSink
from taoflow.application.approval.governance_rules import default_rules
from taoflow.application.approval.presentation import Presenter
from taoflow.application.config_models import EngineConfig
from taoflow.domain.events.emitter import WorkflowEventEmitter
from taoflow.domain.events.event import WorkflowEvent
from taoflow.domain.events.event_types import WorkflowEventType
from taoflow.domain.models.approval import (
    ApprovalRequest,
    ApprovalStats,
    ApprovalStatus,
    AuditEntry,
    AuditOutcome,
    PresentationDecision,
    ProposedAction,
)
from taoflow.domain.models.governance_rule import GovernanceRule

logger = logging.getLogger(__name__)


@dataclass
class _PendingHandler:
    """Decision future plus the timer racing it."""

    future: "asyncio.Future[bool]"
    timer: asyncio.TimerHandle
    loop: asyncio.AbstractEventLoop


_OUTCOME_EVENTS: dict[AuditOutcome, WorkflowEventType] = {
    AuditOutcome.AUTO_APPROVED: WorkflowEventType.APPROVAL_GRANTED,
    AuditOutcome.APPROVED: WorkflowEventType.APPROVAL_GRANTED,
    AuditOutcome.AUTO_DENIED: WorkflowEventType.APPROVAL_DENIED,
    AuditOutcome.DENIED: WorkflowEventType.APPROVAL_DENIED,
    AuditOutcome.CANCELLED: WorkflowEventType.APPROVAL_DENIED,
    AuditOutcome.EXPIRED: WorkflowEventType.APPROVAL_EXPIRED,
}


class ApprovalGate:
    """Human-in-the-loop approval gate.

    All methods must be called from the thread running the event loop.
    From other threads, hand calls over with loop.call_soon_threadsafe().
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        presenter: Presenter | None = None,
        audit_sink: AuditSink | None = None,
        event_emitter: WorkflowEventEmitter | None = None,
        install_default_rules: bool = True,
    ) -> None:
        self.config = config or EngineConfig()
        self.presenter = presenter
        self.audit_sink = audit_sink
        self.event_emitter = event_emitter or WorkflowEventEmitter()

        self._rules: list[GovernanceRule] = []
        self._pending: dict[str, ApprovalRequest] = {}
        self._all: dict[str, ApprovalRequest] = {}
        self._handlers: dict[str, _PendingHandler] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}
        self._presentations: dict[str, asyncio.Task[None]] = {}

        if install_default_rules:
            for rule in default_rules(auto_approve_read_only=self.config.auto_approve_read_only):
                self.add_rule(rule)
            logger.info("Default governance rules set up")

    # ========================================================================
    # Governance rules
    # ========================================================================

    def add_rule(self, rule: GovernanceRule) -> None:
        """Add a rule, replacing any rule with the same id."""
        self._rules = [r for r in self._rules if r.id != rule.id]
        self._rules.append(rule)
        self._rules.sort(key=lambda r: r.priority, reverse=True)
        logger.debug(f"Governance rule added: {rule.id}")

    def remove_rule(self, rule_id: str) -> bool:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                del self._rules[index]
                logger.debug(f"Governance rule removed: {rule_id}")
                return True
        return False

    def list_rules(self) -> list[GovernanceRule]:
        """Rules in descending priority order."""
        return list(self._rules)

    def find_auto_approve_rule(self, action: ProposedAction) -> GovernanceRule | None:
        for rule in self._rules:
            if rule.auto_approve and rule.matches(action):
                return rule
        return None

    def find_auto_deny_rule(self, action: ProposedAction) -> GovernanceRule | None:
        for rule in self._rules:
            if rule.auto_deny and rule.matches(action):
                return rule
        return None

    # ========================================================================
    # Approval requests
    # ========================================================================

    async def request_approval(
        self,
        action: ProposedAction,
        timeout_ms: int | None = None,
    ) -> bool:
        """Request approval for a proposed action.

        Args:
            action: The action to approve
            timeout_ms: Time to wait for a decision (default: config value)

        Returns:
            True if approved; False if denied, expired, cancelled or disposed
        """
        rule = self.find_auto_approve_rule(action)
        if rule is not None:
            logger.info(f"Action auto-approved: {action.type} (rule {rule.id})")
            self._report(action, AuditOutcome.AUTO_APPROVED, comment=f"rule:{rule.id}")
            return True

        rule = self.find_auto_deny_rule(action)
        if rule is not None:
            logger.info(f"Action auto-denied: {action.type} (rule {rule.id})")
            self._report(action, AuditOutcome.AUTO_DENIED, comment=f"rule:{rule.id}")
            return False

        if timeout_ms is None:
            timeout_ms = self.config.approval_timeout_ms
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        loop = asyncio.get_running_loop()
        request = ApprovalRequest(action=action)
        future: asyncio.Future[bool] = loop.create_future()
        timer = loop.call_later(timeout_ms / 1000, self._expire, request.id)

        self._handlers[request.id] = _PendingHandler(future=future, timer=timer, loop=loop)
        self._pending[request.id] = request
        self._all[request.id] = request

        logger.info(f"Approval requested: {request.id} ({action.type}, timeout {timeout_ms}ms)")
        self._emit(
            WorkflowEventType.APPROVAL_REQUIRED,
            request.id,
            {"action_type": action.type, "impact": action.impact.value},
        )
        self._start_presentation(request)

        try:
            return await future
        except asyncio.CancelledError:
            # Waiter went away; settle so the timer and tables are cleaned up.
            self._settle(request.id, ApprovalStatus.DENIED, AuditOutcome.CANCELLED, "Cancelled")
            raise

    def resolve(self, request_id: str, approved: bool, comment: str | None = None) -> bool:
        """Deliver an external decision.

        Returns:
            True if this call settled the request; False if the id is unknown
            or the request was already settled.
        """
        if approved:
            settled = self._settle(request_id, ApprovalStatus.APPROVED, AuditOutcome.APPROVED, comment)
        else:
            settled = self._settle(request_id, ApprovalStatus.DENIED, AuditOutcome.DENIED, comment)

        if not settled:
            logger.warning(f"Approval request not found or already settled: {request_id}")
            return False

        request = self._all.get(request_id)
        description = request.action.description if request else request_id
        logger.info(f"Approval {'granted' if approved else 'denied'} for: {description}")
        return True

    def cancel(self, request_id: str) -> bool:
        """Cancel a pending request; it resolves False."""
        return self._settle(request_id, ApprovalStatus.DENIED, AuditOutcome.CANCELLED, "Cancelled")

    def get_request(self, request_id: str) -> ApprovalRequest | None:
        return self._all.get(request_id)

    def list_pending(self) -> list[ApprovalRequest]:
        return list(self._pending.values())

    def list_all(self) -> list[ApprovalRequest]:
        """Pending requests plus settled ones still inside the retention window."""
        return list(self._all.values())

    def stats(self) -> ApprovalStats:
        requests = self._all.values()
        return ApprovalStats(
            total=len(requests),
            approved=sum(1 for r in requests if r.status == ApprovalStatus.APPROVED),
            denied=sum(1 for r in requests if r.status == ApprovalStatus.DENIED),
            pending=sum(1 for r in requests if r.status == ApprovalStatus.PENDING),
            expired=sum(1 for r in requests if r.status == ApprovalStatus.EXPIRED),
        )

    def dispose(self) -> None:
        """Deny every pending request and clear all request state.

        Governance rules are kept.
        """
        for request_id in list(self._handlers):
            self._settle(
                request_id,
                ApprovalStatus.DENIED,
                AuditOutcome.DENIED,
                "Disposed",
                retain=False,
            )

        for handle in self._evictions.values():
            handle.cancel()
        for task in self._presentations.values():
            task.cancel()

        self._evictions.clear()
        self._presentations.clear()
        self._pending.clear()
        self._all.clear()
        logger.info("ApprovalGate disposed")

    # ========================================================================
    # Internal
    # ========================================================================

    def _settle(
        self,
        request_id: str,
        status: ApprovalStatus,
        outcome: AuditOutcome,
        comment: str | None,
        *,
        retain: bool = True,
    ) -> bool:
        handler = self._handlers.pop(request_id, None)
        if handler is None:
            return False

        handler.timer.cancel()
        request = self._pending.pop(request_id)
        request.status = status
        request.response = comment
        request.resolved_at = datetime.now(timezone.utc)

        task = self._presentations.pop(request_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        if retain:
            self._schedule_eviction(request_id, handler.loop)
        else:
            self._all.pop(request_id, None)

        self._report(request.action, outcome, request_id=request_id, comment=comment)

        if not handler.future.done():
            handler.future.set_result(status == ApprovalStatus.APPROVED)
        return True

    def _expire(self, request_id: str) -> None:
        if self._settle(request_id, ApprovalStatus.EXPIRED, AuditOutcome.EXPIRED, None):
            logger.warning(f"Approval request timed out: {request_id}")

    def _schedule_eviction(self, request_id: str, loop: asyncio.AbstractEventLoop) -> None:
        self._evictions[request_id] = loop.call_later(
            self.config.approval_retention_seconds, self._evict, request_id
        )

    def _evict(self, request_id: str) -> None:
        self._evictions.pop(request_id, None)
        self._all.pop(request_id, None)

    def _start_presentation(self, request: ApprovalRequest) -> None:
        if self.presenter is None:
            logger.debug(f"No presenter configured; {request.id} awaits an external decision")
            return
        task = asyncio.get_running_loop().create_task(self._present(request))
        self._presentations[request.id] = task
        task.add_done_callback(lambda _t: self._presentations.pop(request.id, None))

    async def _present(self, request: ApprovalRequest) -> None:
        """Show the prompt until a settling decision or settlement elsewhere."""
        assert self.presenter is not None
        action = request.action

        while request.id in self._handlers:
            try:
                decision = await self.presenter.present(action)
            except Exception as e:
                logger.warning(f"Presenter failed for approval {request.id}: {e}")
                return

            if request.id not in self._handlers:
                return

            if decision == PresentationDecision.VIEW_DETAILS:
                try:
                    await self.presenter.show_details(action)
                except Exception as e:
                    logger.warning(f"Presenter could not show details for {request.id}: {e}")
                # The timeout keeps running while details are viewed.
                await asyncio.sleep(self.config.details_reshow_delay_seconds)
                continue

            if decision == PresentationDecision.APPROVE:
                self.resolve(request.id, True)
            elif decision == PresentationDecision.DENY:
                self.resolve(request.id, False)
            else:
                self.resolve(request.id, False, "Dismissed")
            return

    def _report(
        self,
        action: ProposedAction,
        outcome: AuditOutcome,
        *,
        request_id: str | None = None,
        comment: str | None = None,
    ) -> None:
        self._emit(
            _OUTCOME_EVENTS[outcome],
            request_id,
            {"action_type": action.type, "outcome": outcome.value},
        )
        if self.audit_sink is None:
            return
        try:
            self.audit_sink.record(
                AuditEntry(request_id=request_id, action=action, outcome=outcome, comment=comment)
            )
        except Exception as e:
            logger.warning(f"Audit sink failed to record {outcome.value} decision: {e}")

    def _emit(
        self,
        event_type: WorkflowEventType,
        request_id: str | None,
        metadata: dict[str, str],
    ) -> None:
        self.event_emitter.emit(
            WorkflowEvent(event_type=event_type, request_id=request_id, metadata=metadata)
        )
