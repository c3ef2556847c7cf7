"""Tests for ApprovalGate request lifecycle."""

import asyncio
import logging
import time
from unittest.mock import Mock

import pytest

from taoflow.domain.events.emitter import WorkflowEventEmitter
from taoflow.domain.events.event_types import WorkflowEventType
from taoflow.domain.models.approval import (
    ApprovalStatus,
    AuditOutcome,
    PresentationDecision,
    ProposedAction,
)
from taoflow.domain.models.governance_rule import GovernanceRule
from tests.fakes import ScriptedPresenter


def _read_rule(**overrides) -> GovernanceRule:
    fields = dict(
        id="read",
        predicate=lambda a: a.type == "read",
        requires_approval=False,
        auto_approve=True,
        priority=100,
    )
    fields.update(overrides)
    return GovernanceRule(**fields)


class TestAutoApproval:
    """Rule-based decisions never create requests."""

    def test_auto_approve_rule_skips_presenter_and_request(self, make_gate, audit_log) -> None:
        presenter = ScriptedPresenter([PresentationDecision.DENY])
        gate = make_gate(presenter)
        gate.add_rule(_read_rule())

        approved = asyncio.run(
            gate.request_approval(ProposedAction(type="read", description="Read a file", impact="low"))
        )

        assert approved is True
        assert presenter.presented == []
        assert gate.list_all() == []
        assert gate.list_pending() == []
        [entry] = audit_log.entries()
        assert entry.outcome == AuditOutcome.AUTO_APPROVED
        assert entry.request_id is None

    def test_auto_deny_rule_denies_without_prompt(self, make_gate, audit_log) -> None:
        presenter = ScriptedPresenter([PresentationDecision.APPROVE])
        gate = make_gate(presenter)
        gate.add_rule(
            GovernanceRule.from_pattern("no-drop", r"drop\s+table", auto_deny=True, priority=200)
        )

        approved = asyncio.run(
            gate.request_approval(ProposedAction(type="sql", description="DROP TABLE users"))
        )

        assert approved is False
        assert presenter.presented == []
        assert audit_log.entries()[0].outcome == AuditOutcome.AUTO_DENIED

    def test_auto_approve_wins_over_auto_deny(self, make_gate) -> None:
        gate = make_gate()
        gate.add_rule(_read_rule(priority=1))
        gate.add_rule(
            GovernanceRule(id="deny-all", predicate=lambda a: True, auto_deny=True, priority=500)
        )

        assert asyncio.run(gate.request_approval(ProposedAction(type="read", description="x"))) is True

    def test_non_auto_rule_match_still_prompts(self, make_gate) -> None:
        presenter = ScriptedPresenter([PresentationDecision.APPROVE])
        gate = make_gate(presenter)
        gate.add_rule(_read_rule(auto_approve=False))

        approved = asyncio.run(gate.request_approval(ProposedAction(type="read", description="x")))

        assert approved is True
        assert len(presenter.presented) == 1


class TestPresenterDecisions:
    def test_approve_resolves_true(self, make_gate, action, audit_log) -> None:
        gate = make_gate(ScriptedPresenter([PresentationDecision.APPROVE]))

        assert asyncio.run(gate.request_approval(action)) is True

        [request] = gate.list_all()
        assert request.status == ApprovalStatus.APPROVED
        assert request.resolved_at is not None
        assert gate.list_pending() == []
        assert [e.outcome for e in audit_log.entries()] == [AuditOutcome.APPROVED]

    def test_deny_resolves_false_exactly_once(self, make_gate, action, audit_log) -> None:
        gate = make_gate(ScriptedPresenter([PresentationDecision.DENY]))

        assert asyncio.run(gate.request_approval(action)) is False

        [request] = gate.list_all()
        assert request.status == ApprovalStatus.DENIED
        assert [e.outcome for e in audit_log.entries()] == [AuditOutcome.DENIED]

    def test_dismissed_is_denial_with_comment(self, make_gate, action) -> None:
        gate = make_gate(ScriptedPresenter([PresentationDecision.DISMISSED]))

        assert asyncio.run(gate.request_approval(action)) is False
        assert gate.list_all()[0].response == "Dismissed"

    def test_view_details_re_presents_without_settling(self, make_gate, action) -> None:
        presenter = ScriptedPresenter(
            [PresentationDecision.VIEW_DETAILS, PresentationDecision.APPROVE]
        )
        gate = make_gate(presenter)

        assert asyncio.run(gate.request_approval(action)) is True
        assert len(presenter.presented) == 2
        assert presenter.details_shown == [action]

    def test_view_details_does_not_reset_timeout(self, make_gate, action) -> None:
        presenter = ScriptedPresenter([PresentationDecision.VIEW_DETAILS] * 1000)
        gate = make_gate(presenter)
        gate.config = gate.config.model_copy(update={"details_reshow_delay_seconds": 0.005})

        approved = asyncio.run(gate.request_approval(action, timeout_ms=60))

        assert approved is False
        assert gate.list_all()[0].status == ApprovalStatus.EXPIRED

    def test_presenter_failure_leaves_request_to_time_out(self, make_gate, action, caplog) -> None:
        class BrokenPresenter(ScriptedPresenter):
            async def present(self, action):
                raise RuntimeError("ui crashed")

        gate = make_gate(BrokenPresenter())

        with caplog.at_level(logging.WARNING):
            approved = asyncio.run(gate.request_approval(action, timeout_ms=30))

        assert approved is False
        assert gate.list_all()[0].status == ApprovalStatus.EXPIRED
        assert "ui crashed" in caplog.text


class TestTimeout:
    def test_unanswered_request_expires(self, make_gate, action, audit_log) -> None:
        gate = make_gate(ScriptedPresenter())

        started = time.monotonic()
        approved = asyncio.run(gate.request_approval(action, timeout_ms=50))
        elapsed = time.monotonic() - started

        assert approved is False
        assert elapsed >= 0.04
        assert gate.list_pending() == []
        assert gate.list_all()[0].status == ApprovalStatus.EXPIRED
        assert [e.outcome for e in audit_log.entries()] == [AuditOutcome.EXPIRED]

    def test_default_timeout_comes_from_config(self, make_gate, config, action) -> None:
        cfg = config.model_copy(update={"approval_timeout_ms": 20})
        gate = make_gate(config=cfg)

        assert asyncio.run(gate.request_approval(action)) is False

    def test_non_positive_timeout_rejected(self, make_gate, action) -> None:
        gate = make_gate()
        with pytest.raises(ValueError):
            asyncio.run(gate.request_approval(action, timeout_ms=0))


class TestExternalResolution:
    """resolve() and cancel() called by callers other than the presenter."""

    def test_resolve_twice_is_idempotent(self, make_gate, action, audit_log) -> None:
        gate = make_gate()

        async def scenario():
            task = asyncio.create_task(gate.request_approval(action))
            await asyncio.sleep(0)
            [request] = gate.list_pending()
            first = gate.resolve(request.id, True, "looks good")
            second = gate.resolve(request.id, False, "changed my mind")
            return request, first, second, await task

        request, first, second, approved = asyncio.run(scenario())

        assert first is True
        assert second is False
        assert approved is True
        assert request.status == ApprovalStatus.APPROVED
        assert request.response == "looks good"
        assert len(audit_log.entries()) == 1

    def test_get_request_tracks_lifecycle(self, make_gate, action) -> None:
        gate = make_gate()

        async def scenario():
            task = asyncio.create_task(gate.request_approval(action))
            await asyncio.sleep(0)
            [request] = gate.list_pending()
            pending_status = gate.get_request(request.id).status
            gate.resolve(request.id, False, "not now")
            await task
            return request.id, pending_status

        request_id, pending_status = asyncio.run(scenario())

        assert pending_status == ApprovalStatus.PENDING
        settled = gate.get_request(request_id)
        assert settled.status == ApprovalStatus.DENIED
        assert settled.response == "not now"
        assert gate.get_request("missing") is None

    def test_resolve_unknown_id_returns_false(self, make_gate) -> None:
        assert make_gate().resolve("missing", True) is False

    def test_cancel_denies_pending_request(self, make_gate, action, audit_log) -> None:
        gate = make_gate()

        async def scenario():
            task = asyncio.create_task(gate.request_approval(action))
            await asyncio.sleep(0)
            [request] = gate.list_pending()
            cancelled = gate.cancel(request.id)
            again = gate.cancel(request.id)
            return request, cancelled, again, await task

        request, cancelled, again, approved = asyncio.run(scenario())

        assert (cancelled, again, approved) == (True, False, False)
        assert request.status == ApprovalStatus.DENIED
        assert request.response == "Cancelled"
        assert audit_log.entries()[0].outcome == AuditOutcome.CANCELLED

    def test_cancelled_waiter_settles_request(self, make_gate, action) -> None:
        gate = make_gate()

        async def scenario():
            task = asyncio.create_task(gate.request_approval(action))
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert gate.list_pending() == []
        assert gate.list_all()[0].status == ApprovalStatus.DENIED

    def test_late_timer_after_resolve_is_noop(self, make_gate, action) -> None:
        gate = make_gate()

        async def scenario():
            task = asyncio.create_task(gate.request_approval(action, timeout_ms=20))
            await asyncio.sleep(0)
            gate.resolve(gate.list_pending()[0].id, True)
            result = await task
            await asyncio.sleep(0.04)
            return result

        assert asyncio.run(scenario()) is True
        assert gate.list_all()[0].status == ApprovalStatus.APPROVED


class TestRetentionAndDispose:
    def test_settled_request_evicted_after_retention(self, make_gate, action) -> None:
        gate = make_gate(ScriptedPresenter([PresentationDecision.APPROVE]))

        async def scenario():
            await gate.request_approval(action)
            retained = len(gate.list_all())
            await asyncio.sleep(0.1)
            return retained, len(gate.list_all())

        assert asyncio.run(scenario()) == (1, 0)

    def test_dispose_denies_pending_and_clears(self, make_gate, action, audit_log) -> None:
        gate = make_gate(ScriptedPresenter())

        async def scenario():
            tasks = [asyncio.create_task(gate.request_approval(action)) for _ in range(2)]
            await asyncio.sleep(0)
            assert len(gate.list_pending()) == 2
            gate.dispose()
            return await asyncio.gather(*tasks)

        assert asyncio.run(scenario()) == [False, False]
        assert gate.list_pending() == []
        assert gate.list_all() == []
        assert {e.comment for e in audit_log.entries()} == {"Disposed"}

    def test_dispose_keeps_rules(self, make_gate) -> None:
        gate = make_gate()
        gate.add_rule(_read_rule())
        gate.dispose()
        assert [r.id for r in gate.list_rules()] == ["read"]


class TestStatsAuditAndEvents:
    def test_stats_counts_by_status(self, make_gate, action) -> None:
        gate = make_gate()

        async def scenario():
            tasks = [asyncio.create_task(gate.request_approval(action)) for _ in range(3)]
            await asyncio.sleep(0)
            first, second, _third = gate.list_pending()
            gate.resolve(first.id, True)
            gate.resolve(second.id, False)
            stats = gate.stats()
            gate.dispose()
            await asyncio.gather(*tasks)
            return stats

        stats = asyncio.run(scenario())

        assert (stats.total, stats.approved, stats.denied, stats.pending, stats.expired) == (3, 1, 1, 1, 0)

    def test_audit_sink_failure_is_logged_not_raised(self, make_gate, action, caplog) -> None:
        sink = Mock()
        sink.record.side_effect = OSError("disk full")
        gate = make_gate(ScriptedPresenter([PresentationDecision.APPROVE]), audit_sink=sink)

        with caplog.at_level(logging.WARNING):
            assert asyncio.run(gate.request_approval(action)) is True
        assert "disk full" in caplog.text
        sink.record.assert_called_once()

    def test_emits_required_and_granted_events(self, make_gate, action) -> None:
        seen = []

        class Recorder:
            def on_event(self, event):
                seen.append(event.event_type)

        emitter = WorkflowEventEmitter()
        emitter.subscribe(Recorder())
        gate = make_gate(ScriptedPresenter([PresentationDecision.APPROVE]), event_emitter=emitter)

        asyncio.run(gate.request_approval(action))

        assert seen == [WorkflowEventType.APPROVAL_REQUIRED, WorkflowEventType.APPROVAL_GRANTED]
