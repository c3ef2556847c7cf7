from typing import Any

import pytest

from taoflow.application.approval.approval_gate import ApprovalGate
from taoflow.application.approval.audit_log import InMemoryAuditLog
from taoflow.application.config_models import EngineConfig
from taoflow.application.workflow_engine import WorkflowEngine
from taoflow.domain.models.approval import ProposedAction


@pytest.fixture
def config() -> EngineConfig:
    """Fast timings so retention and timeout paths are testable."""
    return EngineConfig(
        approval_timeout_ms=1000,
        iteration_cap=5,
        state_retention_seconds=0.05,
        approval_retention_seconds=0.05,
        details_reshow_delay_seconds=0.0,
    )


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def make_gate(config: EngineConfig, audit_log: InMemoryAuditLog):
    """Build a gate without default rules unless asked for."""

    def _make(presenter: Any = None, **kwargs: Any) -> ApprovalGate:
        kwargs.setdefault("install_default_rules", False)
        kwargs.setdefault("audit_sink", audit_log)
        return ApprovalGate(kwargs.pop("config", config), presenter=presenter, **kwargs)

    return _make


@pytest.fixture
def make_engine(config: EngineConfig, make_gate):
    def _make(presenter: Any = None, **config_updates: Any) -> WorkflowEngine:
        cfg = config.model_copy(update=config_updates)
        gate = make_gate(presenter, config=cfg)
        return WorkflowEngine(approval_gate=gate, config=cfg)

    return _make


@pytest.fixture
def action() -> ProposedAction:
    return ProposedAction(type="deploy", description="Deploy the service", impact="high")
