"""Approval gate: governance rules plus approval request lifecycle."""

from .approval_gate import ApprovalGate
from .audit_log import AuditSink, InMemoryAuditLog
from .governance_rules import default_rules
from .presentation import Presenter

__all__ = ["ApprovalGate", "AuditSink", "InMemoryAuditLog", "Presenter", "default_rules"]
