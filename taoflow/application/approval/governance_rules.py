"""Built-in governance rules."""

from taoflow.domain.models.governance_rule import GovernanceRule

FILE_SYSTEM_WRITE_RULE_ID = "file-system-write"
READ_ONLY_RULE_ID = "read-only"
HIGH_IMPACT_RULE_ID = "high-impact"


def default_rules(*, auto_approve_read_only: bool = True) -> list[GovernanceRule]:
    """Return the default rule set, highest priority first."""
    return [
        GovernanceRule.from_pattern(
            FILE_SYSTEM_WRITE_RULE_ID,
            r"write|delete|modify|remove|create",
            requires_approval=True,
            priority=100,
        ),
        GovernanceRule.from_pattern(
            READ_ONLY_RULE_ID,
            r"read|list|get|fetch|search",
            requires_approval=False,
            auto_approve=auto_approve_read_only,
            priority=50,
        ),
        # Catch-all
        GovernanceRule(
            id=HIGH_IMPACT_RULE_ID,
            predicate=lambda action: True,
            requires_approval=True,
            priority=10,
            description="matches every action",
        ),
    ]
