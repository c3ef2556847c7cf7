"""Tests for GovernanceRule construction and matching."""

import pytest
from pydantic import ValidationError

from taoflow.domain.models.approval import Impact, ProposedAction
from taoflow.domain.models.governance_rule import GovernanceRule


def test_predicate_rule_matches() -> None:
    rule = GovernanceRule(id="high", predicate=lambda a: a.impact == Impact.HIGH)

    assert rule.matches(ProposedAction(type="t", description="d", impact="high"))
    assert not rule.matches(ProposedAction(type="t", description="d"))


def test_auto_flags_are_exclusive() -> None:
    with pytest.raises(ValidationError):
        GovernanceRule(id="r", predicate=lambda a: True, auto_approve=True, auto_deny=True)


def test_defaults() -> None:
    rule = GovernanceRule(id="r", predicate=lambda a: True)
    assert rule.requires_approval is True
    assert rule.auto_approve is False
    assert rule.auto_deny is False
    assert rule.priority == 0


class TestFromPattern:
    @pytest.mark.parametrize(
        "type_,description,expected",
        [
            ("file_write", "anything", True),
            ("other", "Write the report", True),
            ("other", "WRITE", True),
            ("other", "read the report", False),
        ],
    )
    def test_searches_type_and_description(self, type_: str, description: str, expected: bool) -> None:
        rule = GovernanceRule.from_pattern("w", "write")
        assert rule.matches(ProposedAction(type=type_, description=description)) is expected

    def test_description_and_flags(self) -> None:
        rule = GovernanceRule.from_pattern("r", r"read|list", auto_approve=True, priority=7)

        assert rule.description == "/read|list/i"
        assert rule.auto_approve is True
        assert rule.priority == 7

    def test_rule_is_frozen(self) -> None:
        rule = GovernanceRule.from_pattern("r", "read")
        with pytest.raises(ValidationError):
            rule.priority = 5
