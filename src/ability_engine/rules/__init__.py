"""Rule declarations and attribute conditions.

Example
-------
::

    from ability_engine.rules import Rule

    rule = Rule.declare(True, "update", Article, {"owner_id": 1})
"""
from __future__ import annotations

from ability_engine.rules.conditions import (
    AttributeConditions,
    ConditionMatcher,
    EqualsCondition,
    MembershipCondition,
    NestedCondition,
    PatternCondition,
    RangeCondition,
    build_condition,
)
from ability_engine.rules.rule import ALL, MANAGE, RawQuery, Rule

__all__ = [
    # Core types
    "ALL",
    "MANAGE",
    "RawQuery",
    "Rule",
    # Condition matchers
    "AttributeConditions",
    "ConditionMatcher",
    "EqualsCondition",
    "MembershipCondition",
    "NestedCondition",
    "PatternCondition",
    "RangeCondition",
    "build_condition",
]
