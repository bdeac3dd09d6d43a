"""Composable attribute conditions for condition-based rules.

A condition-based rule carries a mapping of ``attribute -> expected``.
Each expected value is compiled once, at declaration time, into a
:class:`ConditionMatcher` that decides whether the subject's attribute
value satisfies it. All pairs must pass (AND semantics).

Supported matcher types, selected from the expected value:

- EqualsCondition    : plain value, ``actual == expected``
- PatternCondition   : compiled ``re.Pattern``, ``re.search`` on strings
- RangeCondition     : ``range`` object, ``actual in expected``
- MembershipCondition: list / tuple / set / frozenset, ``actual in expected``
- NestedCondition    : mapping, evaluated against the attribute's own
  attributes

Only nested conditions look inside collection attributes: when the
attribute is a list, tuple or set, a nested condition passes when any
element satisfies it. This lets ``{"tags": {"name": "draft"}}`` match a
subject whose ``tags`` is a list of tag objects. Every other matcher
compares the collection as a whole, so ``{"tags": "draft"}`` does not match ``tags=["draft"]``.

Factory
-------
Use :func:`build_condition` to construct the right matcher for an expected
value, or :class:`AttributeConditions` to compile a whole mapping.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_MISSING = object()

_COLLECTION_TYPES: tuple[type, ...] = (list, tuple, set, frozenset)


def _read_attribute(subject: object, name: str) -> object:
    """Return ``subject.name``, or the mapping entry for plain dict subjects."""
    if isinstance(subject, Mapping):
        return subject.get(name, _MISSING)
    return getattr(subject, name, _MISSING)


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------


class ConditionMatcher(ABC):
    """Abstract base for attribute conditions.

    Subclasses implement :meth:`evaluate` to decide whether a single
    attribute value satisfies the condition.
    """

    @abstractmethod
    def evaluate(self, actual: object) -> bool:
        """Return True if ``actual`` satisfies the condition."""

    @property
    @abstractmethod
    def condition_type(self) -> str:
        """Return the short type identifier for this condition."""

    @property
    def is_plain_attribute(self) -> bool:
        """Whether the expected value can be used as a default attribute."""
        return False

    def matches(self, actual: object) -> bool:
        """Evaluate ``actual``; a missing attribute never matches."""
        if actual is _MISSING:
            return False
        return self.evaluate(actual)


# ---------------------------------------------------------------------------
# Concrete matchers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EqualsCondition(ConditionMatcher):
    """Attribute must equal the expected value.

    Examples
    --------
    ::

        c = EqualsCondition(expected=1)
        assert c.matches(1) is True
        assert c.matches(2) is False
    """

    expected: object

    @property
    def condition_type(self) -> str:
        return "equals"

    @property
    def is_plain_attribute(self) -> bool:
        return True

    def evaluate(self, actual: object) -> bool:
        return actual == self.expected


@dataclass(frozen=True)
class PatternCondition(ConditionMatcher):
    """String attribute must contain a match for a compiled regex.

    Uses ``re.search`` semantics. Non-string attributes never match.
    """

    pattern: re.Pattern[str]

    @property
    def condition_type(self) -> str:
        return "pattern"

    def evaluate(self, actual: object) -> bool:
        return isinstance(actual, str) and bool(self.pattern.search(actual))


@dataclass(frozen=True)
class RangeCondition(ConditionMatcher):
    """Attribute must fall inside a ``range``."""

    bounds: range

    @property
    def condition_type(self) -> str:
        return "range"

    def evaluate(self, actual: object) -> bool:
        try:
            return actual in self.bounds
        except TypeError:
            return False


@dataclass(frozen=True)
class MembershipCondition(ConditionMatcher):
    """Attribute must be one of an enumerable of permitted values."""

    values: tuple[object, ...]

    @property
    def condition_type(self) -> str:
        return "membership"

    def evaluate(self, actual: object) -> bool:
        try:
            return actual in self.values
        except TypeError:
            return False


class NestedCondition(ConditionMatcher):
    """Attribute is an object whose own attributes must satisfy a mapping.

    Examples
    --------
    ::

        c = NestedCondition({"id": 1})
        assert c.matches(SimpleNamespace(id=1)) is True
    """

    def __init__(self, conditions: Mapping[str, object]) -> None:
        self._conditions = AttributeConditions(conditions)

    @property
    def condition_type(self) -> str:
        return "nested"

    def matches(self, actual: object) -> bool:
        """Evaluate ``actual``, testing collection attributes element-wise."""
        if isinstance(actual, _COLLECTION_TYPES):
            return any(self.evaluate(element) for element in actual)
        return super().matches(actual)

    def evaluate(self, actual: object) -> bool:
        return self._conditions.matches(actual)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NestedCondition):
            return NotImplemented
        return self._conditions.raw == other._conditions.raw

    def __repr__(self) -> str:
        return f"NestedCondition({dict(self._conditions.raw)!r})"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_condition(expected: object) -> ConditionMatcher:
    """Build the ConditionMatcher that fits an expected value.

    Parameters
    ----------
    expected:
        The value declared for one attribute in a rule's conditions.

    Returns
    -------
    ConditionMatcher
    """
    match expected:
        case Mapping():
            return NestedCondition(expected)
        case re.Pattern():
            return PatternCondition(pattern=expected)
        case range():
            return RangeCondition(bounds=expected)
        case list() | tuple() | set() | frozenset():
            return MembershipCondition(values=tuple(expected))
        case _:
            return EqualsCondition(expected=expected)


class AttributeConditions:
    """A compiled ``attribute -> expected`` mapping.

    Parameters
    ----------
    raw:
        The conditions exactly as declared. Kept for adapters that translate
        conditions into a data-store query.
    """

    def __init__(self, raw: Mapping[str, object]) -> None:
        self.raw: Mapping[str, object] = dict(raw)
        self._matchers: dict[str, ConditionMatcher] = {
            str(name): build_condition(expected) for name, expected in self.raw.items()
        }

    def __bool__(self) -> bool:
        return bool(self._matchers)

    def __len__(self) -> int:
        return len(self._matchers)

    def __repr__(self) -> str:
        return f"AttributeConditions({dict(self.raw)!r})"

    def matches(self, subject: object) -> bool:
        """Return True if every attribute of ``subject`` satisfies its matcher."""
        for name, matcher in self._matchers.items():
            if not matcher.matches(_read_attribute(subject, name)):
                logger.debug(
                    "Condition %s (%s) failed for %r", name, matcher.condition_type, subject
                )
                return False
        return True

    def attributes(self) -> dict[str, object]:
        """Return the plain-valued pairs usable as default attributes."""
        return {
            name: self.raw[name]
            for name, matcher in self._matchers.items()
            if matcher.is_plain_attribute
        }
