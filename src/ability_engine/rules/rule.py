"""Rule declarations for the ability engine.

A :class:`Rule` is one ``grant`` or ``deny`` declaration. It scopes a set
of actions and a set of subjects and is either

- unconditional,
- condition-based (a mapping of attribute constraints, or a
  :class:`RawQuery` fragment reserved for query adapters), or
- predicate-based (a callable block),

but never condition-based and predicate-based at once. Rules are immutable
after declaration.

Example
-------
::

    rule = Rule.declare(True, "update", Article, {"owner_id": 1})
    rule.matches_conditions("update", Article(owner_id=1), ())  # True
    rule.matches_conditions("update", Article, ())              # True, class-level
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from ability_engine.errors import ConfigurationError
from ability_engine.rules.conditions import AttributeConditions

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Wildcards
# ---------------------------------------------------------------------------

MANAGE: str = "manage"
"""Action wildcard: a rule for ``manage`` covers every action."""

ALL: str = "all"
"""Subject wildcard: a rule for ``all`` covers every subject."""

Block = Callable[..., object]


@dataclass(frozen=True)
class RawQuery:
    """A data-store query fragment usable only by query adapters.

    Rules carrying a raw query cannot be evaluated against an instance, so
    a boolean check that reaches one fails with ConfigurationError.

    Attributes
    ----------
    clause:
        The native query text, e.g. ``"published_at IS NOT NULL"``.
    params:
        Positional parameters bound into ``clause`` by the adapter.
    """

    clause: str
    params: tuple[object, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.clause)


def _as_tuple(value: object) -> tuple[object, ...]:
    """Normalise a single value or an iterable of values into a unique tuple."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple, set, frozenset)):
        items: Iterable[object] = value
    else:
        items = (value,)
    unique: list[object] = []
    for item in items:
        if item not in unique:
            unique.append(item)
    return tuple(unique)


def is_hashable(value: object) -> bool:
    """Whether ``value`` can be used as a rule-index key."""
    try:
        hash(value)
    except TypeError:
        return False
    return True


def subject_name(subject: object) -> str:
    """Return the display name of a declared subject."""
    if isinstance(subject, type):
        return subject.__name__
    return str(subject)


@dataclass(frozen=True, eq=False)
class Rule:
    """A single grant/deny declaration.

    Rules compare by identity: two declarations with identical content are
    still two rules.

    Attributes
    ----------
    polarity:
        ``True`` for a grant, ``False`` for a deny.
    actions:
        Declared actions, possibly containing :data:`MANAGE`.
    subjects:
        Declared subjects (classes, string tags or hashable instances),
        possibly containing :data:`ALL`. Empty only for a match-all rule.
    conditions:
        Attribute constraints, a :class:`RawQuery`, or ``None``.
    block:
        Predicate called as ``block(subject, *extra_args)``. Match-all rules
        call it as ``block(action, subject_type, subject, *extra_args)``.
    """

    polarity: bool
    actions: tuple[str, ...] = ()
    subjects: tuple[object, ...] = ()
    conditions: Mapping[str, object] | RawQuery | None = None
    block: Block | None = None
    _compiled: AttributeConditions | None = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.conditions is not None and not isinstance(
            self.conditions, (Mapping, RawQuery)
        ):
            raise ConfigurationError(
                f"Rule conditions must be a mapping or a RawQuery; got {self.conditions!r}."
            )
        if self.block is not None and not self.conditions_empty:
            raise ConfigurationError(
                f"Rule for {list(self.actions)!r} on {self.subject_names()!r} declares both "
                "conditions and a block; use one or the other."
            )
        if bool(self.actions) != bool(self.subjects):
            raise ConfigurationError(
                "A rule must declare both actions and subjects, or neither "
                "(with a block) to match everything."
            )
        if self.match_all and self.block is None:
            raise ConfigurationError(
                "A rule without actions and subjects must be declared with a block."
            )
        for subject in self.subjects:
            if not is_hashable(subject):
                raise ConfigurationError(
                    f"Rule subject {subject!r} is not hashable; declare a class, a string tag "
                    "or a hashable instance."
                )
        if isinstance(self.conditions, Mapping):
            object.__setattr__(self, "_compiled", AttributeConditions(self.conditions))

    @classmethod
    def declare(
        cls,
        polarity: bool,
        actions: object = None,
        subjects: object = None,
        conditions: Mapping[str, object] | RawQuery | None = None,
        block: Block | None = None,
    ) -> Rule:
        """Build a Rule, accepting a single value or a list for actions/subjects."""
        return cls(
            polarity=polarity,
            actions=tuple(str(action) for action in _as_tuple(actions)),
            subjects=_as_tuple(subjects),
            conditions=dict(conditions) if isinstance(conditions, Mapping) else conditions,
            block=block,
        )

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, object],
        subject_types: Mapping[str, type] | None = None,
    ) -> Rule:
        """Build a Rule from a plain dictionary.

        Parameters
        ----------
        data:
            Dictionary with keys ``behavior`` (``"grant"`` or ``"deny"``),
            ``actions``, ``subjects``, and optionally ``conditions`` or
            ``raw_query``.
        subject_types:
            Maps subject names to classes. Unmapped names stay string tags.

        Raises
        ------
        ConfigurationError
            If ``behavior`` is missing or unknown, if both ``conditions`` and
            ``raw_query`` are given, or if ``params`` come without a
            ``raw_query``.
        """
        behavior = str(data.get("behavior", "")).lower()
        if behavior not in ("grant", "deny"):
            raise ConfigurationError(
                f"Rule behavior must be 'grant' or 'deny'; got {data.get('behavior')!r}."
            )
        types = subject_types or {}
        subjects = [types.get(str(name), name) for name in _as_tuple(data.get("subjects"))]

        conditions: Mapping[str, object] | RawQuery | None = None
        raw_query = data.get("raw_query")
        if raw_query and data.get("conditions"):
            raise ConfigurationError(
                "A rule cannot declare both conditions and raw_query; use one or the other."
            )
        if data.get("params") and not raw_query:
            raise ConfigurationError("Rule params can only be used together with raw_query.")
        if raw_query:
            conditions = RawQuery(clause=str(raw_query), params=tuple(data.get("params", ())))  # type: ignore[arg-type]
        elif data.get("conditions"):
            conditions = dict(data["conditions"])  # type: ignore[call-overload]

        return cls.declare(
            behavior == "grant",
            data.get("actions"),
            subjects,
            conditions,
        )

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def match_all(self) -> bool:
        """True for a rule declared with neither actions nor subjects."""
        return not self.actions and not self.subjects

    @property
    def conditions_empty(self) -> bool:
        return not self.conditions

    @property
    def only_block(self) -> bool:
        """True when the rule can only be decided by calling its block."""
        return self.block is not None and self.conditions_empty

    @property
    def only_raw_query(self) -> bool:
        """True when the rule can only be decided by a data-store query."""
        return self.block is None and isinstance(self.conditions, RawQuery) and bool(
            self.conditions
        )

    @property
    def is_wildcard_subject(self) -> bool:
        return self.subjects == (ALL,)

    def subject_names(self) -> list[str]:
        return [subject_name(subject) for subject in self.subjects]

    # ------------------------------------------------------------------
    # Relevance
    # ------------------------------------------------------------------

    def matches_action(self, action: str, expanded_actions: tuple[str, ...]) -> bool:
        return MANAGE in expanded_actions or action in expanded_actions

    def matches_subject(self, identities: Iterable[object]) -> bool:
        if ALL in self.subjects:
            return True
        return any(identity in self.subjects for identity in identities)

    def is_relevant(
        self,
        action: str,
        expanded_actions: tuple[str, ...],
        identities: Iterable[object],
    ) -> bool:
        """Whether this rule applies to the action and subject, ignoring conditions."""
        if self.match_all:
            return True
        return self.matches_action(action, expanded_actions) and self.matches_subject(
            identities
        )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def matches_conditions(
        self,
        action: str,
        subject: object,
        extra_args: tuple[object, ...],
    ) -> bool:
        """Evaluate the rule's predicate against a concrete subject.

        Class subjects skip conditions and blocks: the rule matches
        unconditionally. Exceptions raised by the block propagate.
        """
        is_class = isinstance(subject, type)
        if self.match_all:
            subject_type = subject if is_class else type(subject)
            instance = None if is_class else subject
            return bool(self.block(action, subject_type, instance, *extra_args))  # type: ignore[misc]
        if is_class:
            return True
        if self.block is not None:
            return bool(self.block(subject, *extra_args))
        if self._compiled is not None:
            return self._compiled.matches(subject)
        return self.conditions_empty or self.polarity

    def attributes_from_conditions(self) -> dict[str, object]:
        """Return the plain-valued condition pairs, for building new records."""
        if self._compiled is None:
            return {}
        return self._compiled.attributes()

    def __repr__(self) -> str:
        kind = "grant" if self.polarity else "deny"
        parts = [f"{kind} {list(self.actions)!r} on {self.subject_names()!r}"]
        if not self.conditions_empty:
            parts.append(f"conditions={self.conditions!r}")
        if self.block is not None:
            parts.append("block")
        return f"Rule({', '.join(parts)})"
