"""The Ability facade: declare rules, then check them.

An :class:`Ability` is built once per actor (typically per request), during
a setup phase that declares aliases and rules. Checks run afterwards.

Example
-------
::

    ability = Ability()
    if user.admin:
        ability.grant(MANAGE, ALL)
    else:
        ability.grant("read", ALL)
        ability.grant("update", Article, owner_id=user.id)
        ability.deny("read", Draft)

    ability.allowed("show", article)           # "show" is an alias of "read"
    ability.authorize("update", article)       # raises AccessDenied if not allowed
    ability.attributes_for("create", Article)  # default attributes for a new record

Declare every alias before the first check: alias expansion is memoized
per ability and dropped on alias changes, but rule lookups already in
progress are not repaired. An ability is not thread-safe; serialize
declarations if one is shared.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TypeVar

from ability_engine.actions.aliases import ActionAliasGraph
from ability_engine.errors import AccessDenied, ConfigurationError
from ability_engine.export.exporter import PermissionExporter, PermissionSummary
from ability_engine.export.messages import MessageResolver, message_keys, message_variables
from ability_engine.matching.evaluator import MatchEvaluator
from ability_engine.matching.index import RuleIndex
from ability_engine.rules.rule import Block, RawQuery, Rule
from ability_engine.subjects.resolver import SubjectResolver

logger = logging.getLogger(__name__)

SubjectT = TypeVar("SubjectT")


class Ability:
    """Owns the rule list, alias graph and rule index of one actor.

    Parameters
    ----------
    with_default_aliases:
        Seed the alias graph with ``index``/``show`` -> ``read``,
        ``new`` -> ``create`` and ``edit`` -> ``update``. Default True.
    message_resolver:
        Optional callable ``(keys, variables) -> str | None`` used by
        :meth:`unauthorized_message` to turn message keys into text.
    subject_resolver:
        Optional pre-configured :class:`SubjectResolver`.
    """

    def __init__(
        self,
        with_default_aliases: bool = True,
        message_resolver: MessageResolver | None = None,
        subject_resolver: SubjectResolver | None = None,
    ) -> None:
        self._rules: list[Rule] = []
        self._index = RuleIndex()
        self._aliases = ActionAliasGraph(with_defaults=with_default_aliases)
        self._subjects = subject_resolver or SubjectResolver()
        self._message_resolver = message_resolver
        self._evaluator = MatchEvaluator(self._rules, self._index, self._aliases, self._subjects)
        self._exporter = PermissionExporter(self._rules, self._aliases)

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def grant(
        self,
        actions: object = None,
        subjects: object = None,
        conditions: Mapping[str, object] | RawQuery | None = None,
        block: Block | None = None,
        **attribute_conditions: object,
    ) -> Rule:
        """Declare that ``actions`` are allowed on ``subjects``.

        ``actions`` and ``subjects`` accept a single value or a list. Use
        :data:`MANAGE` for any action and :data:`ALL` for any subject.
        Conditions can be passed as a mapping or as keyword arguments::

            ability.grant("update", Article, owner_id=user.id)
            ability.grant("update", Article, block=lambda a: a.editable_by(user))

        With neither actions nor subjects, ``block`` is called for every
        check as ``block(action, subject_type, subject, *extra_args)``.

        Raises
        ------
        ConfigurationError
            If both conditions and a block are given.
        """
        return self._declare(True, actions, subjects, conditions, block, attribute_conditions)

    def deny(
        self,
        actions: object = None,
        subjects: object = None,
        conditions: Mapping[str, object] | RawQuery | None = None,
        block: Block | None = None,
        **attribute_conditions: object,
    ) -> Rule:
        """Declare that ``actions`` are forbidden on ``subjects``. See :meth:`grant`."""
        return self._declare(False, actions, subjects, conditions, block, attribute_conditions)

    def _declare(
        self,
        polarity: bool,
        actions: object,
        subjects: object,
        conditions: Mapping[str, object] | RawQuery | None,
        block: Block | None,
        attribute_conditions: dict[str, object],
    ) -> Rule:
        if attribute_conditions:
            if isinstance(conditions, RawQuery):
                raise ConfigurationError(
                    "Keyword conditions cannot be combined with a RawQuery."
                )
            conditions = {**(conditions or {}), **attribute_conditions}
        return self.add_rule(Rule.declare(polarity, actions, subjects, conditions, block))

    def add_rule(self, rule: Rule) -> Rule:
        """Append an already-built rule and index it. Returns the rule."""
        self._rules.append(rule)
        self._index.record(rule, len(self._rules) - 1)
        return rule

    def merge(self, other: Ability) -> Ability:
        """Append every rule of ``other`` after this ability's own rules.

        Merged rules count as more recent than existing ones. Returns self.
        """
        for rule in list(other.rules):
            self.add_rule(rule)
        logger.debug("Merged %d rules; %d rules total", len(other.rules), len(self._rules))
        return self

    def clear(self) -> None:
        """Remove every declared rule. Aliases are kept."""
        self._rules.clear()
        self._index.clear()

    @property
    def rules(self) -> tuple[Rule, ...]:
        """Declared rules, in declaration order."""
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    # ------------------------------------------------------------------
    # Aliases and subjects
    # ------------------------------------------------------------------

    def declare_alias(self, *sources: str, target: str) -> None:
        """Make ``target`` stand for each of ``sources``.

        ::

            ability.declare_alias("update", "destroy", target="modify")
            ability.grant("modify", Comment)
            ability.allowed("destroy", Comment)  # True

        Raises
        ------
        ConfigurationError
            If ``target`` is already used as an aliased action.
        """
        self._aliases.declare(*sources, target=target)

    def clear_aliases(self) -> None:
        """Remove every alias, including the defaults."""
        self._aliases.clear()

    @property
    def aliased_actions(self) -> dict[str, list[str]]:
        return self._aliases.aliases

    @property
    def alias_graph(self) -> ActionAliasGraph:
        return self._aliases

    @property
    def rule_index(self) -> RuleIndex:
        return self._index

    def register_subject(self, subject_type: type, ancestors: tuple[type, ...] = ()) -> None:
        """Declare the ancestry chain used to look up rules for ``subject_type``."""
        self._subjects.register(subject_type, ancestors)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def governing_rule(self, action: str, subject: object, *extra_args: object) -> Rule | None:
        """Return the rule that decides ``(action, subject)``, or None."""
        return self._evaluator.governing_rule(action, subject, extra_args)

    def allowed(self, action: str, subject: object, *extra_args: object) -> bool:
        """Return True if ``action`` may be performed on ``subject``.

        ``subject`` may be an instance, a class, a string tag or an
        :class:`~ability_engine.subjects.AnyOf`. Extra arguments are passed
        on to rule blocks.

        Class subjects skip conditions and blocks on every rule, deny rules
        included. After ``grant("read", Article)`` and ``deny("read",
        Article, published=False)``, ``allowed("read", Article)`` is False:
        the conditional deny governs the class check. Check an instance to
        have the conditions evaluated.

        Raises
        ------
        ConfigurationError
            If a relevant rule only carries a raw query.
        """
        return self._evaluator.allowed(action, subject, extra_args)

    def denied(self, action: str, subject: object, *extra_args: object) -> bool:
        """Return the opposite of :meth:`allowed`."""
        return not self.allowed(action, subject, *extra_args)

    def authorize(
        self,
        action: str,
        subject: SubjectT,
        *extra_args: object,
        message: str | None = None,
    ) -> SubjectT:
        """Return ``subject`` if allowed, otherwise raise AccessDenied.

        Raises
        ------
        AccessDenied
            With ``message``, the resolved unauthorized message, or the
            default message, in that order.
        """
        if self.denied(action, subject, *extra_args):
            raise AccessDenied(
                message or self.unauthorized_message(action, subject),
                action,
                subject,
            )
        return subject

    # ------------------------------------------------------------------
    # Declarative export
    # ------------------------------------------------------------------

    def relevant_rules(self, action: str, subject: object) -> list[Rule]:
        """Rules relevant to ``(action, subject)`` in priority order, unevaluated."""
        return self._evaluator.relevant_rules(action, subject)

    def rule_set_for_query(self, action: str, subject_type: object) -> list[Rule]:
        """Return the ordered rules a query adapter translates for ``subject_type``.

        Raises
        ------
        ConfigurationError
            If a relevant rule is decided by a block.
        """
        return self._evaluator.rules_for_query(action, subject_type)

    def attributes_for(self, action: str, subject: object) -> dict[str, object]:
        """Return default attributes granted for ``(action, subject)``.

        Plain-valued conditions of relevant grant rules are merged in
        declaration order, later rules overwriting earlier ones.
        """
        relevant = self._evaluator.declared_relevant_rules(action, subject)
        return self._exporter.merge_attributes(relevant)

    def has_block(self, action: str, subject: object) -> bool:
        return any(rule.only_block for rule in self.relevant_rules(action, subject))

    def has_raw_query(self, action: str, subject: object) -> bool:
        return any(rule.only_raw_query for rule in self.relevant_rules(action, subject))

    def permissions(self) -> PermissionSummary:
        """Return ``{"grant": {action: [subjects]}, "deny": {...}}``."""
        return self._exporter.export()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def unauthorized_message_keys(self, action: str, subject: object) -> list[str]:
        """Return message keys for ``(action, subject)``, most specific first."""
        return message_keys(self._aliases, action, subject)

    def unauthorized_message(self, action: str, subject: object) -> str | None:
        """Resolve an unauthorized message through the configured resolver."""
        if self._message_resolver is None:
            return None
        keys = self.unauthorized_message_keys(action, subject)
        message = self._message_resolver(keys, message_variables(action, subject))
        return message or None

    def __repr__(self) -> str:
        return f"Ability(rules={len(self._rules)}, aliases={len(self._aliases.aliases)})"
