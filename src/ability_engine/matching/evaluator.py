"""Match evaluation: which declared rule governs an (action, subject) pair.

Evaluation order for a single subject:

1. candidate positions from the :class:`RuleIndex` (a full scan for
   multi-subject checks);
2. keep relevant rules: the rule's expanded actions contain the action or
   ``manage``, and its subjects contain one of the subject's identities
   or ``all``;
3. most recently declared first, each rule once;
4. inside every contiguous run of grants, grants on exactly ``all`` move to
   the front of the run. Denies never move, so a later deny still wins
   over an earlier ``can manage all``;
5. the first rule whose predicate matches governs.

A subject without a governing rule is denied. A multi-subject check is
allowed when any of its members is allowed.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from ability_engine.actions.aliases import ActionAliasGraph
from ability_engine.errors import ConfigurationError
from ability_engine.matching.index import RuleIndex
from ability_engine.rules.rule import Rule
from ability_engine.subjects.resolver import SubjectResolver, is_multi_subject

logger = logging.getLogger(__name__)


def optimize_order(rules: list[Rule]) -> None:
    """Move wildcard-subject grants to the front of each run of grants, in place."""
    first_grant_in_run = -1
    for i, rule in enumerate(rules):
        if not rule.polarity:
            first_grant_in_run = -1
            continue
        if first_grant_in_run == -1:
            first_grant_in_run = i
            continue
        if not rule.is_wildcard_subject:
            continue
        rules[i] = rules[first_grant_in_run]
        rules[first_grant_in_run] = rule
        first_grant_in_run += 1


class MatchEvaluator:
    """Finds the governing rule for an action and subject.

    Parameters
    ----------
    rules:
        The owning ability's rule list, in declaration order. Read, never
        modified.
    index:
        Subject index over ``rules``.
    aliases:
        Alias graph used to expand each rule's actions.
    resolver:
        Subject resolver producing lookup identities.
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        index: RuleIndex,
        aliases: ActionAliasGraph,
        resolver: SubjectResolver,
    ) -> None:
        self._rules = rules
        self._index = index
        self._aliases = aliases
        self._resolver = resolver

    # ------------------------------------------------------------------
    # Relevance
    # ------------------------------------------------------------------

    def declared_relevant_rules(
        self,
        action: str,
        subject: object,
        full_scan: bool = False,
    ) -> list[Rule]:
        """Return rules relevant to ``(action, subject)`` in declaration order."""
        identities = self._resolver.identities_for(subject)
        if full_scan:
            positions: Sequence[int] = range(len(self._rules))
        else:
            positions = self._index.candidates(identities)
        return [
            rule
            for rule in (self._rules[position] for position in positions)
            if rule.is_relevant(action, self._aliases.expand(rule.actions), identities)
        ]

    def relevant_rules(
        self,
        action: str,
        subject: object,
        full_scan: bool = False,
    ) -> list[Rule]:
        """Return rules relevant to ``(action, subject)`` in priority order.

        Conditions and blocks are not evaluated.
        """
        relevant: list[Rule] = []
        seen: set[int] = set()
        for rule in reversed(self.declared_relevant_rules(action, subject, full_scan)):
            if id(rule) not in seen:
                seen.add(id(rule))
                relevant.append(rule)
        optimize_order(relevant)
        return relevant

    def rules_for_match(self, action: str, subject: object, full_scan: bool = False) -> list[Rule]:
        """Relevant rules for a boolean check; raw query rules are rejected."""
        relevant = self.relevant_rules(action, subject, full_scan)
        for rule in relevant:
            if rule.only_raw_query:
                raise ConfigurationError(
                    "The allowed() and denied() checks cannot be used with a raw query rule. "
                    f"The checking code cannot be determined for {action!r} {subject!r}"
                )
        return relevant

    def rules_for_query(self, action: str, subject: object) -> list[Rule]:
        """Relevant rules for query building; block rules are rejected."""
        relevant = self.relevant_rules(action, subject)
        for rule in relevant:
            if rule.only_block:
                raise ConfigurationError(
                    "A query cannot be built from a block rule. "
                    f"The query conditions cannot be determined for {action!r} {subject!r}"
                )
        return relevant

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def governing_rule(
        self,
        action: str,
        subject: object,
        extra_args: tuple[object, ...] = (),
    ) -> Rule | None:
        """Return the rule that decides ``(action, subject)``, or None.

        For multi-subject checks each member is tried in order; the first
        member governed by a grant decides. When no member is granted, the
        first deny found is returned.
        """
        if not is_multi_subject(subject):
            return self._govern_one(action, subject, extra_args, full_scan=False)

        first_deny: Rule | None = None
        for candidate in self._resolver.extract(subject):
            rule = self._govern_one(action, candidate, extra_args, full_scan=True)
            if rule is None:
                continue
            if rule.polarity:
                return rule
            if first_deny is None:
                first_deny = rule
        return first_deny

    def _govern_one(
        self,
        action: str,
        subject: object,
        extra_args: tuple[object, ...],
        full_scan: bool,
    ) -> Rule | None:
        for rule in self.rules_for_match(action, subject, full_scan=full_scan):
            if rule.matches_conditions(action, subject, extra_args):
                logger.debug(
                    "%s: action=%s subject=%r rule=%r",
                    "GRANT" if rule.polarity else "DENY",
                    action,
                    subject,
                    rule,
                )
                return rule
        logger.debug("DEFAULT-DENY: action=%s subject=%r", action, subject)
        return None

    def allowed(
        self,
        action: str,
        subject: object,
        extra_args: tuple[object, ...] = (),
    ) -> bool:
        rule = self.governing_rule(action, subject, extra_args)
        return rule.polarity if rule is not None else False
