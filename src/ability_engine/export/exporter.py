"""Declarative summaries of an ability's rules.

:class:`PermissionExporter` walks the declared rules without evaluating
any predicate and reports, per expanded action, which subjects are granted
or denied. The result is the same whether or not a check has ever run.

Example
-------
::

    exporter = PermissionExporter(ability.rules, ability.alias_graph)
    exporter.export()
    # {"grant": {"read": ["all"], "index": ["all"], "show": ["all"]},
    #  "deny": {"destroy": ["Article"]}}
"""
from __future__ import annotations

from collections.abc import Sequence

from ability_engine.actions.aliases import ActionAliasGraph
from ability_engine.rules.rule import Rule

PermissionSummary = dict[str, dict[str, list[str]]]


class PermissionExporter:
    """Builds grant/deny summaries and default attributes from rules.

    Parameters
    ----------
    rules:
        Declared rules, in declaration order.
    aliases:
        Alias graph used to expand each rule's actions.
    """

    def __init__(self, rules: Sequence[Rule], aliases: ActionAliasGraph) -> None:
        self._rules = rules
        self._aliases = aliases

    def export(self) -> PermissionSummary:
        """Return ``{"grant": {action: [subject, ...]}, "deny": {...}}``.

        Subjects are listed by display name, in declaration order. A subject
        declared by several rules for the same action is listed once per rule.
        """
        summary: PermissionSummary = {"grant": {}, "deny": {}}
        for rule in self._rules:
            bucket = summary["grant" if rule.polarity else "deny"]
            names = rule.subject_names()
            for action in self._aliases.expand(rule.actions):
                bucket.setdefault(action, []).extend(names)
        return summary

    @staticmethod
    def merge_attributes(relevant: Sequence[Rule]) -> dict[str, object]:
        """Merge grant-rule condition attributes in the order given.

        Later rules overwrite keys set by earlier ones; deny rules are
        ignored.
        """
        attributes: dict[str, object] = {}
        for rule in relevant:
            if rule.polarity:
                attributes.update(rule.attributes_from_conditions())
        return attributes
