"""Action alias graph.

An alias declares that a generic *target* action stands for one or more
concrete *source* actions::

    graph = ActionAliasGraph()
    graph.declare("update", "destroy", target="modify")
    graph.expand(("modify",))   # ('modify', 'update', 'edit', 'destroy')

A rule declared for ``modify`` therefore applies to ``update`` and
``destroy`` checks. Aliases only work in that direction: a rule declared
for ``update`` does not apply to a ``modify`` check.

Expansion is transitive and memoized per action tuple. The memo belongs to
the graph instance and is dropped on every mutation.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ability_engine.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_ALIASES: Mapping[str, tuple[str, ...]] = {
    "read": ("index", "show"),
    "create": ("new",),
    "update": ("edit",),
}


class ActionAliasGraph:
    """Directed ``target -> [sources]`` mapping between action names.

    Parameters
    ----------
    with_defaults:
        Seed the graph with :data:`DEFAULT_ALIASES` (``index``/``show`` to
        ``read``, ``new`` to ``create``, ``edit`` to ``update``).
    """

    def __init__(self, with_defaults: bool = True) -> None:
        self._edges: dict[str, list[str]] = {}
        self._expanded: dict[tuple[str, ...], tuple[str, ...]] = {}
        if with_defaults:
            for target, sources in DEFAULT_ALIASES.items():
                self._edges[target] = list(sources)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def declare(self, *sources: str, target: str) -> None:
        """Record each of ``sources`` as an alias of ``target``.

        Raises
        ------
        ConfigurationError
            If ``target`` is already used as a source action, or is among
            ``sources`` itself.
        """
        if not sources:
            raise ConfigurationError(f"Alias target {target!r} needs at least one source action.")
        if target in sources:
            raise ConfigurationError(f"Action {target!r} cannot be an alias of itself.")
        if any(target in existing for existing in self._edges.values()):
            raise ConfigurationError(
                f"You can't specify target ({target}) as alias because it is real action name"
            )
        for source in sources:
            for other_target, existing in self._edges.items():
                if other_target != target and source in existing:
                    logger.warning(
                        "Action %r is already aliased to %r; also aliasing it to %r",
                        source,
                        other_target,
                        target,
                    )
        self._edges.setdefault(target, []).extend(sources)
        self._invalidate()

    def clear(self) -> None:
        """Remove every alias, including the defaults."""
        self._edges.clear()
        self._invalidate()

    def _invalidate(self) -> None:
        if self._expanded:
            logger.debug("Dropping %d memoized action expansions", len(self._expanded))
        self._expanded.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def aliases(self) -> dict[str, list[str]]:
        """Return a copy of the ``target -> sources`` mapping."""
        return {target: list(sources) for target, sources in self._edges.items()}

    def expand(self, actions: Iterable[str]) -> tuple[str, ...]:
        """Return ``actions`` followed by every action they transitively alias."""
        key = tuple(actions)
        cached = self._expanded.get(key)
        if cached is None:
            expanded: list[str] = []
            self._collect(key, expanded)
            cached = tuple(expanded)
            self._expanded[key] = cached
        return cached

    def _collect(self, actions: Iterable[str], expanded: list[str]) -> None:
        for action in actions:
            if action in expanded:
                continue
            expanded.append(action)
            sources = self._edges.get(action)
            if sources:
                self._collect(sources, expanded)

    def reverse_lookup(self, action: str) -> list[str]:
        """Return ``action`` followed by every target whose chain includes it.

        This is the opposite direction of :meth:`expand`.
        """
        results = [action]
        for target, sources in self._edges.items():
            if action in sources:
                for found in self.reverse_lookup(target):
                    if found not in results:
                        results.append(found)
        return results
