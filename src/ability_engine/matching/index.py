"""Subject index over the declared rule list.

Maps each subject identity to the ascending positions of the rules that
mention it, so a check only visits rules that can possibly apply to its
subject instead of scanning every declaration.
"""
from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from ability_engine.rules.rule import ALL, Rule


class RuleIndex:
    """Append-only ``identity -> [position]`` index.

    Positions are appended in declaration order, so every list is ascending.
    Rules are never removed individually; :meth:`clear` drops everything.
    """

    def __init__(self) -> None:
        self._positions: defaultdict[object, list[int]] = defaultdict(list)

    def record(self, rule: Rule, position: int) -> None:
        """Index ``rule`` at ``position`` under each of its subjects."""
        for subject in rule.subjects or (ALL,):
            self._positions[subject].append(position)

    def candidates(self, identities: Iterable[object]) -> list[int]:
        """Return the positions indexed under any of ``identities``.

        Lists from different identities are interleaved back into
        declaration order.
        """
        positions: set[int] = set()
        for identity in identities:
            found = self._positions.get(identity)
            if found:
                positions.update(found)
        return sorted(positions)

    def positions_for(self, identity: object) -> list[int]:
        return list(self._positions.get(identity, ()))

    def clear(self) -> None:
        self._positions.clear()

    def __len__(self) -> int:
        return len(self._positions)
