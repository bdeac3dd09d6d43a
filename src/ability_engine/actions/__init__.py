"""Action alias graph."""
from __future__ import annotations

from ability_engine.actions.aliases import DEFAULT_ALIASES, ActionAliasGraph

__all__ = ["ActionAliasGraph", "DEFAULT_ALIASES"]
