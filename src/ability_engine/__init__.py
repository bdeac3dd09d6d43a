"""ability-engine: in-process authorization rules for Python applications.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import ability_engine as ae
>>> ae.__version__
'0.1.0'
>>> ability = ae.Ability()
>>> _ = ability.grant("read", ae.ALL)
>>> ability.allowed("show", "stats")
True
>>> ability.allowed("destroy", "stats")
False
"""
from __future__ import annotations

__version__: str = "0.1.0"

from ability_engine.ability import Ability

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------
from ability_engine.rules import ALL, MANAGE, RawQuery, Rule

# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------
from ability_engine.actions import ActionAliasGraph
from ability_engine.subjects import AnyOf, SubjectResolver
from ability_engine.matching import MatchEvaluator, RuleIndex
from ability_engine.export import PermissionExporter

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from ability_engine.errors import AbilityError, AccessDenied, ConfigurationError

# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
from ability_engine.loader import RuleSetLoader

__all__ = [
    "__version__",
    "Ability",
    # Rules
    "ALL",
    "MANAGE",
    "RawQuery",
    "Rule",
    # Building blocks
    "ActionAliasGraph",
    "AnyOf",
    "MatchEvaluator",
    "PermissionExporter",
    "RuleIndex",
    "SubjectResolver",
    # Errors
    "AbilityError",
    "AccessDenied",
    "ConfigurationError",
    # Loading
    "RuleSetLoader",
]
