"""Rule index and match evaluation."""
from __future__ import annotations

from ability_engine.matching.evaluator import MatchEvaluator, optimize_order
from ability_engine.matching.index import RuleIndex

__all__ = ["MatchEvaluator", "RuleIndex", "optimize_order"]
