"""Tests for Rule declaration, relevance and evaluation."""
from __future__ import annotations

from dataclasses import dataclass

import pytest

from ability_engine.errors import ConfigurationError
from ability_engine.rules.rule import ALL, MANAGE, RawQuery, Rule, subject_name


@dataclass
class Article:
    owner_id: int = 0
    published: bool = False


# ---------------------------------------------------------------------------
# Declaration
# ---------------------------------------------------------------------------

class TestRuleDeclaration:
    def test_single_values_become_tuples(self) -> None:
        rule = Rule.declare(True, "read", Article)
        assert rule.actions == ("read",)
        assert rule.subjects == (Article,)

    def test_lists_are_deduplicated_in_order(self) -> None:
        rule = Rule.declare(True, ["read", "update", "read"], [Article, ALL, Article])
        assert rule.actions == ("read", "update")
        assert rule.subjects == (Article, ALL)

    def test_rule_is_frozen(self) -> None:
        rule = Rule.declare(True, "read", Article)
        with pytest.raises((AttributeError, TypeError)):
            rule.polarity = False  # type: ignore[misc]

    def test_rules_compare_by_identity(self) -> None:
        assert Rule.declare(True, "read", Article) != Rule.declare(True, "read", Article)

    def test_conditions_and_block_are_exclusive(self) -> None:
        with pytest.raises(ConfigurationError, match="both"):
            Rule.declare(True, "update", Article, {"owner_id": 1}, lambda a: True)

    def test_empty_conditions_with_block_is_allowed(self) -> None:
        rule = Rule.declare(True, "update", Article, {}, lambda a: True)
        assert rule.only_block is True

    def test_invalid_conditions_type(self) -> None:
        with pytest.raises(ConfigurationError, match="mapping or a RawQuery"):
            Rule.declare(True, "update", Article, "owner_id = 1")  # type: ignore[arg-type]

    def test_actions_without_subjects_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="both actions and subjects"):
            Rule.declare(True, "read", None)

    def test_match_all_requires_block(self) -> None:
        with pytest.raises(ConfigurationError, match="block"):
            Rule.declare(True)

    def test_match_all_with_block(self) -> None:
        rule = Rule.declare(True, block=lambda action, cls, obj: True)
        assert rule.match_all is True

    def test_unhashable_subject_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="not hashable"):
            Rule.declare(True, "read", {"owner_id": 1})

    def test_hashable_instance_subject_accepted(self) -> None:
        marker = object()
        assert Rule.declare(True, "read", marker).subjects == (marker,)


class TestRuleShape:
    def test_only_block(self) -> None:
        assert Rule.declare(True, "read", Article, block=lambda a: True).only_block is True
        assert Rule.declare(True, "read", Article).only_block is False

    def test_only_raw_query(self) -> None:
        rule = Rule.declare(True, "read", Article, RawQuery("published = ?", (True,)))
        assert rule.only_raw_query is True

    def test_empty_raw_query_is_not_raw(self) -> None:
        rule = Rule.declare(True, "read", Article, RawQuery(""))
        assert rule.only_raw_query is False
        assert rule.conditions_empty is True

    def test_wildcard_subject(self) -> None:
        assert Rule.declare(True, MANAGE, ALL).is_wildcard_subject is True
        assert Rule.declare(True, MANAGE, [ALL, Article]).is_wildcard_subject is False

    def test_subject_names(self) -> None:
        rule = Rule.declare(True, "read", [Article, "stats", ALL])
        assert rule.subject_names() == ["Article", "stats", "all"]
        assert subject_name(Article) == "Article"

    def test_repr_mentions_behavior(self) -> None:
        assert "deny" in repr(Rule.declare(False, "read", Article))


# ---------------------------------------------------------------------------
# Relevance
# ---------------------------------------------------------------------------

class TestRuleRelevance:
    def test_action_in_expanded_actions(self) -> None:
        rule = Rule.declare(True, "read", Article)
        assert rule.is_relevant("show", ("read", "index", "show"), (ALL, Article)) is True

    def test_action_missing(self) -> None:
        rule = Rule.declare(True, "read", Article)
        assert rule.is_relevant("update", ("read",), (ALL, Article)) is False

    def test_manage_matches_any_action(self) -> None:
        rule = Rule.declare(True, MANAGE, Article)
        assert rule.is_relevant("destroy", (MANAGE,), (ALL, Article)) is True

    def test_all_matches_any_subject(self) -> None:
        rule = Rule.declare(True, "read", ALL)
        assert rule.is_relevant("read", ("read",), ("stats", ALL)) is True

    def test_subject_identity_required(self) -> None:
        rule = Rule.declare(True, "read", Article)
        assert rule.is_relevant("read", ("read",), ("stats", ALL)) is False

    def test_match_all_is_always_relevant(self) -> None:
        rule = Rule.declare(True, block=lambda *args: True)
        assert rule.is_relevant("anything", (), ("stats", ALL)) is True


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class TestRuleMatchesConditions:
    def test_conditions_checked_on_instance(self) -> None:
        rule = Rule.declare(True, "update", Article, {"owner_id": 1})
        assert rule.matches_conditions("update", Article(owner_id=1), ()) is True
        assert rule.matches_conditions("update", Article(owner_id=2), ()) is False

    def test_conditions_skipped_on_class(self) -> None:
        rule = Rule.declare(True, "update", Article, {"owner_id": 1})
        assert rule.matches_conditions("update", Article, ()) is True

    def test_block_receives_subject_and_extra_args(self) -> None:
        seen: list[tuple[object, ...]] = []

        def block(article: Article, ip: str) -> bool:
            seen.append((article, ip))
            return ip == "10.0.0.1"

        rule = Rule.declare(True, "update", Article, block=block)
        article = Article()
        assert rule.matches_conditions("update", article, ("10.0.0.1",)) is True
        assert seen == [(article, "10.0.0.1")]

    def test_block_not_called_for_class(self) -> None:
        def block(article: Article) -> bool:
            raise AssertionError("block must not run for class checks")

        rule = Rule.declare(True, "update", Article, block=block)
        assert rule.matches_conditions("update", Article, ()) is True

    def test_block_exception_propagates(self) -> None:
        def block(article: Article) -> bool:
            raise RuntimeError("lookup failed")

        rule = Rule.declare(True, "update", Article, block=block)
        with pytest.raises(RuntimeError, match="lookup failed"):
            rule.matches_conditions("update", Article(), ())

    def test_match_all_block_signature(self) -> None:
        calls: list[tuple[object, ...]] = []
        rule = Rule.declare(True, block=lambda *args: calls.append(args) or True)
        article = Article()
        rule.matches_conditions("read", article, ("extra",))
        rule.matches_conditions("read", Article, ())
        assert calls == [("read", Article, article, "extra"), ("read", Article, None)]

    def test_unconditional_rule_matches(self) -> None:
        rule = Rule.declare(False, "read", Article)
        assert rule.matches_conditions("read", Article(), ()) is True


class TestRuleAttributes:
    def test_attributes_from_conditions(self) -> None:
        rule = Rule.declare(True, "create", Article, {"owner_id": 1, "state": ["a", "b"]})
        assert rule.attributes_from_conditions() == {"owner_id": 1}

    def test_block_rule_has_no_attributes(self) -> None:
        rule = Rule.declare(True, "create", Article, block=lambda a: True)
        assert rule.attributes_from_conditions() == {}


# ---------------------------------------------------------------------------
# from_dict
# ---------------------------------------------------------------------------

class TestRuleFromDict:
    def test_grant_with_conditions(self) -> None:
        rule = Rule.from_dict(
            {
                "behavior": "grant",
                "actions": ["update"],
                "subjects": ["Article"],
                "conditions": {"owner_id": 1},
            },
            {"Article": Article},
        )
        assert rule.polarity is True
        assert rule.subjects == (Article,)
        assert rule.conditions == {"owner_id": 1}

    def test_unmapped_subject_stays_tag(self) -> None:
        rule = Rule.from_dict({"behavior": "deny", "actions": "read", "subjects": "stats"})
        assert rule.polarity is False
        assert rule.subjects == ("stats",)

    def test_raw_query(self) -> None:
        rule = Rule.from_dict(
            {
                "behavior": "grant",
                "actions": ["read"],
                "subjects": ["Article"],
                "raw_query": "published = ?",
                "params": [True],
            }
        )
        assert rule.conditions == RawQuery("published = ?", (True,))

    def test_unknown_behavior_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="behavior"):
            Rule.from_dict({"behavior": "maybe", "actions": ["read"], "subjects": ["x"]})

    def test_conditions_with_raw_query_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="both conditions and raw_query"):
            Rule.from_dict(
                {
                    "behavior": "grant",
                    "actions": ["read"],
                    "subjects": ["Article"],
                    "conditions": {"owner_id": 1},
                    "raw_query": "owner_id = 1",
                }
            )

    def test_params_without_raw_query_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="params"):
            Rule.from_dict(
                {"behavior": "grant", "actions": ["read"], "subjects": ["Article"], "params": [1]}
            )
