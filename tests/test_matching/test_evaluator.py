"""Tests for MatchEvaluator and override reordering."""
from __future__ import annotations

import pytest

from ability_engine.actions.aliases import ActionAliasGraph
from ability_engine.errors import ConfigurationError
from ability_engine.matching.evaluator import MatchEvaluator, optimize_order
from ability_engine.matching.index import RuleIndex
from ability_engine.rules.rule import ALL, MANAGE, RawQuery, Rule
from ability_engine.subjects.resolver import AnyOf, SubjectResolver


class Article:
    def __init__(self, owner_id: int = 0) -> None:
        self.owner_id = owner_id


class Comment:
    pass


class RuleBook:
    """Minimal owner wiring rules, index and evaluator together."""

    def __init__(self) -> None:
        self.rules: list[Rule] = []
        self.index = RuleIndex()
        self.aliases = ActionAliasGraph()
        self.evaluator = MatchEvaluator(self.rules, self.index, self.aliases, SubjectResolver())

    def add(self, rule: Rule) -> Rule:
        self.rules.append(rule)
        self.index.record(rule, len(self.rules) - 1)
        return rule


@pytest.fixture()
def book() -> RuleBook:
    return RuleBook()


# ---------------------------------------------------------------------------
# optimize_order
# ---------------------------------------------------------------------------

class TestOptimizeOrder:
    def test_wildcard_grant_moves_to_front_of_run(self) -> None:
        narrow = Rule.declare(True, "read", Article)
        wide = Rule.declare(True, "read", ALL)
        rules = [narrow, wide]
        optimize_order(rules)
        assert rules == [wide, narrow]

    def test_denies_never_move(self) -> None:
        deny = Rule.declare(False, "read", Article)
        wide = Rule.declare(True, "read", ALL)
        rules = [deny, wide]
        optimize_order(rules)
        assert rules == [deny, wide]

    def test_runs_are_separated_by_denies(self) -> None:
        g1 = Rule.declare(True, "read", Article)
        deny = Rule.declare(False, "read", Article)
        g2 = Rule.declare(True, "read", Comment)
        wide = Rule.declare(True, "read", ALL)
        rules = [g1, deny, g2, wide]
        optimize_order(rules)
        assert rules == [g1, deny, wide, g2]

    def test_multiple_wildcards_in_one_run(self) -> None:
        a = Rule.declare(True, "read", Article)
        b = Rule.declare(True, "read", Comment)
        w1 = Rule.declare(True, "read", ALL)
        w2 = Rule.declare(True, MANAGE, ALL)
        rules = [a, b, w1, w2]
        optimize_order(rules)
        assert rules[:2] == [w1, w2]
        assert set(rules[2:]) == {a, b}

    def test_empty_list(self) -> None:
        rules: list[Rule] = []
        optimize_order(rules)
        assert rules == []


# ---------------------------------------------------------------------------
# relevant_rules
# ---------------------------------------------------------------------------

class TestRelevantRules:
    def test_most_recent_first(self, book: RuleBook) -> None:
        first = book.add(Rule.declare(True, "read", Article))
        second = book.add(Rule.declare(False, "read", Article))
        assert book.evaluator.relevant_rules("read", Article) == [second, first]

    def test_filters_by_action_alias(self, book: RuleBook) -> None:
        read = book.add(Rule.declare(True, "read", Article))
        book.add(Rule.declare(True, "update", Article))
        assert book.evaluator.relevant_rules("index", Article) == [read]

    def test_filters_by_subject(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, "read", Comment))
        assert book.evaluator.relevant_rules("read", Article) == []

    def test_declaration_order_variant(self, book: RuleBook) -> None:
        first = book.add(Rule.declare(True, "read", Article))
        second = book.add(Rule.declare(True, "read", ALL))
        assert book.evaluator.declared_relevant_rules("read", Article()) == [first, second]

    def test_shared_rule_listed_once(self, book: RuleBook) -> None:
        rule = Rule.declare(True, "read", Article)
        book.add(rule)
        book.add(rule)
        assert book.evaluator.relevant_rules("read", Article) == [rule]

    def test_full_scan_matches_indexed_lookup(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, "read", Article))
        book.add(Rule.declare(True, "read", Comment))
        book.add(Rule.declare(False, MANAGE, ALL))
        indexed = book.evaluator.relevant_rules("read", Article)
        scanned = book.evaluator.relevant_rules("read", Article, full_scan=True)
        assert indexed == scanned


# ---------------------------------------------------------------------------
# governing_rule
# ---------------------------------------------------------------------------

class TestGoverningRule:
    def test_no_rules_denies(self, book: RuleBook) -> None:
        assert book.evaluator.governing_rule("read", Article()) is None
        assert book.evaluator.allowed("read", Article()) is False

    def test_first_matching_predicate_governs(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, "update", Article))
        owner_deny = book.add(Rule.declare(False, "update", Article, {"owner_id": 2}))
        assert book.evaluator.governing_rule("update", Article(owner_id=2)) is owner_deny
        assert book.evaluator.allowed("update", Article(owner_id=1)) is True

    def test_later_deny_beats_earlier_wildcard_grant(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, MANAGE, ALL))
        book.add(Rule.declare(False, "destroy", Article))
        assert book.evaluator.allowed("destroy", Article()) is False
        assert book.evaluator.allowed("read", Article()) is True

    def test_raw_query_rule_rejected_for_checks(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, "read", Article, RawQuery("published = 1")))
        with pytest.raises(ConfigurationError, match="raw query"):
            book.evaluator.allowed("read", Article())

    def test_raw_query_rule_with_unrelated_subject_is_ignored(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, "read", Article, RawQuery("published = 1")))
        assert book.evaluator.allowed("read", Comment()) is False

    def test_extra_args_reach_block(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, "read", Article, block=lambda a, ip: ip.startswith("10.")))
        assert book.evaluator.allowed("read", Article(), ("10.1.1.1",)) is True
        assert book.evaluator.allowed("read", Article(), ("192.168.0.1",)) is False

    def test_any_of_granted_member_wins(self, book: RuleBook) -> None:
        book.add(Rule.declare(False, "read", Article))
        granted = book.add(Rule.declare(True, "read", Comment))
        assert book.evaluator.governing_rule("read", AnyOf(Article(), Comment())) is granted

    def test_any_of_all_denied(self, book: RuleBook) -> None:
        deny = book.add(Rule.declare(False, "read", Article))
        assert book.evaluator.governing_rule("read", AnyOf(Comment(), Article())) is deny
        assert book.evaluator.allowed("read", AnyOf(Comment(), Article())) is False

    def test_any_of_empty(self, book: RuleBook) -> None:
        book.add(Rule.declare(True, MANAGE, ALL))
        assert book.evaluator.allowed("read", AnyOf()) is False
