#!/usr/bin/env python3
"""Example: Loading rules from YAML

Declare aliases and rules in a YAML rule set, load them with
RuleSetLoader and inspect the result.

Usage:
    python examples/02_yaml_rules.py

Requirements:
    pip install ability-engine
"""
from __future__ import annotations

import ability_engine as ae

RULES = """\
version: "1"
aliases:
  - sources: [update, destroy]
    target: modify
rules:
  - behavior: grant
    actions: read
    subjects: all
  - behavior: grant
    actions: modify
    subjects: Comment
    conditions:
      author_id: 7
  - behavior: deny
    actions: destroy
    subjects: Comment
    conditions:
      locked: true
"""


class Comment:
    def __init__(self, author_id: int, locked: bool = False) -> None:
        self.author_id = author_id
        self.locked = locked

    def __repr__(self) -> str:
        return f"Comment(author_id={self.author_id}, locked={self.locked})"


def main() -> None:
    loader = ae.RuleSetLoader(subject_types={"Comment": Comment})
    ability = loader.load_from_yaml_string(RULES)
    print(f"Loaded {len(ability)} rules; aliases: {ability.aliased_actions}")

    for action, subject in [
        ("edit", Comment(author_id=7)),
        ("destroy", Comment(author_id=7)),
        ("destroy", Comment(author_id=7, locked=True)),
        ("update", Comment(author_id=8)),
        ("show", Comment(author_id=8)),
    ]:
        icon = "ALLOW" if ability.allowed(action, subject) else "DENY"
        print(f"  [{icon}] {action} {subject!r}")

    print("\nRule set for a 'destroy' query on Comment:")
    for rule in ability.rule_set_for_query("destroy", Comment):
        print(f"  {rule!r}")

    print("\nMessage keys for a denied 'edit':")
    for key in ability.unauthorized_message_keys("edit", Comment(author_id=8)):
        print(f"  {key}")


if __name__ == "__main__":
    main()
