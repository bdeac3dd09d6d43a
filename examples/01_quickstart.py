#!/usr/bin/env python3
"""Example: Quickstart: ability-engine

Minimal working example: declare rules for a user, check actions and
authorize a request.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install ability-engine
"""
from __future__ import annotations

from dataclasses import dataclass

import ability_engine as ae


@dataclass
class User:
    id: int
    admin: bool = False


@dataclass
class Article:
    owner_id: int
    published: bool = False


@dataclass
class Draft(Article):
    pass


def build_ability(user: User) -> ae.Ability:
    ability = ae.Ability()
    if user.admin:
        ability.grant(ae.MANAGE, ae.ALL)
        return ability
    ability.grant("read", ae.ALL)
    ability.grant("update", Article, owner_id=user.id)
    ability.deny("read", Draft)
    return ability


def main() -> None:
    print(f"ability-engine version: {ae.__version__}")

    # Step 1: Build an ability for a regular user
    alice = User(id=1)
    ability = build_ability(alice)
    print(f"Ability ready: {len(ability)} rules declared")

    # Step 2: Check actions
    checks = [
        ("show", Article(owner_id=2)),
        ("edit", Article(owner_id=1)),
        ("edit", Article(owner_id=2)),
        ("read", Draft(owner_id=1)),
        ("update", Article),
    ]
    print("\nChecks:")
    for action, subject in checks:
        icon = "ALLOW" if ability.allowed(action, subject) else "DENY"
        print(f"  [{icon}] {action} {subject!r}")

    # Step 3: Authorize a request
    print("\nAuthorize:")
    try:
        ability.authorize("destroy", Article(owner_id=1))
    except ae.AccessDenied as exc:
        print(f"  AccessDenied: {exc.message}")

    # Step 4: Summaries for a client
    print("\nDefault attributes for a new article:", ability.attributes_for("create", Article))
    print("Permissions:", ability.permissions())

    # Step 5: An admin can do anything
    admin = build_ability(User(id=9, admin=True))
    print("\nAdmin may destroy drafts:", admin.allowed("destroy", Draft(owner_id=1)))


if __name__ == "__main__":
    main()
