"""Lookup keys for unauthorized messages.

The engine does not format or translate text. It hands a localization
layer an ordered list of ``"<action>.<subject>"`` keys, most specific
first, plus the variables a message template may interpolate::

    update.article, modify.article, manage.article,
    update.all,     modify.all,     manage.all
"""
from __future__ import annotations

import re
from collections.abc import Callable

from ability_engine.actions.aliases import ActionAliasGraph
from ability_engine.rules.rule import ALL, MANAGE

MessageResolver = Callable[[list[str], dict[str, str]], "str | None"]
"""``resolver(keys, variables)`` returns a message, or None for no match."""

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """Convert ``BlogPost`` into ``blog_post``."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def subject_key(subject: object) -> str:
    """Return the key fragment for a subject: the tag, or the snake-cased class name."""
    if isinstance(subject, str):
        return subject
    subject_type = subject if isinstance(subject, type) else type(subject)
    return underscore(subject_type.__name__)


def message_keys(aliases: ActionAliasGraph, action: str, subject: object) -> list[str]:
    """Return the ordered message keys for an unauthorized ``(action, subject)``."""
    actions = aliases.reverse_lookup(action)
    if MANAGE not in actions:
        actions.append(MANAGE)
    return [
        f"{try_action}.{try_subject}"
        for try_subject in (subject_key(subject), ALL)
        for try_action in actions
    ]


def message_variables(action: str, subject: object) -> dict[str, str]:
    """Return template variables: the action and a humanized subject name."""
    return {
        "action": str(action),
        "subject": subject_key(subject).replace("_", " ").strip().lower(),
    }
