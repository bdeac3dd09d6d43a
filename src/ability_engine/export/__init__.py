"""Declarative permission export and unauthorized message keys."""
from __future__ import annotations

from ability_engine.export.exporter import PermissionExporter, PermissionSummary
from ability_engine.export.messages import (
    MessageResolver,
    message_keys,
    message_variables,
    subject_key,
    underscore,
)

__all__ = [
    "MessageResolver",
    "PermissionExporter",
    "PermissionSummary",
    "message_keys",
    "message_variables",
    "subject_key",
    "underscore",
]
