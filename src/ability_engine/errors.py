"""Exception types raised by the ability engine.

Two kinds of failure exist:

- :class:`ConfigurationError`: the declared rules or aliases cannot be
  used the way they are being used. Always raised synchronously at the
  point of detection.
- :class:`AccessDenied`: raised only by :meth:`Ability.authorize`; the
  plain check methods return booleans instead.
"""
from __future__ import annotations


class AbilityError(Exception):
    """Base class for every error raised by the ability engine."""


class ConfigurationError(AbilityError, ValueError):
    """Raised when rules, aliases or a rule file are misconfigured.

    Attributes
    ----------
    config_path:
        The path to the rule file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class AccessDenied(AbilityError):
    """Raised by ``authorize`` when the actor may not perform the action.

    Attributes
    ----------
    message:
        Human-readable explanation. Falls back to :attr:`default_message`.
    action:
        The action that was checked.
    subject:
        The subject the action was checked against.
    """

    default_message: str = "You are not authorized to access this page."

    def __init__(
        self,
        message: str | None = None,
        action: object = None,
        subject: object = None,
    ) -> None:
        self.message = message or self.default_message
        self.action = action
        self.subject = subject
        super().__init__(self.message)
