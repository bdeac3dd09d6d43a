"""YAML rule-set loader with Pydantic v2 validation.

RuleSetLoader reads rule-set files and builds populated :class:`Ability`
instances. Files must follow the schema below.

Schema
------
::

    version: "1"
    default_aliases: true
    aliases:
      - sources: [update, destroy]
        target: modify
    rules:
      - behavior: grant
        actions: [read]
        subjects: [all]
      - behavior: grant
        actions: update
        subjects: Article
        conditions:
          owner_id: 1
      - behavior: deny
        actions: [modify]
        subjects: [Article]
        raw_query: "locked = ?"
        params: [true]

Rules are declared in file order, so later entries override earlier ones.
Subject names found in ``subject_types`` become those classes; other names
stay string tags.

Example
-------
::

    loader = RuleSetLoader(subject_types={"Article": Article})
    ability = loader.load("/path/to/rules.yaml")
    ability.allowed("read", Article(owner_id=1))
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ability_engine.ability import Ability
from ability_engine.errors import ConfigurationError
from ability_engine.rules.rule import Rule

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1", "1.0"])


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


class AliasConfig(BaseModel):
    """One alias declaration."""

    sources: list[str] = Field(min_length=1)
    target: str = Field(min_length=1)

    @field_validator("sources", mode="before")
    @classmethod
    def normalise_sources(cls, value: object) -> list[str]:
        return _as_list(value)


class RuleConfig(BaseModel):
    """One grant/deny declaration."""

    model_config = {"extra": "forbid"}

    behavior: Literal["grant", "deny"]
    actions: list[str] = Field(min_length=1)
    subjects: list[str] = Field(min_length=1)
    conditions: dict[str, Any] = Field(default_factory=dict)
    raw_query: str | None = Field(default=None)
    params: list[Any] = Field(default_factory=list)

    @field_validator("actions", "subjects", mode="before")
    @classmethod
    def normalise_names(cls, value: object) -> list[str]:
        return _as_list(value)

    @model_validator(mode="after")
    def check_condition_kind(self) -> RuleConfig:
        if self.raw_query and self.conditions:
            raise ValueError("A rule cannot declare both conditions and raw_query.")
        if self.params and not self.raw_query:
            raise ValueError("params can only be used together with raw_query.")
        return self


class RuleSetConfig(BaseModel):
    """Top-level rule-set schema."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    default_aliases: bool = Field(default=True)
    aliases: list[AliasConfig] = Field(default_factory=list)
    rules: list[RuleConfig] = Field(default_factory=list)
    description: str | None = Field(default=None)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("version", mode="before")
    @classmethod
    def validate_version(cls, value: object) -> str:
        version = str(value)
        if version not in _SUPPORTED_VERSIONS:
            raise ValueError(
                f"Unsupported rule-set version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}."
            )
        return version


class RuleSetLoader:
    """Loads Ability rule sets from YAML files, strings or dicts.

    Parameters
    ----------
    subject_types:
        Maps subject names used in rule files to classes.
    strict:
        When ``True``, unknown top-level keys are an error. Default
        ``False`` (unknown keys are ignored).

    Examples
    --------
    ::

        loader = RuleSetLoader()
        ability = loader.load_from_dict({
            "rules": [
                {"behavior": "grant", "actions": ["read"], "subjects": ["all"]},
            ],
        })
        assert ability.allowed("read", "stats")
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "default_aliases", "aliases", "rules", "metadata", "description"]
    )

    def __init__(
        self,
        subject_types: Mapping[str, type] | None = None,
        strict: bool = False,
    ) -> None:
        self._subject_types: dict[str, type] = dict(subject_types or {})
        self._strict = strict

    def load(self, config_path: str | Path, ability: Ability | None = None) -> Ability:
        """Load a rule set from a YAML file on disk.

        Parameters
        ----------
        config_path:
            Path to the YAML rule-set file.
        ability:
            Existing ability to declare into. A new one is created when
            omitted.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        ConfigurationError
            If the file cannot be parsed or is structurally invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Rule set not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw: object = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build(raw, str(config_path), ability)

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
        ability: Ability | None = None,
    ) -> Ability:
        """Load a rule set from a YAML string."""
        try:
            raw: object = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build(raw, config_path, ability)

    def load_from_dict(
        self,
        config: Mapping[str, object],
        config_path: str | None = None,
        ability: Ability | None = None,
    ) -> Ability:
        """Load a rule set from an already-parsed dictionary."""
        return self._build(config, config_path, ability)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(
        self,
        raw: object,
        config_path: str | None,
        ability: Ability | None,
    ) -> Ability:
        config = self._validate(raw, config_path)

        if ability is None:
            ability = Ability(with_default_aliases=config.default_aliases)
        elif not config.default_aliases:
            ability.clear_aliases()

        for alias in config.aliases:
            try:
                ability.declare_alias(*alias.sources, target=alias.target)
            except ConfigurationError as exc:
                raise ConfigurationError(str(exc), config_path) from exc

        for index, rule_config in enumerate(config.rules):
            try:
                rule = Rule.from_dict(
                    rule_config.model_dump(exclude_defaults=True),
                    self._subject_types,
                )
            except ConfigurationError as exc:
                raise ConfigurationError(f"Error in rule at index {index}: {exc}", config_path) from exc
            ability.add_rule(rule)

        logger.info(
            "Loaded %d rules and %d aliases from %s",
            len(config.rules),
            len(config.aliases),
            config_path or "<dict>",
        )
        return ability

    def _validate(self, raw: object, config_path: str | None) -> RuleSetConfig:
        if not isinstance(raw, Mapping):
            raise ConfigurationError("Rule set must be a YAML mapping (dict).", config_path)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise ConfigurationError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )

        try:
            return RuleSetConfig.model_validate(dict(raw))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid rule set: {exc}", config_path) from exc
