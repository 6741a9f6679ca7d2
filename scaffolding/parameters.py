"""Typed template parameters.

A parameter is one of three fixed shapes, declared in the ``[parameters]``
table of x402.toml with a ``type`` discriminator:

    [parameters.project_slug]
    type = "string"
    default = "my-app"
    pattern = "^[a-z][a-z0-9-]*$"

    [parameters.use_docker]
    type = "boolean"
    default = true

    [parameters.database]
    type = "enum"
    enum = ["postgres", "sqlite"]
    default = "postgres"

Each shape exposes ``validate(value)``, which raises a ParameterValueError
subclass when the textual value is not acceptable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from .errors import (
    InvalidBoolean,
    InvalidPattern,
    MalformedManifest,
    NotInChoices,
    PatternMismatch,
)

BOOLEAN_TRUE = ("true", "yes", "1")
BOOLEAN_FALSE = ("false", "no", "0")
BOOLEAN_LITERALS = BOOLEAN_TRUE + BOOLEAN_FALSE


@dataclass(frozen=True)
class StringParameter:
    """Free-form text, optionally constrained by a regex searched anywhere in the value."""

    kind: ClassVar[str] = "string"

    default: str
    pattern: str | None = None
    description: str | None = None

    def validate(self, value: str) -> None:
        if self.pattern is None:
            return
        try:
            regex = re.compile(self.pattern)
        except re.error as e:
            raise InvalidPattern(self.pattern, str(e)) from e
        # Search semantics: authors anchor with ^/$ when they need a full match.
        if regex.search(value) is None:
            raise PatternMismatch(value, self.pattern)

    @property
    def default_text(self) -> str:
        return self.default


@dataclass(frozen=True)
class BooleanParameter:
    """A yes/no switch. Values are stored as "true" or "false"."""

    kind: ClassVar[str] = "boolean"

    default: bool
    description: str | None = None

    def validate(self, value: str) -> None:
        if value.lower() not in BOOLEAN_LITERALS:
            raise InvalidBoolean(value)

    @property
    def default_text(self) -> str:
        return "true" if self.default else "false"

    @staticmethod
    def normalize(value: str) -> str:
        """Canonicalize an accepted boolean literal to "true" or "false"."""
        return "true" if value.lower() in BOOLEAN_TRUE else "false"


@dataclass(frozen=True)
class EnumParameter:
    """One value out of a fixed, ordered list of choices (case-sensitive)."""

    kind: ClassVar[str] = "enum"

    choices: tuple[str, ...]
    default: str
    description: str | None = None

    def validate(self, value: str) -> None:
        if value not in self.choices:
            raise NotInChoices(value, self.choices)

    @property
    def default_text(self) -> str:
        return self.default


Parameter = Union[StringParameter, BooleanParameter, EnumParameter]


def parse_parameter(name: str, data: Any) -> Parameter:
    """Build a Parameter from its TOML table.

    Only the shape is checked here (required keys, value types, known
    ``type``). Semantic checks such as "default matches pattern" belong to
    the manifest validator.

    Raises:
        MalformedManifest: If the table does not describe a known parameter shape.
    """
    field = f"parameters.{name}"
    if not isinstance(data, dict):
        raise MalformedManifest(f"'{field}' must be a table")

    kind = data.get("type")
    description = _optional_str(data, "description", field)

    if kind == "string":
        return StringParameter(
            default=_required(data, "default", str, field),
            pattern=_optional_str(data, "pattern", field),
            description=description,
        )

    if kind == "boolean":
        return BooleanParameter(
            default=_required(data, "default", bool, field),
            description=description,
        )

    if kind == "enum":
        key = "enum" if "enum" in data else "choices"
        choices = _required(data, key, list, field)
        if not all(isinstance(choice, str) for choice in choices):
            raise MalformedManifest(f"'{field}.{key}' must be a list of strings")
        return EnumParameter(
            choices=tuple(choices),
            default=_required(data, "default", str, field),
            description=description,
        )

    if kind is None:
        raise MalformedManifest(f"'{field}.type' is required")
    raise MalformedManifest(
        f"'{field}.type' must be one of string, boolean, enum (got {kind!r})"
    )


def _required(data: dict[str, Any], key: str, expected: type, field: str) -> Any:
    if key not in data:
        raise MalformedManifest(f"'{field}.{key}' is required")
    value = data[key]
    if not isinstance(value, expected):
        raise MalformedManifest(
            f"'{field}.{key}' must be of type {expected.__name__}"
        )
    return value


def _optional_str(data: dict[str, Any], key: str, field: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedManifest(f"'{field}.{key}' must be a string")
    return value
