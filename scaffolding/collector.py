"""Parameter collection: turn manifest parameters into a substitution map.

Values come from a ValueSource. The CLI plugs in an interactive prompt;
tests and ``--defaults`` runs use DefaultValueSource or ScriptedValueSource.
"""

from __future__ import annotations

import getpass
import logging
import subprocess
from collections.abc import Mapping
from datetime import date
from typing import Protocol

from ._version import __version__
from .errors import ParameterValueError, ValidationError
from .parameters import BooleanParameter, Parameter

logger = logging.getLogger(__name__)

BUILTIN_PARAMETERS = ("project_name", "author", "version", "date")


class ValueSource(Protocol):
    """Supplies a textual value for each requested parameter.

    ``request`` raises Cancelled when the user aborts. Interactive sources are
    asked again after ``reject`` reports an invalid value; non-interactive
    sources fail the collection instead.
    """

    interactive: bool

    def request(self, name: str, parameter: Parameter) -> str: ...

    def reject(self, name: str, parameter: Parameter, error: ParameterValueError) -> None: ...


class DefaultValueSource:
    """Accepts every parameter's declared default."""

    interactive = False

    def request(self, name: str, parameter: Parameter) -> str:
        return parameter.default_text

    def reject(self, name: str, parameter: Parameter, error: ParameterValueError) -> None:
        pass


class ScriptedValueSource:
    """Answers from a fixed mapping, falling back to defaults for missing names."""

    interactive = False

    def __init__(self, values: Mapping[str, str], use_defaults: bool = True) -> None:
        self.values = dict(values)
        self.use_defaults = use_defaults

    def request(self, name: str, parameter: Parameter) -> str:
        if name in self.values:
            return self.values[name]
        if self.use_defaults:
            return parameter.default_text
        raise ValidationError(f"parameters.{name}", "No value provided")

    def reject(self, name: str, parameter: Parameter, error: ParameterValueError) -> None:
        pass


class PresetValueSource:
    """Answers preset names from a mapping and everything else from a fallback source.

    A rejected preset is dropped, so an interactive fallback gets asked instead.
    """

    def __init__(self, values: Mapping[str, str], fallback: ValueSource) -> None:
        self.values = dict(values)
        self.fallback = fallback

    @property
    def interactive(self) -> bool:
        return self.fallback.interactive

    def request(self, name: str, parameter: Parameter) -> str:
        if name in self.values:
            return self.values[name]
        return self.fallback.request(name, parameter)

    def reject(self, name: str, parameter: Parameter, error: ParameterValueError) -> None:
        if self.values.pop(name, None) is None:
            self.fallback.reject(name, parameter, error)
        else:
            logger.warning(f"Ignoring preset value for '{name}': {error}")


def detect_author() -> str:
    """Best-effort author name: git's user.name, else the login name."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", "user.name"],
            capture_output=True,
            text=True,
            check=False,
        )
        name = result.stdout.strip()
        if name:
            return name
    except OSError:
        logger.debug("git not available, falling back to login name")
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return "unknown"


def builtin_parameters(
    project_name: str,
    author: str | None = None,
    today: date | None = None,
) -> dict[str, str]:
    """Values every template can use regardless of its manifest."""
    return {
        "project_name": project_name,
        "author": author if author is not None else detect_author(),
        "version": __version__,
        "date": (today or date.today()).strftime("%Y-%m-%d"),
    }


def collect_parameters(
    parameters: Mapping[str, Parameter] | None,
    source: ValueSource,
    builtins: Mapping[str, str],
) -> dict[str, str]:
    """Build the substitution map for rendering.

    Built-ins go in first; manifest-declared values are merged on top, so a
    manifest parameter reusing a built-in name takes precedence.

    Args:
        parameters: Manifest parameters in prompt order (may be None or empty).
        source: Where values come from.
        builtins: Built-in values (see builtin_parameters).

    Returns:
        Mapping of parameter name to textual value.

    Raises:
        Cancelled: If the source aborts. No partial map is returned.
        ValidationError: If a non-interactive source yields an invalid value.
    """
    values = dict(builtins)

    for name, parameter in (parameters or {}).items():
        if name in builtins:
            logger.warning(f"Template parameter '{name}' overrides the built-in value")
        values[name] = _collect_one(name, parameter, source)

    return values


def _collect_one(name: str, parameter: Parameter, source: ValueSource) -> str:
    while True:
        value = source.request(name, parameter)
        try:
            parameter.validate(value)
        except ParameterValueError as e:
            if not source.interactive:
                raise ValidationError(f"parameters.{name}", str(e)) from e
            source.reject(name, parameter, e)
            continue

        if isinstance(parameter, BooleanParameter):
            value = BooleanParameter.normalize(value)
        logger.debug(f"Parameter {name} = {value!r}")
        return value
